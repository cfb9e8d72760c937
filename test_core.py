"""test_core.py — ECS world, scheduler, event bus, geometry queries, dev log.

Run:  python test_core.py     (or: pytest test_core.py)
"""
from __future__ import annotations
import contextlib
import io
import math
import sys
import traceback

# ── Test framework ──────────────────────────────────────────────────

passed = 0
failed = 0


def ok(label: str):
    global passed
    passed += 1
    print(f"  [PASS] {label}")


def fail(label: str, detail: str = ""):
    global failed
    failed += 1
    print(f"  [FAIL] {label}")
    if detail:
        for line in detail.strip().splitlines():
            print(f"         {line}")


# ── Imports ──────────────────────────────────────────────────────────

from core.constants import LAYER_WALL, LAYER_TERRAIN, LAYER_PROP, SIGHT_MASK, SOLID_MASK
from core.ecs import World
from core.events import EventBus, StateChanged, TerrainCollision
from core.geometry import Geometry
from core.timers import CancelToken, Scheduler
from components import Position, Velocity, PatrolRoute, DevLog, Health


# ═══════════════════════════════════════════════════════════════════
#  ECS
# ═══════════════════════════════════════════════════════════════════

def test_world_lifecycle():
    w = World()
    a = w.spawn()
    b = w.spawn()
    w.add(a, Position(1.0, 2.0))
    w.add(a, Velocity())
    w.add(b, Position())
    assert [e for e, _ in w.all_of(Position)] == [a, b]
    assert [r[0] for r in w.query(Position, Velocity)] == [a]

    w.kill(a)
    assert not w.alive(a)
    assert w.get(a, Position) is not None          # until purge
    assert [e for e, _ in w.all_of(Position)] == [b]
    w.purge()
    assert w.get(a, Position) is None
    assert not w.alive(a)
    assert w.alive(b)
    assert not w.alive(None)
    ok("spawn / kill / purge / queries")


def test_world_resources():
    w = World()
    geo = w.set_res(Geometry())
    assert w.res(Geometry) is geo
    assert list(w.all_of(Geometry)) == []
    assert w.res(EventBus) is None
    ok("resources are not entities")


# ═══════════════════════════════════════════════════════════════════
#  Scheduler
# ═══════════════════════════════════════════════════════════════════

def test_scheduler_order():
    s = Scheduler()
    out = []
    s.post(0.0, 0.5, lambda: out.append("b"))
    s.post(0.0, 0.2, lambda: out.append("a"))
    s.post(0.0, 0.5, lambda: out.append("c"))
    assert s.tick(0.1) == 0
    assert s.tick(1.0) == 3
    assert out == ["a", "b", "c"]
    assert s.executed == 3
    ok("due-time order, FIFO among equals")


def test_scheduler_cancel():
    s = Scheduler()
    out = []
    tok = CancelToken()
    s.post(0.0, 0.1, lambda: out.append(1), tok, eid=4, tag="attack")
    s.post(0.0, 0.1, lambda: out.append(2), eid=5)
    assert len(s.pending(eid=4, tag="attack")) == 1
    tok.cancel()
    assert s.pending(eid=4) == []
    assert s.pending_count() == 1
    s.tick(1.0)
    assert out == [2]
    ok("cancelled continuations never run")


def test_scheduler_chain_in_one_tick():
    s = Scheduler()
    out = []

    def first():
        out.append("first")
        s.post(0.1, 0.0, lambda: out.append("second"))
        s.post(0.1, 5.0, lambda: out.append("later"))

    s.post(0.0, 0.1, first)
    s.tick(1.0)
    assert out == ["first", "second"]
    assert s.pending_count() == 1
    ok("due follow-ups run in the same tick")


# ═══════════════════════════════════════════════════════════════════
#  Event bus
# ═══════════════════════════════════════════════════════════════════

def test_event_bus_fifo_and_chaining():
    bus = EventBus()
    seen = []

    def on_collision(ev):
        seen.append(("hit", ev.eid))
        bus.emit(StateChanged(eid=ev.eid, old="a", new="b"))

    bus.subscribe("TerrainCollision", on_collision)
    bus.subscribe("StateChanged", lambda ev: seen.append(("state", ev.eid)))
    bus.emit(TerrainCollision(eid=1))
    bus.emit(TerrainCollision(eid=2))
    assert bus.drain() == 4
    assert seen == [("hit", 1), ("hit", 2), ("state", 1), ("state", 2)]
    assert bus.stats() == {"TerrainCollision": 2, "StateChanged": 2}
    assert bus.pending() == []
    ok("FIFO delivery, handler-emitted events drained too")


def test_event_bus_handler_error_isolated():
    bus = EventBus()
    seen = []

    def broken(ev):
        raise RuntimeError("boom")

    bus.subscribe("TerrainCollision", broken)
    bus.subscribe("TerrainCollision", lambda ev: seen.append(ev.eid))
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf), contextlib.redirect_stderr(io.StringIO()):
        bus.emit(TerrainCollision(eid=9))
        bus.drain()
    assert seen == [9]
    assert "[EVENT] handler error for TerrainCollision" in buf.getvalue()
    ok("a failing handler does not starve the others")


# ═══════════════════════════════════════════════════════════════════
#  Geometry
# ═══════════════════════════════════════════════════════════════════

def test_raycast_normals_and_distance():
    geo = Geometry()
    geo.add_box(2.0, -1.0, 1.0, 2.0)
    hit = geo.raycast((0.0, 0.0), (1.0, 0.0), 5.0, SIGHT_MASK)
    assert hit is not None
    assert math.isclose(hit.distance, 2.0)
    assert hit.normal == (-1.0, 0.0)
    assert hit.layer == LAYER_WALL

    hit = geo.raycast((2.5, 3.0), (0.0, -1.0), 5.0, SIGHT_MASK)
    assert math.isclose(hit.distance, 2.0)
    assert hit.normal == (0.0, 1.0)

    assert geo.raycast((0.0, 0.0), (1.0, 0.0), 1.5, SIGHT_MASK) is None
    assert geo.raycast((0.0, 0.0), (-1.0, 0.0), 5.0, SIGHT_MASK) is None
    assert geo.raycast((0.0, 0.0), (0.0, 0.0), 5.0, SIGHT_MASK) is None
    ok("slab raycast: distance, face normal, range")


def test_raycast_nearest_and_mask():
    geo = Geometry()
    geo.add_box(4.0, -1.0, 1.0, 2.0, layer=LAYER_WALL)
    geo.add_box(2.0, -1.0, 1.0, 2.0, layer=LAYER_PROP)
    assert math.isclose(geo.raycast((0, 0), (1, 0), 10, SOLID_MASK).distance, 2.0)
    assert math.isclose(geo.raycast((0, 0), (1, 0), 10, SIGHT_MASK).distance, 4.0)
    assert geo.raycast((0, 0), (1, 0), 10, LAYER_TERRAIN) is None
    ok("nearest hit among masked layers")


def test_raycast_from_inside():
    geo = Geometry()
    geo.add_box(-1.0, -1.0, 2.0, 2.0)
    hit = geo.raycast((0.0, 0.0), (0.0, 2.0), 5.0, SIGHT_MASK)
    assert hit.distance == 0.0
    assert hit.normal == (-0.0, -1.0)
    ok("ray starting inside a box hits at 0")


def test_line_clear_and_overlap():
    geo = Geometry()
    geo.add_box(2.0, -1.0, 1.0, 2.0)
    assert not geo.line_clear(0.0, 0.0, 4.0, 0.0, SIGHT_MASK)
    assert geo.line_clear(0.0, 0.0, 1.9, 0.0, SIGHT_MASK)
    assert geo.line_clear(1.0, 1.0, 1.0, 1.0, SIGHT_MASK)
    assert geo.overlap(1.7, 0.0, 0.8, 0.8, SOLID_MASK) is not None
    assert geo.overlap(1.5, 0.0, 0.8, 0.8, SOLID_MASK) is None
    assert geo.overlap(1.7, 0.0, 0.8, 0.8, LAYER_TERRAIN) is None
    ok("line_clear and centred overlap")


# ═══════════════════════════════════════════════════════════════════
#  Small components
# ═══════════════════════════════════════════════════════════════════

def test_patrol_route_wrap():
    r = PatrolRoute([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)])
    assert r.wrap(3) == 0 and r.wrap(4) == 1
    assert r.point(5) == (1.0, 1.0)
    empty = PatrolRoute()
    assert empty.wrap(7) == 0
    assert empty.point(0) is None
    ok("cyclic route indexing")


def test_dev_log_filters():
    log = DevLog(max_entries=3)
    for i in range(5):
        log.record(1, "state", f"m{i}", t=float(i))
    assert [e["msg"] for e in log.recent()] == ["m2", "m3", "m4"]
    log.cat_filter = {"attack"}
    log.record(1, "state", "dropped")
    log.record(2, "attack", "kept")
    assert log.for_cat("attack")[0]["eid"] == 2
    assert log.for_eid(1)[-1]["msg"] == "m4"
    ok("ring buffer and category filter")


def test_health():
    hp = Health(current=10.0, maximum=10.0)
    assert hp.apply_damage(4.0) == 6.0
    assert hp.apply_damage(-3.0) == 6.0
    assert hp.heal(10.0) == 10.0
    assert hp.apply_damage(25.0) == 0.0 and hp.dead
    ok("damage floors at zero")


# ═══════════════════════════════════════════════════════════════════
#  Runner
# ═══════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    for _name, _fn in list(globals().items()):
        if _name.startswith("test_") and callable(_fn):
            try:
                _fn()
            except Exception:
                fail(_name, traceback.format_exc())

    total = passed + failed
    print(f"\n{'='*50}")
    print(f" Core Tests: {passed}/{total} passed")
    if failed:
        print(f" {failed} FAILED")
    print(f"{'='*50}")
    sys.exit(0 if failed == 0 else 1)
