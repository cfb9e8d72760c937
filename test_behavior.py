"""test_behavior.py — Guard state machine: Patrol, Suspicious, Alerted, Search, Flee.

Perception values are written by hand and only ``tick_physics`` is
stepped, so each test pins the exact inputs a state sees.  Tests that
need scheduled continuations advance the clock through ``tick_frame``.

Run:  python test_behavior.py     (or: pytest test_behavior.py)
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

from core.events import EventBus, StateChanged
from core.timers import Scheduler
from components import (
    Position, Velocity, Facing, Perception, Behavior, PatrolRoute,
    Recovery, AnimIntent, DevLog, GameClock,
)
from logic.ai.behavior import (
    change_state, behavior_system, distract, flee, despawn_guard, is_frozen,
)
from logic.ai.states import (
    PatrolState, SuspiciousState, AlertedState, SearchState, FleeState,
    make_state, state_name,
)
from logic.guard_factory import make_world, spawn_guard, spawn_player
from logic.tick import tick_frame, tick_physics
import core.tuning as _tuning

_tuning.reset()


# ═══════════════════════════════════════════════════════════════════
#  Scenario builder
# ═══════════════════════════════════════════════════════════════════

def _make_world(route=None, player_at=(10.0, 0.0), state=None):
    w = make_world()
    g = spawn_guard(w, 0.0, 0.0, route=route if route is not None else [(0.0, 0.0)])
    p = spawn_player(w, *player_at) if player_at is not None else None
    if state is not None:
        change_state(w, g, state)
    return w, g, p


def _perceive(w, g, p, level: float, *, seen: bool = True,
              last_known=None):
    """Write a perception result directly."""
    perc = w.get(g, Perception)
    perc.detection_level = level
    perc.suspicion = level
    perc.player_eid = p
    perc.can_see_player = seen
    if last_known is None and p is not None:
        ppos = w.get(p, Position)
        last_known = (ppos.x, ppos.y)
    perc.last_known = last_known


def _state(w, g):
    return w.get(g, Behavior).state


def _ticks(w, n: int, dt: float = 0.02):
    for _ in range(n):
        tick_physics(w, dt)


# ═══════════════════════════════════════════════════════════════════
#  Patrol
# ═══════════════════════════════════════════════════════════════════

def test_spawn_enters_initial_state():
    w, g, _ = _make_world()
    assert isinstance(_state(w, g), PatrolState)
    g2 = spawn_guard(w, 1.0, 1.0, initial_state="alerted")
    assert isinstance(_state(w, g2), AlertedState)
    g3 = spawn_guard(w, 2.0, 2.0, initial_state="dancing")
    assert isinstance(_state(w, g3), PatrolState)
    ok("initial state from name, unknown → patrol")


def test_patrol_thresholds():
    w, g, p = _make_world()
    _perceive(w, g, p, 0.29)
    _ticks(w, 1)
    assert isinstance(_state(w, g), PatrolState)

    _perceive(w, g, p, 0.3)
    _ticks(w, 1)
    assert isinstance(_state(w, g), SuspiciousState)

    w, g, p = _make_world()
    _perceive(w, g, p, 0.85)
    _ticks(w, 1)
    assert isinstance(_state(w, g), AlertedState)
    ok("patrol → suspicious at 0.3, → alerted at 0.8")


def test_patrol_needs_player_reference():
    w, g, p = _make_world()
    _perceive(w, g, None, 0.95)
    _ticks(w, 3)
    assert isinstance(_state(w, g), PatrolState)
    ok("no player reference → stays in patrol")


def test_patrol_wait_look_around_and_advance():
    w, g, _ = _make_world(route=[(0.0, 0.0), (3.0, 0.0)], player_at=None)
    facing = w.get(g, Facing)
    anim = w.get(g, AnimIntent)

    seen = {}
    for tick in range(1, 201):
        tick_physics(w, 0.02)
        if tick in (13, 38, 63, 88):
            seen[tick] = facing.direction
        if tick == 110:
            st = _state(w, g)
            assert st.route_index == 1
            assert not st.waiting
            assert anim.is_moving
            assert math.isclose(w.get(g, Velocity).x, 2.0)

    assert seen == {13: "left", 38: "right", 63: "up", 88: "down"}
    st = _state(w, g)
    assert w.get(g, Position).x >= 2.5
    assert st.waiting
    assert not anim.is_moving
    ok("wait: left, right, up, down, then next waypoint")


def test_patrol_snapshot_for_recovery():
    w, g, _ = _make_world(route=[(0.0, 0.0), (3.0, 0.0)], player_at=None)
    rec = w.get(g, Recovery)
    _ticks(w, 110)
    assert rec.has_snapshot
    assert rec.last_patrol_index == 1
    assert rec.last_patrol_position == (3.0, 0.0)
    ok("patrol keeps the recovery snapshot current")


def test_patrol_index_wraps_when_route_shrinks():
    w, g, _ = _make_world(route=[(0.0, 0.0), (3.0, 0.0), (3.0, 3.0)],
                          player_at=None)
    _state(w, g).route_index = 2
    w.get(g, PatrolRoute).waypoints = [(0.0, 0.0), (3.0, 0.0)]
    _ticks(w, 1)
    assert _state(w, g).route_index == 0
    ok("stored index re-clamped to a shorter route")


def test_empty_route_warns_once():
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        w, g, _ = _make_world(route=[], player_at=None)
        _ticks(w, 20)
    assert buf.getvalue().count("no patrol points") == 1
    assert w.get(g, Behavior).warned_no_route
    assert len(w.res(DevLog).for_cat("patrol")) == 1
    vel = w.get(g, Velocity)
    assert (vel.x, vel.y) == (0.0, 0.0)
    assert isinstance(_state(w, g), PatrolState)
    ok("empty route: idle, one warning")


# ═══════════════════════════════════════════════════════════════════
#  Suspicious
# ═══════════════════════════════════════════════════════════════════

def test_suspicious_investigates_at_half_speed():
    w, g, p = _make_world(state=SuspiciousState())
    _perceive(w, g, p, 0.5, last_known=(5.0, 0.0))
    _ticks(w, 1)
    vel = w.get(g, Velocity)
    assert math.isclose(vel.x, 1.0) and math.isclose(vel.y, 0.0, abs_tol=1e-9)
    assert w.get(g, AnimIntent).is_suspicious
    assert isinstance(_state(w, g), SuspiciousState)
    ok("suspicious walks to last known at 0.5× speed")


def test_suspicious_exits():
    w, g, p = _make_world(state=SuspiciousState())
    _perceive(w, g, p, 1.0)
    _ticks(w, 1)
    assert isinstance(_state(w, g), AlertedState)

    w, g, p = _make_world(state=SuspiciousState())
    _perceive(w, g, p, 0.1)
    _ticks(w, 1)
    assert isinstance(_state(w, g), PatrolState)
    assert not w.get(g, AnimIntent).is_suspicious
    ok("suspicious → alerted at 1.0, → patrol at calm")


# ═══════════════════════════════════════════════════════════════════
#  Alerted
# ═══════════════════════════════════════════════════════════════════

def test_alerted_chases():
    w, g, p = _make_world(player_at=(5.0, 0.0), state=AlertedState())
    _perceive(w, g, p, 1.0)
    _ticks(w, 1)
    assert math.isclose(w.get(g, Velocity).x, 3.0)
    assert w.get(g, AnimIntent).is_alerted
    assert isinstance(_state(w, g), AlertedState)
    ok("alerted chases at 1.5× speed")


def test_alerted_holds_in_range():
    w, g, p = _make_world(player_at=(1.0, 0.0), state=AlertedState())
    _perceive(w, g, p, 1.0)
    _ticks(w, 1)
    vel = w.get(g, Velocity)
    assert (vel.x, vel.y) == (0.0, 0.0)
    assert isinstance(_state(w, g), AlertedState)
    ok("alerted stops inside attack range")


def test_alerted_loses_sight():
    w, g, p = _make_world(state=AlertedState())
    _perceive(w, g, p, 0.9, seen=False)
    _ticks(w, 1)
    assert isinstance(_state(w, g), SearchState)
    ok("alerted → search when sight is lost")


# ═══════════════════════════════════════════════════════════════════
#  Search
# ═══════════════════════════════════════════════════════════════════

def test_search_times_out():
    w, g, p = _make_world(player_at=(0.0, -10.0), state=SearchState())
    _perceive(w, g, p, 0.5, seen=False, last_known=(20.0, 0.0))
    _ticks(w, 49, dt=0.1)
    assert isinstance(_state(w, g), SearchState)
    assert w.get(g, Velocity).x > 0.0
    _ticks(w, 2, dt=0.1)
    assert isinstance(_state(w, g), PatrolState)
    ok("search gives up after 5 s")


def test_search_exits_on_level():
    w, g, p = _make_world(state=SearchState())
    _perceive(w, g, p, 1.0, seen=False)
    _ticks(w, 1)
    assert isinstance(_state(w, g), AlertedState)

    w, g, p = _make_world(state=SearchState())
    _perceive(w, g, p, 0.05, seen=False)
    _ticks(w, 1)
    assert isinstance(_state(w, g), PatrolState)
    ok("search → alerted at 1.0, → patrol at calm")


def test_search_stops_at_last_known():
    w, g, p = _make_world(state=SearchState())
    _perceive(w, g, p, 0.5, seen=False, last_known=(0.3, 0.0))
    _ticks(w, 1)
    vel = w.get(g, Velocity)
    assert (vel.x, vel.y) == (0.0, 0.0)
    assert isinstance(_state(w, g), SearchState)
    ok("search halts inside reached distance")


# ═══════════════════════════════════════════════════════════════════
#  Flee
# ═══════════════════════════════════════════════════════════════════

def test_flee_runs_from_player():
    w, g, p = _make_world(player_at=(-2.0, 0.0))
    flee(w, g, 1.0)
    assert isinstance(_state(w, g), FleeState)
    _ticks(w, 1, dt=0.1)
    vel = w.get(g, Velocity)
    assert math.isclose(vel.x, 4.0) and math.isclose(vel.y, 0.0, abs_tol=1e-9)

    _ticks(w, 7, dt=0.1)
    assert isinstance(_state(w, g), FleeState)
    _ticks(w, 4, dt=0.1)
    assert isinstance(_state(w, g), PatrolState)
    ok("flee at 2× away from the player, then patrol")


def test_flee_without_player():
    w, g, _ = _make_world(player_at=None, state=AlertedState())
    flee(w, g, 1.0)
    st = _state(w, g)
    assert isinstance(st, FleeState)
    assert math.isclose(math.hypot(*st.direction), 1.0)
    ok("flee without a player picks a random direction")


# ═══════════════════════════════════════════════════════════════════
#  Transitions and overrides
# ═══════════════════════════════════════════════════════════════════

def test_change_state_cancels_continuations():
    w, g, p = _make_world(state=AlertedState())
    sched = w.res(Scheduler)
    fired = []
    sched.post(0.0, 0.5, lambda: fired.append(1), w.get(g, Behavior).token,
               eid=g, tag="probe")
    assert len(sched.pending(eid=g, tag="probe")) == 1
    change_state(w, g, SearchState())
    assert sched.pending(eid=g, tag="probe") == []
    sched.tick(1.0)
    assert fired == []
    ok("state change revokes the old state's continuations")


def test_change_state_emits_event():
    w, g, p = _make_world()
    bus = w.res(EventBus)
    bus.clear()
    change_state(w, g, SuspiciousState())
    events = [e for e in bus.pending() if isinstance(e, StateChanged)]
    assert len(events) == 1
    assert (events[0].old, events[0].new) == ("patrol", "suspicious")
    assert w.res(DevLog).for_eid(g)[-1]["msg"] == "patrol → suspicious"
    assert state_name(_state(w, g)) == "suspicious"
    ok("StateChanged emitted and logged")


def test_distract_freezes_then_clears():
    w, g, _ = _make_world(route=[(5.0, 0.0)], player_at=None)
    assert distract(w, g, 2.0)
    assert not distract(w, g, 2.0)
    assert is_frozen(w, g)
    _ticks(w, 5)
    assert w.get(g, Position).x == 0.0

    tick_frame(w, 1.0)
    assert w.get(g, Behavior).distracted
    tick_frame(w, 1.0)
    assert not w.get(g, Behavior).distracted
    _ticks(w, 1)
    assert w.get(g, Velocity).x > 0.0
    ok("distract: frozen for the duration, second call ignored")


def test_recovery_in_progress_freezes():
    w, g, p = _make_world(state=SuspiciousState())
    w.get(g, Recovery).in_progress = True
    _perceive(w, g, p, 1.0)
    _ticks(w, 3)
    assert isinstance(_state(w, g), SuspiciousState)
    assert w.get(g, Velocity).x == 0.0
    ok("recovering guard runs no state logic")


def test_despawn_cancels_everything():
    w, g, _ = _make_world(player_at=None)
    sched = w.res(Scheduler)
    distract(w, g, 2.0)
    sched.post(0.0, 1.0, lambda: None, w.get(g, Behavior).token, eid=g)
    assert len(sched.pending(eid=g)) == 2
    despawn_guard(w, g)
    assert sched.pending(eid=g) == []
    assert not w.alive(g)
    tick_frame(w, 3.0)
    _ticks(w, 1)
    assert w.get(g, Behavior) is None
    ok("despawn revokes pending work")


def test_unknown_state_raises():
    w, g, _ = _make_world(player_at=None)
    w.get(g, Behavior).state = object()
    try:
        behavior_system(w, 0.02)
    except TypeError:
        pass
    else:
        raise AssertionError("expected TypeError")
    assert isinstance(make_state("bogus"), PatrolState)
    ok("foreign state object → TypeError")


def test_none_state_enters_patrol():
    w, g, _ = _make_world(player_at=None)
    w.get(g, Behavior).state = None
    _ticks(w, 1)
    assert isinstance(_state(w, g), PatrolState)
    assert w.res(GameClock).time == 0.0
    ok("a guard with no state starts patrolling")


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
    print(f" Behaviour Tests: {passed}/{total} passed")
    if failed:
        print(f" {failed} FAILED")
    print(f"{'='*50}")
    sys.exit(0 if failed == 0 else 1)
