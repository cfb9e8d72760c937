"""test_combat.py — Guard melee: combat check, wind-up, damage, cooldown.

The clock is advanced by hand and the scheduler ticked directly, so
wind-up and recovery timings can be probed on either side of their
due times.  The last test runs the whole frame/physics loop.

Run:  python test_combat.py     (or: pytest test_combat.py)
"""
from __future__ import annotations
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

from core.events import EventBus
from core.timers import Scheduler
from components import (
    Health, Perception, Behavior, AttackConfig, AnimIntent, DetectionConfig,
    GameClock, DevLog,
)
from logic.ai.behavior import change_state, despawn_guard, distract
from logic.ai.perception import disable_detection, enable_detection
from logic.ai.states import AlertedState, SearchState, PatrolState
from logic.combat import can_attack, combat_system, start_attack
from logic.guard_factory import make_world, spawn_guard, spawn_player
from logic.tick import step, tick_frame
import core.tuning as _tuning

_tuning.reset()


# ═══════════════════════════════════════════════════════════════════
#  Scenario builder
# ═══════════════════════════════════════════════════════════════════

def _make_world(player_at=(1.0, 0.0), state=None):
    """Alerted guard at the origin that already knows the player."""
    w = make_world()
    g = spawn_guard(w, 0.0, 0.0, route=[(0.0, 0.0)],
                    attack=AttackConfig(damage=10.0, range=1.5, cooldown=1.0))
    p = spawn_player(w, *player_at, health=30.0)
    change_state(w, g, state if state is not None else AlertedState())
    perc = w.get(g, Perception)
    perc.player_eid = p
    perc.can_see_player = True
    return w, g, p


def _advance(w, t: float) -> int:
    """Set the clock to *t* and run due continuations."""
    w.res(GameClock).time = t
    return w.res(Scheduler).tick(t)


# ═══════════════════════════════════════════════════════════════════
#  Attack sequence
# ═══════════════════════════════════════════════════════════════════

def test_windup_damage_recovery():
    w, g, p = _make_world()
    atk = w.get(g, AttackConfig)
    hp = w.get(p, Health)

    assert combat_system(w) == 1
    assert atk.attacking
    assert atk.last_attack_time == 0.0
    assert w.get(g, AnimIntent).attack_trigger

    _advance(w, 0.29)
    assert hp.current == 30.0
    _advance(w, 0.3)
    assert hp.current == 20.0
    assert atk.attacking
    _advance(w, 0.51)
    assert not atk.attacking
    assert hp.current == 20.0
    ok("0.3 s wind-up, damage once, 0.2 s recovery")


def test_cooldown():
    w, g, p = _make_world()
    assert combat_system(w) == 1
    _advance(w, 0.6)
    assert not can_attack(w, g)
    assert combat_system(w) == 0
    _advance(w, 1.01)
    assert can_attack(w, g)
    assert combat_system(w) == 1
    _advance(w, 1.4)
    assert w.get(p, Health).current == 10.0
    ok("next swing only after the cooldown")


def test_no_attack_out_of_range():
    w, g, p = _make_world(player_at=(3.0, 0.0))
    assert not can_attack(w, g)
    assert combat_system(w) == 0
    ok("no attack beyond range")


def test_no_attack_outside_alerted():
    for state in (PatrolState(), SearchState()):
        w, g, p = _make_world(state=state)
        w.get(g, Perception).player_eid = p
        assert combat_system(w) == 0
    ok("only alerted guards attack")


def test_no_attack_without_player_reference():
    w, g, p = _make_world()
    w.get(g, Perception).player_eid = None
    assert combat_system(w) == 0
    ok("forgotten player cannot be attacked")


def test_no_attack_while_distracted():
    w, g, p = _make_world()
    distract(w, g, 1.0)
    assert not can_attack(w, g)
    ok("distracted guard does not attack")


def test_no_attack_while_detection_disabled():
    w, g, p = _make_world()
    disable_detection(w, g)
    w.get(g, Perception).player_eid = p
    assert not can_attack(w, g)
    tick_frame(w, 0.016)
    assert not w.get(g, AttackConfig).attacking
    assert not w.get(g, AnimIntent).attack_trigger
    assert w.res(EventBus).stats().get("AttackStarted", 0) == 0

    enable_detection(w, g)
    assert can_attack(w, g)
    ok("blinded guard holds its swing until detection returns")


def test_state_change_cancels_damage():
    w, g, p = _make_world()
    assert combat_system(w) == 1
    _advance(w, 0.1)
    change_state(w, g, SearchState())
    assert not w.get(g, AttackConfig).attacking
    assert not w.get(g, AnimIntent).attack_trigger
    _advance(w, 1.0)
    assert w.get(p, Health).current == 30.0
    assert w.res(Scheduler).pending(eid=g, tag="attack") == []
    ok("leaving alerted mid-swing cancels the hit")


def test_despawn_cancels_damage():
    w, g, p = _make_world()
    assert combat_system(w) == 1
    despawn_guard(w, g)
    _advance(w, 1.0)
    assert w.get(p, Health).current == 30.0
    ok("despawned guard never lands its hit")


def test_start_attack_not_reentrant():
    w, g, p = _make_world()
    assert start_attack(w, g, p)
    assert not start_attack(w, g, p)
    _advance(w, 0.5)
    assert w.get(p, Health).current == 20.0
    ok("second start mid-attack is ignored")


def test_damage_floors_at_zero():
    w, g, p = _make_world()
    w.get(p, Health).current = 5.0
    start_attack(w, g, p)
    _advance(w, 0.3)
    hp = w.get(p, Health)
    assert hp.current == 0.0
    assert hp.dead
    ok("health never goes negative")


def test_attack_logged():
    w, g, p = _make_world()
    start_attack(w, g, p)
    _advance(w, 0.3)
    msgs = [e["msg"] for e in w.res(DevLog).for_cat("attack")]
    assert msgs == [f"wind-up on {p}", f"hit {p} for 10"]
    ok("attack steps recorded in the dev log")


# ═══════════════════════════════════════════════════════════════════
#  End to end
# ═══════════════════════════════════════════════════════════════════

def test_full_loop_attack():
    w = make_world()
    g = spawn_guard(w, 0.0, 0.0, route=[(0.0, 0.0)],
                    config=DetectionConfig(suspicion_build_time=0.4))
    p = spawn_player(w, 1.4, 0.0, health=30.0)
    atk = w.get(g, AttackConfig)
    bus = w.res(EventBus)

    for _ in range(5):
        step(w, 0.2)
    assert isinstance(w.get(g, Behavior).state, AlertedState)
    assert w.get(p, Health).current == 20.0

    step(w, 0.2)
    step(w, 0.2)
    assert not atk.attacking
    assert bus.stats().get("AttackStarted") == 1
    assert bus.stats().get("PlayerDamaged") == 1
    assert w.get(p, Health).current == 20.0
    ok("spotted, alerted, one hit lands through the full loop")


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
    print(f" Combat Tests: {passed}/{total} passed")
    if failed:
        print(f" {failed} FAILED")
    print(f"{'='*50}")
    sys.exit(0 if failed == 0 else 1)
