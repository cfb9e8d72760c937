"""logic/ai/behavior.py — Behaviour state machine driver.

Owns the transition protocol and the guard-level overrides that sit on
top of the active state:

    change_state     exit old → revoke its timers → enter new
    behavior_system  physics-tick driver: execute the active state
    distract         freeze movement for a while, state unchanged
    flee             force Flee from any state
    despawn_guard    revoke everything the guard scheduled, then kill it

A guard whose stuck-recovery sequence is running, or who is
distracted, is skipped entirely: no state execution, no transitions.
"""

from __future__ import annotations

from core.ecs import World
from core.events import EventBus, StateChanged, GuardDistracted
from core.timers import CancelToken, Scheduler
from components import (
    Behavior, AttackConfig, Recovery, PatrolRoute, AnimIntent, DevLog,
    GameClock,
)
from logic.ai import states
from logic.ai.states import PatrolState, FleeState
from logic.ai.steering import halt


def _now(world: World) -> float:
    clock = world.res(GameClock)
    return clock.time if clock else 0.0


def _log(world: World, eid: int, cat: str, msg: str, **details) -> None:
    log = world.res(DevLog)
    if log is not None:
        log.record(eid, cat, msg, t=_now(world), details=details or None)


# ── Transitions ──────────────────────────────────────────────────────

def revoke_pending(world: World, eid: int) -> None:
    """Cancel everything scheduled under the current state token and drop
    any half-finished attack."""
    beh = world.get(eid, Behavior)
    if beh is None:
        return
    beh.token.cancel()
    beh.token = CancelToken()
    atk = world.get(eid, AttackConfig)
    if atk is not None:
        atk.attacking = False
    anim = world.get(eid, AnimIntent)
    if anim is not None:
        anim.attack_trigger = False


def change_state(world: World, eid: int, new_state) -> None:
    """Switch *eid* to *new_state*.

    Every continuation scheduled under the outgoing state's token is
    revoked, so a half-finished attack can never land after the switch.
    """
    beh = world.get(eid, Behavior)
    if beh is None:
        return
    old = beh.state
    if old is not None:
        states.exit_state(world, eid, old)

    revoke_pending(world, eid)
    halt(world, eid)

    beh.state = new_state
    beh.transitions += 1
    states.enter_state(world, eid, new_state)

    old_name = states.state_name(old)
    new_name = states.state_name(new_state)
    bus = world.res(EventBus)
    if bus is not None:
        bus.emit(StateChanged(eid=eid, old=old_name, new=new_name))
    _log(world, eid, "state", f"{old_name} → {new_name}")


def snapshot_patrol(world: World, eid: int) -> bool:
    """Record the Patrol waypoint the guard is heading for.

    No-op (returns False) unless the guard is in Patrol with a route.
    """
    beh = world.get(eid, Behavior)
    rec = world.get(eid, Recovery)
    route = world.get(eid, PatrolRoute)
    if (beh is None or rec is None or route is None
            or not isinstance(beh.state, PatrolState) or len(route) == 0):
        return False
    idx = route.wrap(beh.state.route_index)
    rec.last_patrol_index = idx
    rec.last_patrol_position = route.point(idx)
    rec.has_snapshot = True
    return True


def is_frozen(world: World, eid: int) -> bool:
    """True while recovering or distracted: the guard does nothing."""
    beh = world.get(eid, Behavior)
    rec = world.get(eid, Recovery)
    if rec is not None and rec.in_progress:
        return True
    return bool(beh and beh.distracted)


def behavior_system(world: World, dt: float) -> None:
    """Execute every guard's active state for one physics step."""
    for eid, beh in world.all_of(Behavior):
        if beh.state is None:
            change_state(world, eid, PatrolState())
        if is_frozen(world, eid):
            continue

        nxt = states.execute_state(world, eid, beh.state, dt)
        snapshot_patrol(world, eid)
        if nxt is not None:
            change_state(world, eid, nxt)


# ── External triggers ────────────────────────────────────────────────

def distract(world: World, eid: int, duration: float) -> bool:
    """Freeze *eid* for *duration* seconds.  No-op while already distracted.

    Returns True if the distraction started.
    """
    beh = world.get(eid, Behavior)
    sched = world.res(Scheduler)
    if beh is None or beh.distracted:
        return False
    beh.distracted = True
    halt(world, eid)

    def _clear():
        beh.distracted = False
        _log(world, eid, "effect", "distraction over")

    if sched is not None:
        sched.post(_now(world), duration, _clear, beh.life_token,
                   eid=eid, tag="distract")
    bus = world.res(EventBus)
    if bus is not None:
        bus.emit(GuardDistracted(eid=eid, duration=duration))
    _log(world, eid, "effect", f"distracted for {duration:.1f}s")
    return True


def flee(world: World, eid: int, duration: float) -> None:
    """Force *eid* into Flee for *duration* seconds, whatever it was doing."""
    if world.get(eid, Behavior) is None:
        return
    change_state(world, eid, FleeState(remaining=duration))


def despawn_guard(world: World, eid: int) -> None:
    """Destroy *eid*; nothing it scheduled may run afterwards."""
    beh = world.get(eid, Behavior)
    if beh is not None:
        beh.token.cancel()
        beh.life_token.cancel()
    rec = world.get(eid, Recovery)
    if rec is not None:
        rec.token.cancel()
    _log(world, eid, "state", "despawned")
    world.kill(eid)
