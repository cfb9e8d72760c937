"""logic/recovery.py — Stuck-recovery: vanish, warp back to the route, reappear.

Local steering has no global planner, so a guard can wedge itself
against terrain.  Touching terrain-layer geometry starts a timed
sequence that takes the guard off the board and puts it back on its
patrol route:

    t+0.0              snapshot patrol waypoint, cancel any attack in flight,
                       smoke at current position
    t+0.2              hide: collider off, sprite hidden, perception suspended
    t+0.2+disappear    smoke at destination, warp, restore, force Patrol

Destination is the recorded patrol snapshot, else route waypoint 0,
else (no route at all) the guard reappears where it vanished.

Re-entry is guarded twice: ``in_progress`` for the running sequence and
``cooldown`` measured from its start.  Every step is posted under
``Recovery.token``; despawning the guard cancels it.
"""

from __future__ import annotations
from functools import partial

from core.ecs import World
from core.events import EventBus, TerrainCollision, VanishEffect, RecoveryFinished
from core.timers import CancelToken, Scheduler
from core.tuning import get as _tun
from components import (
    Position, Collider, Sprite, Knockback, Perception, PatrolRoute,
    Recovery, DevLog, GameClock,
)
from logic.ai.behavior import change_state, revoke_pending, snapshot_patrol
from logic.ai.states import PatrolState
from logic.ai.steering import halt


def _now(world: World) -> float:
    clock = world.res(GameClock)
    return clock.time if clock else 0.0


def _log(world: World, eid: int, msg: str, **details) -> None:
    log = world.res(DevLog)
    if log is not None:
        log.record(eid, "recovery", msg, t=_now(world), details=details or None)


def recovery_ready(world: World, eid: int) -> bool:
    rec = world.get(eid, Recovery)
    if rec is None or rec.in_progress:
        return False
    return _now(world) >= rec.last_time + rec.cooldown


def _set_present(world: World, eid: int, present: bool) -> None:
    col = world.get(eid, Collider)
    if col is not None:
        col.enabled = present
    spr = world.get(eid, Sprite)
    if spr is not None:
        spr.visible = present
    perc = world.get(eid, Perception)
    if perc is not None:
        perc.suspended = not present
        if not present:
            perc.can_see_player = False


def recovery_destination(world: World, eid: int) -> tuple[float, float] | None:
    """Where a recovering guard reappears, or None to stay put."""
    rec = world.get(eid, Recovery)
    if rec is not None and rec.has_snapshot:
        return rec.last_patrol_position
    route = world.get(eid, PatrolRoute)
    if route is not None and len(route):
        return route.point(0)
    return None


def start_recovery(world: World, eid: int) -> bool:
    """Begin the vanish/warp sequence.  Returns False if it was refused."""
    rec = world.get(eid, Recovery)
    pos = world.get(eid, Position)
    sched = world.res(Scheduler)
    if rec is None or pos is None or sched is None:
        return False
    if not recovery_ready(world, eid):
        return False

    now = _now(world)
    rec.in_progress = True
    rec.last_time = now
    rec.sequences += 1
    rec.token.cancel()
    rec.token = token = CancelToken()

    snapshot_patrol(world, eid)
    revoke_pending(world, eid)
    bus = world.res(EventBus)
    if bus is not None:
        bus.emit(VanishEffect(eid=eid, x=pos.x, y=pos.y))
    print(f"[RECOVERY] guard {eid} stuck at ({pos.x:.1f}, {pos.y:.1f}), vanishing")
    _log(world, eid, "vanish", x=pos.x, y=pos.y)

    def _reappear():
        dest = recovery_destination(world, eid)
        if dest is not None:
            pos.x, pos.y = dest
        if bus is not None:
            bus.emit(VanishEffect(eid=eid, x=pos.x, y=pos.y))
        _set_present(world, eid, True)
        rec.in_progress = False
        change_state(world, eid, PatrolState())
        if bus is not None:
            bus.emit(RecoveryFinished(eid=eid, x=pos.x, y=pos.y))
        _log(world, eid, "reappeared", x=pos.x, y=pos.y)

    def _hide():
        _set_present(world, eid, False)
        halt(world, eid)
        kb = world.get(eid, Knockback)
        if kb is not None:
            kb.x, kb.y = 0.0, 0.0
        sched.post(_now(world), rec.disappear_duration, _reappear, token,
                   eid=eid, tag="recovery")

    sched.post(now, _tun("ai.recovery", "vanish_delay", 0.2), _hide, token,
               eid=eid, tag="recovery")
    return True


def force_recovery(world: World, eid: int) -> bool:
    """Start recovery without a collision.  Cooldown and re-entry still apply."""
    return start_recovery(world, eid)


def on_terrain_collision(world: World, event: TerrainCollision) -> None:
    rec = world.get(event.eid, Recovery)
    if rec is None or not rec.enabled:
        return
    if not (event.layer & rec.terrain_mask):
        return
    start_recovery(world, event.eid)


def install_recovery(world: World) -> None:
    """Subscribe the collision trigger on the world's event bus."""
    bus = world.res(EventBus)
    if bus is not None:
        bus.subscribe("TerrainCollision", partial(on_terrain_collision, world))
