"""logic/combat/attacks.py — Guard melee attack check and sequence.

The check runs once per *frame* (not per physics step), independently
of state transitions, and only does anything while the guard is
Alerted:

    detection on  ∧  not mid-attack  ∧  player within range  ∧  cooldown elapsed
        → start_attack()

``start_attack`` is a three-step scheduled sequence under the current
state's cancel token::

    t+0.0   attacking = True, halt, attack trigger, AttackStarted
    t+0.3   player Health.apply_damage(damage), PlayerDamaged
    t+0.5   attacking = False

If the guard leaves Alerted (or is despawned) between steps, the token
is already cancelled and the remaining steps never run.
"""

from __future__ import annotations
import math

from core.ecs import World
from core.events import EventBus, AttackStarted, PlayerDamaged
from core.timers import Scheduler
from core.tuning import get as _tun
from components import (
    Position, Health, Perception, Behavior, AttackConfig, AnimIntent,
    DevLog, GameClock,
)
from logic.ai.states import AlertedState
from logic.ai.steering import halt
from logic.ai.behavior import is_frozen


def _target_in_range(world: World, eid: int, atk: AttackConfig) -> int | None:
    perc = world.get(eid, Perception)
    if perc is None or not world.alive(perc.player_eid):
        return None
    pos = world.get(eid, Position)
    tpos = world.get(perc.player_eid, Position)
    if pos is None or tpos is None:
        return None
    if math.hypot(tpos.x - pos.x, tpos.y - pos.y) > atk.range:
        return None
    return perc.player_eid


def can_attack(world: World, eid: int) -> bool:
    """Would the combat check start an attack for *eid* right now?"""
    beh = world.get(eid, Behavior)
    atk = world.get(eid, AttackConfig)
    clock = world.res(GameClock)
    if beh is None or atk is None or clock is None:
        return False
    if not isinstance(beh.state, AlertedState) or atk.attacking:
        return False
    if is_frozen(world, eid):
        return False
    perc = world.get(eid, Perception)
    if perc is None or not perc.enabled:
        return False
    if clock.time < atk.last_attack_time + atk.cooldown:
        return False
    return _target_in_range(world, eid, atk) is not None


def start_attack(world: World, eid: int, target_eid: int) -> bool:
    """Begin the wind-up → damage → recovery sequence.  No-op mid-attack."""
    beh = world.get(eid, Behavior)
    atk = world.get(eid, AttackConfig)
    sched = world.res(Scheduler)
    clock = world.res(GameClock)
    if beh is None or atk is None or sched is None or clock is None:
        return False
    if atk.attacking:
        return False

    atk.attacking = True
    atk.last_attack_time = clock.time
    halt(world, eid)
    anim = world.get(eid, AnimIntent)
    if anim is not None:
        anim.attack_trigger = True
        anim.is_alerted = True

    bus = world.res(EventBus)
    log = world.res(DevLog)
    if bus is not None:
        bus.emit(AttackStarted(eid=eid, target_eid=target_eid))
    if log is not None:
        log.record(eid, "attack", f"wind-up on {target_eid}", t=clock.time)

    token = beh.token
    windup = _tun("ai.combat", "windup", 0.3)
    recovery = _tun("ai.combat", "recovery", 0.2)

    def _finish():
        atk.attacking = False

    def _strike():
        health = world.get(target_eid, Health) if world.alive(target_eid) else None
        if health is not None:
            remaining = health.apply_damage(atk.damage)
            if bus is not None:
                bus.emit(PlayerDamaged(attacker_eid=eid, target_eid=target_eid,
                                       amount=atk.damage, remaining=remaining))
            if log is not None:
                log.record(eid, "attack", f"hit {target_eid} for {atk.damage:g}",
                           t=clock.time, details={"remaining": remaining})
        sched.post(clock.time, recovery, _finish, token, eid=eid, tag="attack")

    sched.post(clock.time, windup, _strike, token, eid=eid, tag="attack")
    return True


def combat_system(world: World) -> int:
    """Frame-tick combat check for every guard.  Returns attacks started."""
    started = 0
    for eid, atk in world.all_of(AttackConfig):
        if not can_attack(world, eid):
            continue
        target = _target_in_range(world, eid, atk)
        if start_attack(world, eid, target):
            started += 1
    return started
