"""logic/tick.py — System tick orchestration.

The host loop calls two entry points at its own two cadences:

    tick_frame(world, dt)     once per rendered frame
        clock → scheduled continuations → perception (own interval)
        → combat check
    tick_physics(world, dt)   once per fixed physics step
        active behaviour states → movement → event drain

Plus the player input system, which is too small for its own file.

Usage::

    from logic.tick import tick_frame, tick_physics, input_system
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from components import GameClock, Player, Velocity, Facing
from core.events import EventBus
from core.timers import Scheduler
from logic.ai.behavior import behavior_system
from logic.ai.perception import perception_system
from logic.combat.attacks import combat_system
from logic.movement import movement_system

if TYPE_CHECKING:
    from core.ecs import World


# ── Tiny per-frame systems ───────────────────────────────────────────

def input_system(world: "World", move: tuple[float, float] | None = None) -> None:
    """Set Player velocity from movement input.

    Pass ``move=(dx, dy)`` normalised by the caller.
    Also updates the player's Facing direction.
    """
    if move is None:
        return
    dx, dy = move
    for eid, player, vel in world.query(Player, Velocity):
        vel.x = dx * player.speed
        vel.y = dy * player.speed
        if abs(vel.x) > 0.01 or abs(vel.y) > 0.01:
            facing = world.get(eid, Facing)
            if facing is not None:
                if abs(vel.x) >= abs(vel.y):
                    facing.direction = "right" if vel.x > 0 else "left"
                else:
                    facing.direction = "down" if vel.y > 0 else "up"


# ── Entry points ─────────────────────────────────────────────────────

def tick_frame(world: "World", dt: float) -> None:
    """Per-frame work: time, timers, perception, combat check."""
    clock = world.res(GameClock)
    if clock:
        clock.time += dt

    sched = world.res(Scheduler)
    if sched and clock:
        sched.tick(clock.time)

    perception_system(world, dt)
    combat_system(world)
    world.purge()


def tick_physics(world: "World", dt: float) -> None:
    """Fixed-step work: execute states, move, deliver collision events."""
    behavior_system(world, dt)
    movement_system(world, dt)

    bus = world.res(EventBus)
    if bus:
        bus.drain()


def step(world: "World", dt: float) -> None:
    """One frame followed by one physics step of the same length.

    Convenience for tests and headless runs where both cadences coincide.
    """
    tick_frame(world, dt)
    tick_physics(world, dt)
