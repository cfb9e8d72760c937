"""logic/effects.py — Item effects and stealth hooks that act on guards.

These are the only mutation points external gameplay has on a guard:

    apply_effect(world, eid, "distract", strength, duration)
    apply_effect(world, eid, "push_back", strength, duration)
    apply_effect(world, eid, "fear", strength, duration)
    set_all_detection(world, enabled)

Unknown effects and targets without the needed components are ignored.
"""

from __future__ import annotations
import math

from core.ecs import World
from components import Position, Knockback, Perception, DevLog, GameClock
from logic.ai.behavior import distract, flee
from logic.ai.perception import find_player, enable_detection, disable_detection


def push_back(world: World, eid: int, force: float) -> bool:
    """Impulse *eid* directly away from the player (unit mass)."""
    pos = world.get(eid, Position)
    _, player_pos = find_player(world)
    if pos is None or player_pos is None:
        return False
    dx, dy = pos.x - player_pos.x, pos.y - player_pos.y
    d = math.hypot(dx, dy)
    if d < 1e-6:
        return False
    kb = world.get(eid, Knockback)
    if kb is None:
        kb = world.add(eid, Knockback())
    kb.x += dx / d * force
    kb.y += dy / d * force
    return True


def _fear(world: World, eid: int, strength: float, duration: float) -> bool:
    flee(world, eid, duration)
    return True


def _distract(world: World, eid: int, strength: float, duration: float) -> bool:
    return distract(world, eid, duration)


def _push(world: World, eid: int, strength: float, duration: float) -> bool:
    return push_back(world, eid, strength)


EFFECTS = {
    "distract": _distract,
    "push_back": _push,
    "fear": _fear,
}


def apply_effect(world: World, eid: int, effect: str,
                 strength: float = 0.0, duration: float = 0.0) -> bool:
    """Route an item effect to its guard primitive.  Returns True if applied."""
    handler = EFFECTS.get(effect)
    if handler is None or not world.alive(eid):
        return False
    applied = handler(world, eid, strength, duration)
    log = world.res(DevLog)
    if applied and log is not None:
        clock = world.res(GameClock)
        log.record(eid, "effect", effect, t=clock.time if clock else 0.0,
                   details={"strength": strength, "duration": duration})
    return applied


def set_all_detection(world: World, enabled: bool) -> int:
    """Blind (or un-blind) every guard at once.  Returns the guard count."""
    count = 0
    for eid, _perc in world.all_of(Perception):
        if enabled:
            enable_detection(world, eid)
        else:
            disable_detection(world, eid)
        count += 1
    return count
