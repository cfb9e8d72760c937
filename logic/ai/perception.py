"""logic/ai/perception.py — Vision test, suspicion curve, target memory.

The perception engine runs on its own fixed interval (``Perception.
interval``, default 0.2 s) instead of every frame, to bound the number
of line-of-sight raycasts.  ``perception_system`` advances each guard's
interval timer; ``update_perception`` is one scan.

One scan
--------
1. Resolve the player through the locator if no target is cached.
2. Visibility, cheapest test first: angle → distance → raycast.
3. Visible: remember position, reset the forget timer.
   Not visible: age the memory; past ``memory_duration`` the guard
   forgets the player entirely.
4. Step the suspicion accumulator (see ``step_suspicion``).

Suspicion curve
~~~~~~~~~~~~~~~
    visible                 acc += rate            level = acc ** 1.5
    lost, still remembered  acc -= rate / 3        level = acc ** 1.5
    forgotten / never seen  acc → 0 at rate        level = acc

where ``rate = interval / suspicion_build_time``.  The power curve makes
a glimpse register slowly and a stare escalate sharply; the slow decay
lets a glimpse linger; once forgotten the meter drains linearly.

Also hosts the visualizer helpers (``dir_from_angle``,
``view_cone_points``) and the detection toggle used by stealth effects.
"""

from __future__ import annotations
import math

from core.ecs import World
from core.geometry import Geometry
from core.tuning import get as _tun
from components import (
    Position, Facing, Player, DetectionConfig, Perception,
)

CURVE_EXPONENT = 1.5
DECAY_DIVISOR = 3.0

# Accumulator values this close to a bound snap onto it, so repeated
# float steps land exactly on 0 and 1.
_SNAP = 1e-9


# ── Facing ───────────────────────────────────────────────────────────

_FACING_ANGLES: dict[str, float] = {
    "right": 0.0,
    "down":  math.pi / 2,
    "left":  math.pi,
    "up":    -math.pi / 2,
}


def facing_to_angle(direction: str) -> float:
    """Convert a cardinal Facing.direction string to radians.

    right → 0, down → π/2, left → π, up → −π/2  (screen coords, +y down)
    """
    return _FACING_ANGLES.get(direction, 0.0)


def facing_vector(direction: str) -> tuple[float, float]:
    a = facing_to_angle(direction)
    return round(math.cos(a), 12), round(math.sin(a), 12)


# ── Player locator ───────────────────────────────────────────────────

def find_player(world: World):
    """Return ``(eid, Position)`` of the player, or ``(None, None)``."""
    res = world.query_one(Player, Position)
    if res:
        return res[0], res[2]
    return None, None


# ── Suspicion curve ──────────────────────────────────────────────────

def _clamp01(v: float) -> float:
    if v >= 1.0 - _SNAP:
        return 1.0
    if v <= _SNAP:
        return 0.0
    return v


def step_suspicion(acc: float, visible: bool, remembered: bool,
                   rate: float) -> tuple[float, float]:
    """Advance the accumulator one scan.  Returns ``(acc, level)``."""
    if visible:
        acc = _clamp01(acc + rate)
        return acc, acc ** CURVE_EXPONENT
    if remembered:
        acc = _clamp01(acc - rate / DECAY_DIVISOR)
        return acc, acc ** CURVE_EXPONENT
    acc = _clamp01(max(0.0, acc - rate))
    return acc, acc


# ── Visibility ───────────────────────────────────────────────────────

def angle_between(ax: float, ay: float, bx: float, by: float) -> float:
    """Unsigned angle between two unit vectors, in degrees."""
    dot = max(-1.0, min(1.0, ax * bx + ay * by))
    return math.degrees(math.acos(dot))


def is_visible(world: World, eid: int, target_pos) -> bool:
    """Run the three-stage visibility test from *eid* to *target_pos*."""
    pos = world.get(eid, Position)
    cfg = world.get(eid, DetectionConfig)
    if pos is None or cfg is None:
        return False

    dx = target_pos.x - pos.x
    dy = target_pos.y - pos.y
    dist = math.hypot(dx, dy)
    if dist < 1e-6:
        return True   # standing on top of the guard
    nx, ny = dx / dist, dy / dist

    facing = world.get(eid, Facing)
    fx, fy = facing_vector(facing.direction if facing else "right")

    # (a) angle, cheapest
    if angle_between(fx, fy, nx, ny) >= cfg.view_angle * 0.5:
        return False
    # (b) range
    if dist > cfg.view_radius:
        return False
    # (c) line of sight, most expensive
    geo = world.res(Geometry)
    if geo is None:
        return True
    return geo.raycast((pos.x, pos.y), (nx, ny), dist,
                       cfg.obstacle_mask) is None


# ── One scan ─────────────────────────────────────────────────────────

def _forget(perc: Perception) -> None:
    perc.player_eid = None
    perc.last_known = None
    perc.recently_seen = False


def update_perception(world: World, eid: int,
                      interval: float | None = None) -> None:
    """Run one perception scan for guard *eid*."""
    perc = world.get(eid, Perception)
    cfg = world.get(eid, DetectionConfig)
    if perc is None or cfg is None:
        return
    if not perc.enabled or perc.suspended:
        perc.can_see_player = False
        return
    if interval is None:
        interval = perc.interval

    # Weak reference: a despawned player is simply gone
    if perc.player_eid is not None and not world.alive(perc.player_eid):
        _forget(perc)

    target_pos = None
    if world.alive(perc.target_eid):
        target_pos = world.get(perc.target_eid, Position)
    if target_pos is None:
        perc.target_eid, target_pos = find_player(world)
    if target_pos is None:
        return

    visible = is_visible(world, eid, target_pos)
    perc.can_see_player = visible

    if visible:
        perc.player_eid = perc.target_eid
        perc.last_known = (target_pos.x, target_pos.y)
        perc.recently_seen = True
        perc.time_since_seen = 0.0
    else:
        perc.time_since_seen += interval
        if perc.recently_seen and perc.time_since_seen > cfg.memory_duration:
            _forget(perc)

    rate = interval / max(cfg.suspicion_build_time, 1e-6)
    perc.suspicion, perc.detection_level = step_suspicion(
        perc.suspicion, visible, perc.recently_seen, rate)


def perception_system(world: World, dt: float) -> None:
    """Advance every guard's interval timer; scan each time it elapses."""
    default_interval = _tun("ai.perception", "interval", 0.2)
    for eid, perc in world.all_of(Perception):
        interval = perc.interval if perc.interval > 0 else default_interval
        perc.timer += dt
        while perc.timer >= interval - _SNAP:
            perc.timer -= interval
            update_perception(world, eid, interval)


# ── Detection toggle ─────────────────────────────────────────────────

def enable_detection(world: World, eid: int) -> None:
    perc = world.get(eid, Perception)
    if perc is not None:
        perc.enabled = True


def disable_detection(world: World, eid: int) -> None:
    perc = world.get(eid, Perception)
    if perc is not None:
        perc.enabled = False
        perc.can_see_player = False


def can_detect_player(world: World, eid: int) -> bool:
    perc = world.get(eid, Perception)
    return bool(perc and perc.enabled)


# ── Visualizer helpers ───────────────────────────────────────────────

def dir_from_angle(world: World, eid: int, angle_deg: float,
                   is_global: bool = False) -> tuple[float, float]:
    """Unit vector for *angle_deg*; relative to the guard's facing unless global."""
    if not is_global:
        facing = world.get(eid, Facing)
        angle_deg += math.degrees(facing_to_angle(facing.direction if facing else "right"))
    rad = math.radians(angle_deg)
    return math.cos(rad), math.sin(rad)


def view_cone_points(world: World, eid: int,
                     steps: int | None = None) -> list[tuple[float, float]]:
    """Fan of cone edge points clipped against sight-blocking geometry.

    One ray per ~10° of ``view_angle`` unless *steps* is given.  The
    guard's own position is not included — prepend it for a polygon.
    """
    pos = world.get(eid, Position)
    cfg = world.get(eid, DetectionConfig)
    if pos is None or cfg is None:
        return []
    if steps is None:
        steps = max(1, round(cfg.view_angle * 0.1))
    step_size = cfg.view_angle / steps
    geo = world.res(Geometry)

    points = []
    for i in range(steps + 1):
        d = dir_from_angle(world, eid, -cfg.view_angle * 0.5 + step_size * i)
        hit = geo.raycast((pos.x, pos.y), d, cfg.view_radius,
                          cfg.obstacle_mask) if geo else None
        if hit is not None:
            points.append(hit.point)
        else:
            points.append((pos.x + d[0] * cfg.view_radius,
                           pos.y + d[1] * cfg.view_radius))
    return points
