"""logic/ai/steering.py — Reactive obstacle avoidance and movement helpers.

Velocity-producing functions used by the behaviour states.  Every
movement intent goes through ``steer`` before it becomes a velocity:

    probe 5 rays at 0°, ±45°, ±90° of the desired heading
    no hit          → desired heading, untouched
    ≥ 1 hit         → average the hit normals, take the perpendicular
                      that keeps forward progress, blend it in

There is no global planning here; a guard that wedges itself against
terrain is handled by ``logic/recovery.py`` instead.
"""

from __future__ import annotations
import math

from core.ecs import World
from core.geometry import Geometry
from components import Position, Velocity, Facing, Avoidance, AnimIntent

# Probe offsets relative to the desired heading (degrees).
PROBE_ANGLES = (0.0, 45.0, -45.0, 90.0, -90.0)

# Below this a movement component does not turn the guard.
FACING_DEAD_ZONE = 0.1

_EPS = 1e-9


def _rotate(x: float, y: float, deg: float) -> tuple[float, float]:
    r = math.radians(deg)
    c, s = math.cos(r), math.sin(r)
    return x * c - y * s, x * s + y * c


def _normalize(x: float, y: float) -> tuple[float, float] | None:
    n = math.hypot(x, y)
    if n < _EPS:
        return None
    return x / n, y / n


def steer(geo: Geometry | None, origin: tuple[float, float],
          desired: tuple[float, float], avoidance: Avoidance) -> tuple[float, float]:
    """Return *desired* corrected for obstacles near *origin*.

    A zero *desired* comes back as-is.  With nothing in probe range the
    input tuple is returned unchanged, not re-normalised.
    """
    unit = _normalize(*desired)
    if unit is None or geo is None:
        return desired

    sx = sy = 0.0
    hits = 0
    for angle in PROBE_ANGLES:
        ray = _rotate(unit[0], unit[1], angle) if angle else unit
        hit = geo.raycast(origin, ray, avoidance.ray_distance,
                          avoidance.layer_mask)
        if hit is not None:
            sx += hit.normal[0]
            sy += hit.normal[1]
            hits += 1
    if not hits:
        return desired

    # Opposing normals can cancel out completely
    avg = _normalize(sx / hits, sy / hits)
    if avg is None:
        return desired

    px, py = -avg[1], avg[0]
    if px * unit[0] + py * unit[1] < 0.0:
        px, py = -px, -py

    blended = _normalize(unit[0] + px * avoidance.avoidance_force,
                         unit[1] + py * avoidance.avoidance_force)
    return blended if blended is not None else desired


def has_clear_path(world: World, eid: int, direction: tuple[float, float],
                   distance: float) -> bool:
    """True if nothing on the guard's avoidance layers blocks *direction*."""
    pos = world.get(eid, Position)
    geo = world.res(Geometry)
    if pos is None or geo is None:
        return True
    avoid = world.get(eid, Avoidance)
    mask = avoid.layer_mask if avoid else Avoidance().layer_mask
    return geo.raycast((pos.x, pos.y), direction, distance, mask) is None


# ── Facing ───────────────────────────────────────────────────────────

def face_toward(facing: Facing, dx: float, dy: float) -> None:
    """Set *facing* to the dominant axis of (dx, dy).

    Components within the dead zone leave the facing alone, so a guard
    drifting almost vertically does not flicker left/right.
    """
    ax, ay = abs(dx), abs(dy)
    if ax >= ay and ax > FACING_DEAD_ZONE:
        facing.direction = "right" if dx > 0 else "left"
    elif ay > FACING_DEAD_ZONE:
        facing.direction = "down" if dy > 0 else "up"


# ── Velocity helpers ─────────────────────────────────────────────────

def halt(world: World, eid: int) -> None:
    """Zero velocity and clear the moving flag."""
    vel = world.get(eid, Velocity)
    if vel is not None:
        vel.x, vel.y = 0.0, 0.0
    anim = world.get(eid, AnimIntent)
    if anim is not None:
        anim.move_x, anim.move_y = 0.0, 0.0
        anim.is_moving = False


def drive(world: World, eid: int, dx: float, dy: float,
          speed: float) -> tuple[float, float]:
    """Move *eid* along (dx, dy) at *speed*, through the avoidance probe.

    Returns the heading actually used; ``(0, 0)`` for a zero input.
    """
    unit = _normalize(dx, dy)
    if unit is None:
        halt(world, eid)
        return 0.0, 0.0

    pos = world.get(eid, Position)
    avoid = world.get(eid, Avoidance)
    heading = unit
    if pos is not None and avoid is not None:
        heading = steer(world.res(Geometry), (pos.x, pos.y), unit, avoid)

    vel = world.get(eid, Velocity)
    if vel is not None:
        vel.x = heading[0] * speed
        vel.y = heading[1] * speed

    facing = world.get(eid, Facing)
    if facing is not None:
        face_toward(facing, heading[0], heading[1])

    anim = world.get(eid, AnimIntent)
    if anim is not None:
        anim.move_x, anim.move_y = heading
        anim.is_moving = speed > 0.0
    return heading


def move_toward(world: World, eid: int, tx: float, ty: float,
                speed: float, arrival: float = 0.05) -> float:
    """Drive toward (tx, ty); stop inside *arrival*.  Returns the distance."""
    pos = world.get(eid, Position)
    if pos is None:
        return 0.0
    dx = tx - pos.x
    dy = ty - pos.y
    dist = math.hypot(dx, dy)
    if dist <= arrival:
        halt(world, eid)
        return dist
    drive(world, eid, dx, dy, speed)
    return dist
