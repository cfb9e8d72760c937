"""logic/movement.py — Physics / movement system.

Moves entities with Position+Velocity (plus any Knockback impulse),
resolves collisions against level geometry (wall-sliding), and nudges
overlapping colliders apart.

Every obstacle that blocks a move is reported as a ``TerrainCollision``
event; stuck-recovery listens for the terrain-layer ones.
"""

from __future__ import annotations
from core.ecs import World
from core.constants import SOLID_MASK
from core.events import EventBus, TerrainCollision
from core.geometry import Geometry
from components import Position, Velocity, Collider, Knockback


def _blocked(geo: Geometry | None, x: float, y: float, col: Collider | None):
    if geo is None or col is None or not col.enabled:
        return None
    return geo.overlap(x, y, col.width, col.height, SOLID_MASK)


def movement_system(world: World, dt: float) -> None:
    """Integrate velocities for one physics step."""
    geo = world.res(Geometry)
    bus = world.res(EventBus)

    colliders = {}
    for oid, opos, oc in world.query(Position, Collider):
        if oc.enabled:
            colliders[oid] = (opos, oc)

    for eid, pos, vel in world.query(Position, Velocity):
        col = world.get(eid, Collider)
        kb = world.get(eid, Knockback)
        vx, vy = vel.x, vel.y
        if kb is not None:
            vx += kb.x
            vy += kb.y
        if vx == 0.0 and vy == 0.0:
            continue

        nx = pos.x + vx * dt
        ny = pos.y + vy * dt
        hits = []

        # Axis-separated collision: allows wall-sliding
        ob = _blocked(geo, nx, pos.y, col)
        if ob is not None:
            hits.append(ob)
            nx = pos.x
            vel.x = 0.0
            if kb is not None:
                kb.x = 0.0
        ob = _blocked(geo, nx, ny, col)
        if ob is not None:
            if ob not in hits:
                hits.append(ob)
            ny = pos.y
            vel.y = 0.0
            if kb is not None:
                kb.y = 0.0

        # Entity collisions: soft separation (nudge apart)
        if eid in colliders:
            for oid, (opos, oc) in colliders.items():
                if oid == eid or not world.alive(oid):
                    continue
                ddx = nx - opos.x
                ddy = ny - opos.y
                min_dist = (col.width + oc.width) * 0.5
                dist_sq = ddx * ddx + ddy * ddy
                if dist_sq < min_dist * min_dist and dist_sq > 0.0001:
                    dist = dist_sq ** 0.5
                    push = (min_dist - dist) * 0.4
                    cx = nx + ddx / dist * push
                    cy = ny + ddy / dist * push
                    # Never nudge into geometry
                    if _blocked(geo, cx, cy, col) is None:
                        nx, ny = cx, cy

        pos.x = nx
        pos.y = ny

        if bus is not None:
            for ob in hits:
                bus.emit(TerrainCollision(eid=eid, layer=ob.layer,
                                          x=pos.x, y=pos.y))

        # Knockback friction
        if kb is not None:
            kb.x *= kb.friction
            kb.y *= kb.friction
            if abs(kb.x) < 0.05:
                kb.x = 0.0
            if abs(kb.y) < 0.05:
                kb.y = 0.0
