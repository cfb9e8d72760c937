"""core/geometry.py — Static obstacle geometry and ray queries.

The level's blocking shapes are axis-aligned boxes, each tagged with a
single layer bit (see ``core.constants``).  ``Geometry`` is stored as a
world resource and answers the two questions the AI asks:

    geo = world.res(Geometry)
    hit = geo.raycast((x, y), (dx, dy), 5.0, SIGHT_MASK)
    if hit is None:
        ...  # clear line

    geo.overlap(x, y, w, h, SOLID_MASK)   # → first Obstacle or None

Rays use the slab method, so the reported normal is the outward face
normal of the box side the ray enters through.  A ray that *starts*
inside a box hits it at distance 0 with the normal facing back along
the ray.

These live in ``core/`` (not ``logic/``) because movement, perception,
steering and the renderer all need them.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field

from core.constants import LAYER_WALL

_EPS = 1e-9


@dataclass(frozen=True)
class Obstacle:
    """Axis-aligned blocking box.  ``(x, y)`` is the top-left corner (m)."""
    x: float
    y: float
    w: float
    h: float
    layer: int = LAYER_WALL

    def contains(self, px: float, py: float) -> bool:
        return (self.x < px < self.x + self.w
                and self.y < py < self.y + self.h)


@dataclass(frozen=True)
class RayHit:
    """Result of a successful raycast."""
    point: tuple[float, float]
    normal: tuple[float, float]
    distance: float
    obstacle: Obstacle

    @property
    def layer(self) -> int:
        return self.obstacle.layer


@dataclass
class Geometry:
    """All static obstacles of the current level."""
    obstacles: list[Obstacle] = field(default_factory=list)

    def add(self, obstacle: Obstacle) -> Obstacle:
        self.obstacles.append(obstacle)
        return obstacle

    def add_box(self, x: float, y: float, w: float, h: float,
                layer: int = LAYER_WALL) -> Obstacle:
        return self.add(Obstacle(x=x, y=y, w=w, h=h, layer=layer))

    def clear(self) -> None:
        self.obstacles.clear()

    # ── Queries ──────────────────────────────────────────────────────

    def raycast(self, origin: tuple[float, float],
                direction: tuple[float, float],
                max_distance: float, layer_mask: int) -> RayHit | None:
        """Return the nearest hit along the ray, or ``None``.

        *direction* need not be normalised; a zero vector never hits.
        Only obstacles whose layer is in *layer_mask* are considered.
        """
        dx, dy = direction
        length = math.hypot(dx, dy)
        if length < _EPS or max_distance <= 0.0:
            return None
        dx /= length
        dy /= length
        ox, oy = origin

        best: RayHit | None = None
        for ob in self.obstacles:
            if not (ob.layer & layer_mask):
                continue
            hit = _ray_box(ox, oy, dx, dy, ob)
            if hit is None:
                continue
            t, normal = hit
            if t > max_distance:
                continue
            if best is None or t < best.distance:
                best = RayHit(point=(ox + dx * t, oy + dy * t),
                              normal=normal, distance=t, obstacle=ob)
        return best

    def line_clear(self, x1: float, y1: float, x2: float, y2: float,
                   layer_mask: int) -> bool:
        """Return True if nothing in *layer_mask* blocks (x1,y1)→(x2,y2)."""
        dist = math.hypot(x2 - x1, y2 - y1)
        if dist < _EPS:
            return True
        return self.raycast((x1, y1), (x2 - x1, y2 - y1), dist,
                            layer_mask) is None

    def overlap(self, x: float, y: float, w: float, h: float,
                layer_mask: int) -> Obstacle | None:
        """Return the first obstacle overlapping the box, or ``None``.

        The box is centred on ``(x, y)`` — entity positions are centres.
        """
        left = x - w * 0.5
        top = y - h * 0.5
        for ob in self.obstacles:
            if not (ob.layer & layer_mask):
                continue
            if (left < ob.x + ob.w and left + w > ob.x
                    and top < ob.y + ob.h and top + h > ob.y):
                return ob
        return None


def _ray_box(ox: float, oy: float, dx: float, dy: float,
             ob: Obstacle) -> tuple[float, tuple[float, float]] | None:
    """Slab test for a unit ray against one box.

    Returns ``(t, normal)`` for the entry point, or ``None``.
    """
    if ob.contains(ox, oy):
        return 0.0, (-dx, -dy)

    t_near = -math.inf
    t_far = math.inf
    normal = (0.0, 0.0)

    for o, d, lo, hi, axis in ((ox, dx, ob.x, ob.x + ob.w, 0),
                               (oy, dy, ob.y, ob.y + ob.h, 1)):
        if abs(d) < _EPS:
            # Parallel to this slab: must already be inside it
            if o < lo or o > hi:
                return None
            continue
        t1 = (lo - o) / d
        t2 = (hi - o) / d
        # Entering through the low face means the face points toward -axis
        n_sign = -1.0
        if t1 > t2:
            t1, t2 = t2, t1
            n_sign = 1.0
        if t1 > t_near:
            t_near = t1
            normal = (n_sign, 0.0) if axis == 0 else (0.0, n_sign)
        t_far = min(t_far, t2)
        if t_near > t_far:
            return None

    if t_far < 0.0 or t_near < 0.0:
        return None
    return t_near, normal
