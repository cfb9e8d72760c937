"""core/constants.py — Shared constants used across the codebase.

Centralises magic numbers so there's exactly one place to change them.

Unit System
-----------
All gameplay distances are measured in **metres** (1 tile = 1 m).

    Distance / position     m       (metres)
    Speed                   m/s     (metres per second)
    Time                    s       (seconds, real time)
    Health                  HP      (hit points)
    Angles                  °       (degrees)

Rendering converts to pixels via ``TILE_SIZE`` (px per metre).
No gameplay code should reference pixels — only the renderer.

Geometry Layers
~~~~~~~~~~~~~~~
Obstacles carry exactly one layer bit.  Queries take a *mask* — the
OR of every layer they care about — so a single raycast can filter
e.g. "walls and terrain, but not low crates".

    LAYER_WALL      blocks sight, blocks movement
    LAYER_TERRAIN   blocks movement, triggers stuck-recovery on contact
    LAYER_PROP      blocks movement only (low cover — see-through)
"""

# ── Geometry layers (bit flags) ─────────────────────────────────────
LAYER_NONE = 0
LAYER_WALL = 1 << 0
LAYER_TERRAIN = 1 << 1
LAYER_PROP = 1 << 2
LAYER_ALL = LAYER_WALL | LAYER_TERRAIN | LAYER_PROP

LAYER_NAMES: dict[str, int] = {
    "wall": LAYER_WALL,
    "terrain": LAYER_TERRAIN,
    "prop": LAYER_PROP,
}

# Default masks
SIGHT_MASK = LAYER_WALL | LAYER_TERRAIN        # what blocks line of sight
AVOID_MASK = LAYER_ALL                          # what steering probes for
SOLID_MASK = LAYER_ALL                          # what movement collides with

# ── Host loop cadences ──────────────────────────────────────────────
FRAME_RATE = 60                  # Hz  (render / frame tick)
PHYSICS_STEP = 1.0 / 50.0        # s   (fixed physics tick)

# ── Rendering ───────────────────────────────────────────────────────
TILE_SIZE = 32                   # px per metre

COLOR_BG = (22, 24, 28)
COLOR_WALL = (90, 90, 100)
COLOR_TERRAIN = (70, 110, 60)
COLOR_PROP = (130, 100, 60)
COLOR_PLAYER = (255, 255, 100)
COLOR_GUARD = (200, 200, 200)
COLOR_ROUTE = (60, 160, 60)

LAYER_COLORS: dict[int, tuple[int, int, int]] = {
    LAYER_WALL: COLOR_WALL,
    LAYER_TERRAIN: COLOR_TERRAIN,
    LAYER_PROP: COLOR_PROP,
}
