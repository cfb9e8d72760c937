"""scenes/drawing.py — Shared drawing utilities for the guard demo.

World coordinates are metres; everything here takes already-converted
pixel coordinates.
"""

from __future__ import annotations
import pygame

# Max pixel extent for FILLED alpha overlays.
# Kept small to avoid giant Surface allocations.
_MAX_RENDER_PX = 1000


def draw_circle_alpha(surface: pygame.Surface, color: tuple,
                      cx: int, cy: int, radius: int):
    """Draw a semi-transparent filled circle."""
    if radius < 2:
        return
    r, g, b, a = color
    d = radius * 2 + 2
    cs = pygame.Surface((d, d), pygame.SRCALPHA)
    pygame.draw.circle(cs, (r, g, b, a), (d // 2, d // 2), radius)
    surface.blit(cs, (cx - d // 2, cy - d // 2))


def draw_polygon_alpha(surface: pygame.Surface, color: tuple,
                       pts: list[tuple[int, int]]):
    """Draw a semi-transparent filled polygon (vision cone fan).

    Falls back to an outline when the bounding box is too large.
    """
    if len(pts) < 3:
        return
    r, g, b = color[:3]
    a = color[3] if len(color) > 3 else 40
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    w = max_x - min_x + 2
    h = max_y - min_y + 2
    if w > _MAX_RENDER_PX or h > _MAX_RENDER_PX:
        pygame.draw.polygon(surface, (r, g, b), pts, 1)
        return
    s = pygame.Surface((w, h), pygame.SRCALPHA)
    local_pts = [(px - min_x + 1, py - min_y + 1) for px, py in pts]
    pygame.draw.polygon(s, (r, g, b, a), local_pts)
    surface.blit(s, (min_x - 1, min_y - 1))


def draw_diamond(surface: pygame.Surface, color: tuple,
                 cx: int, cy: int, size: int):
    """Draw a small diamond marker."""
    points = [(cx, cy - size), (cx + size, cy),
              (cx, cy + size), (cx - size, cy)]
    pygame.draw.polygon(surface, color, points, 2)


def draw_meter(surface: pygame.Surface, x: int, y: int, w: int, h: int,
               frac: float, color: tuple, bg: tuple = (40, 40, 40)):
    """Horizontal fill bar, *frac* in [0, 1]."""
    frac = max(0.0, min(1.0, frac))
    pygame.draw.rect(surface, bg, (x, y, w, h))
    if frac > 0:
        pygame.draw.rect(surface, color, (x, y, max(1, int(w * frac)), h))
    pygame.draw.rect(surface, (90, 90, 90), (x, y, w, h), 1)
