"""scenes/stealth_scene.py — Interactive guard courtyard.

Walk the player past patrolling guards and watch them notice, chase,
search and give up.  Each guard draws its vision cone (clipped against
walls), its patrol route, a detection meter and its state name.

Keys
----
WASD / arrows   move
1               distract guards near the player
2               push guards near the player away
3               scare guards near the player (flee)
H               stealth: blind every guard (toggle)
R               force stuck-recovery on every guard
V               toggle vision cones
F5              hot-reload tuning.toml
Esc             quit
"""

from __future__ import annotations
import math
import pygame

from core.app import App
from core.scene import Scene
from core import tuning
from core.constants import (
    TILE_SIZE, COLOR_BG, COLOR_ROUTE, COLOR_PLAYER, COLOR_GUARD, LAYER_COLORS,
)
from core.events import EventBus, VanishEffect
from core.geometry import Geometry
from core.tuning import get as _tun
from components import (
    Position, Sprite, Health, Player, PatrolRoute, Perception, Behavior,
    AttackConfig, DevLog,
)
from logic.ai.perception import find_player, view_cone_points
from logic.ai.states import state_name
from logic.effects import apply_effect, set_all_detection
from logic.recovery import force_recovery
from logic.tick import tick_frame, tick_physics, input_system
from scenes.drawing import (
    draw_circle_alpha, draw_polygon_alpha, draw_diamond, draw_meter,
)

_STATE_COLORS = {
    "patrol": (120, 200, 120),
    "suspicious": (255, 200, 50),
    "alerted": (255, 70, 60),
    "search": (255, 140, 40),
    "flee": (150, 150, 255),
}

# Smoke puff lifetime (s)
_PUFF_TIME = 0.6

_MOVE_KEYS = {
    pygame.K_w: (0, -1), pygame.K_UP: (0, -1),
    pygame.K_s: (0, 1), pygame.K_DOWN: (0, 1),
    pygame.K_a: (-1, 0), pygame.K_LEFT: (-1, 0),
    pygame.K_d: (1, 0), pygame.K_RIGHT: (1, 0),
}


def _px(x: float, y: float) -> tuple[int, int]:
    return int(x * TILE_SIZE), int(y * TILE_SIZE)


class StealthScene(Scene):
    def __init__(self, guards: list[int] | None = None):
        self.guards = list(guards or [])
        self.show_cones = True
        self.stealthed = False
        self.puffs: list[list[float]] = []      # [x, y, remaining]
        self._subscribed = False

    def on_enter(self, app: App):
        bus = app.world.res(EventBus)
        if bus is not None and not self._subscribed:
            bus.subscribe("VanishEffect", self._on_vanish)
            self._subscribed = True

    def _on_vanish(self, event: VanishEffect):
        self.puffs.append([event.x, event.y, _PUFF_TIME])

    # ── Input ────────────────────────────────────────────────────────

    def _nearby_guards(self, app: App) -> list[int]:
        _, ppos = find_player(app.world)
        if ppos is None:
            return []
        radius = _tun("demo", "effect_radius", 3.0)
        out = []
        for eid in self.guards:
            pos = app.world.get(eid, Position)
            if pos and math.hypot(pos.x - ppos.x, pos.y - ppos.y) <= radius:
                out.append(eid)
        return out

    def handle_event(self, event: pygame.event.Event, app: App):
        if event.type != pygame.KEYDOWN:
            return
        w = app.world
        if event.key == pygame.K_ESCAPE:
            app.running = False
        elif event.key == pygame.K_1:
            for eid in self._nearby_guards(app):
                apply_effect(w, eid, "distract",
                             duration=_tun("demo", "distract_duration", 2.0))
        elif event.key == pygame.K_2:
            for eid in self._nearby_guards(app):
                apply_effect(w, eid, "push_back",
                             strength=_tun("demo", "push_force", 6.0))
        elif event.key == pygame.K_3:
            for eid in self._nearby_guards(app):
                apply_effect(w, eid, "fear",
                             duration=_tun("demo", "fear_duration", 3.0))
        elif event.key == pygame.K_h:
            self.stealthed = not self.stealthed
            set_all_detection(w, not self.stealthed)
        elif event.key == pygame.K_r:
            for eid in self.guards:
                force_recovery(w, eid)
        elif event.key == pygame.K_v:
            self.show_cones = not self.show_cones
        elif event.key == pygame.K_F5:
            tuning.reload()

    # ── Ticks ────────────────────────────────────────────────────────

    def update(self, dt: float, app: App):
        keys = pygame.key.get_pressed()
        mx = my = 0
        for key, (kx, ky) in _MOVE_KEYS.items():
            if keys[key]:
                mx += kx
                my += ky
        mx, my = max(-1, min(1, mx)), max(-1, min(1, my))
        d = math.hypot(mx, my)
        input_system(app.world, (mx / d, my / d) if d else (0.0, 0.0))
        tick_frame(app.world, dt)
        self.guards = [eid for eid in self.guards if app.world.alive(eid)]
        for puff in self.puffs:
            puff[2] -= dt
        self.puffs = [p for p in self.puffs if p[2] > 0.0]

    def fixed_update(self, dt: float, app: App):
        tick_physics(app.world, dt)

    # ── Drawing ──────────────────────────────────────────────────────

    def draw(self, surface: pygame.Surface, app: App):
        surface.fill(COLOR_BG)
        w = app.world

        geo = w.res(Geometry)
        if geo is not None:
            for ob in geo.obstacles:
                x, y = _px(ob.x, ob.y)
                pygame.draw.rect(surface, LAYER_COLORS.get(ob.layer, (120, 120, 120)),
                                 (x, y, int(ob.w * TILE_SIZE), int(ob.h * TILE_SIZE)))

        for eid in self.guards:
            self._draw_guard(surface, app, eid)

        for x, y, remaining in self.puffs:
            frac = remaining / _PUFF_TIME
            cx, cy = _px(x, y)
            draw_circle_alpha(surface, (180, 180, 180, int(160 * frac)), cx, cy,
                              int(TILE_SIZE * (1.2 - 0.6 * frac)))

        for eid, _player, pos in w.query(Player, Position):
            cx, cy = _px(pos.x, pos.y)
            color = (110, 110, 80) if self.stealthed else COLOR_PLAYER
            pygame.draw.circle(surface, color, (cx, cy), TILE_SIZE // 3)
            hp = w.get(eid, Health)
            if hp is not None:
                draw_meter(surface, 10, 10, 160, 10, hp.current / max(hp.maximum, 1e-6),
                           (200, 60, 60))
                app.draw_text(surface, f"HP {hp.current:.0f}/{hp.maximum:.0f}",
                              176, 6, font=app.font_sm)

        self._draw_hud(surface, app)

    def _draw_guard(self, surface: pygame.Surface, app: App, eid: int):
        w = app.world
        pos = w.get(eid, Position)
        spr = w.get(eid, Sprite)
        beh = w.get(eid, Behavior)
        perc = w.get(eid, Perception)
        route = w.get(eid, PatrolRoute)
        if pos is None:
            return

        if route is not None and len(route) > 1:
            pts = [_px(x, y) for x, y in route.waypoints]
            pygame.draw.lines(surface, COLOR_ROUTE, True, pts, 1)
            for px, py in pts:
                draw_diamond(surface, COLOR_ROUTE, px, py, 4)

        if spr is not None and not spr.visible:
            return

        name = state_name(beh.state if beh else None)
        color = _STATE_COLORS.get(name, COLOR_GUARD)
        cx, cy = _px(pos.x, pos.y)

        if self.show_cones and perc is not None and perc.enabled:
            cone = [(cx, cy)] + [_px(x, y) for x, y in view_cone_points(w, eid)]
            draw_polygon_alpha(surface, (*color, 35), cone)

        if perc is not None and perc.last_known is not None and name != "patrol":
            lx, ly = _px(*perc.last_known)
            pygame.draw.circle(surface, (255, 255, 255), (lx, ly), 4, 1)

        pygame.draw.circle(surface, spr.color if spr else color, (cx, cy), TILE_SIZE // 3)
        atk = w.get(eid, AttackConfig)
        if atk is not None and atk.attacking:
            pygame.draw.circle(surface, (255, 60, 60), (cx, cy),
                               int(atk.range * TILE_SIZE), 1)
        if spr is not None:
            app.draw_text(surface, spr.char, cx - 4, cy - 8, (20, 20, 20))

        level = perc.detection_level if perc else 0.0
        draw_meter(surface, cx - 16, cy - 24, 32, 4, level, color)
        app.draw_text(surface, name, cx - 18, cy + 12, color, app.font_sm)

    def _draw_hud(self, surface: pygame.Surface, app: App):
        sw, sh = surface.get_size()
        lines = [
            "WASD move  1 distract  2 push  3 fear  H stealth  R recover  V cones  F5 tuning",
            f"stealth: {'ON' if self.stealthed else 'off'}",
        ]
        for i, line in enumerate(lines):
            app.draw_text_bg(surface, line, 10, sh - 40 + i * 16, font=app.font_sm)

        log = app.world.res(DevLog)
        if log is None:
            return
        for i, e in enumerate(log.recent(12)):
            text = f"{e['t']:6.1f} #{e['eid']} {e['cat']}: {e['msg']}"
            app.draw_text_bg(surface, text, sw - 330, 10 + i * 14,
                             (200, 200, 200), font=app.font_sm)
