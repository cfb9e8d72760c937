"""
core/app.py — Pygame application shell

Owns the window, the shared World and the one active scene, and runs
the two-cadence loop the guard systems expect:

    app = App(title="Guard Lab", width=960, height=640, world=make_world())
    app.set_scene(StealthScene(guards=[...]))
    app.run()

Frame logic runs once per rendered frame (``Scene.update``); physics
runs in fixed ``PHYSICS_STEP`` increments (``Scene.fixed_update``),
as many as the elapsed frame time covers.
"""

from __future__ import annotations
import pygame
from core.scene import Scene
from core.constants import FRAME_RATE, PHYSICS_STEP
from core.ecs import World

# Longest frame the physics accumulator will try to catch up on.
_MAX_FRAME = 0.25


class App:
    def __init__(self, title: str = "Guard Lab", width: int = 960, height: int = 640,
                 world: World | None = None):
        pygame.init()
        self.screen = pygame.display.set_mode((width, height))
        pygame.display.set_caption(title)
        self.clock = pygame.time.Clock()
        self.running = True
        self.fps = FRAME_RATE
        self.dt = 0.0
        self.physics_step = PHYSICS_STEP
        self._accumulator = 0.0
        self.scene: Scene | None = None
        self.world = world if world is not None else World()

        self.font = pygame.font.SysFont("monospace", 14)
        self.font_sm = pygame.font.SysFont("monospace", 11)

    def set_scene(self, scene: Scene):
        if self.scene is not None:
            self.scene.on_exit(self)
        self.scene = scene
        scene.on_enter(self)

    # -- Main loop --

    def run(self):
        while self.running:
            self.dt = self.clock.tick(self.fps) / 1000.0

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif self.scene:
                    self.scene.handle_event(event, self)

            if self.scene:
                self.scene.update(self.dt, self)
                self._accumulator += min(self.dt, _MAX_FRAME)
                while self._accumulator >= self.physics_step:
                    self.scene.fixed_update(self.physics_step, self)
                    self._accumulator -= self.physics_step
                self.scene.draw(self.screen, self)

            pygame.display.flip()

        if self.scene:
            self.scene.on_exit(self)
        pygame.quit()

    # -- Text --

    def draw_text(self, surface: pygame.Surface, text: str, x: int, y: int,
                  color=(255, 255, 255), font=None):
        """Returns the blitted rect for layout chaining."""
        img = (font or self.font).render(text, True, color)
        return surface.blit(img, (x, y))

    def draw_text_bg(self, surface: pygame.Surface, text: str, x: int, y: int,
                     color=(255, 255, 255), bg=(0, 0, 0, 160), font=None,
                     pad: int = 2):
        img = (font or self.font).render(text, True, color)
        w, h = img.get_size()
        box = pygame.Surface((w + pad * 2, h + pad * 2), pygame.SRCALPHA)
        box.fill(bg)
        surface.blit(box, (x - pad, y - pad))
        return surface.blit(img, (x, y))
