"""
core/scene.py — Scene interface

The app runs one Scene at a time and forwards events, frame ticks,
fixed physics steps and draws to it.

To make a new scene:

    class MyScene(Scene):
        def on_enter(self, app):
            # setup, called when the app switches to this scene
            pass

        def handle_event(self, event, app):
            # pygame event
            pass

        def update(self, dt, app):
            # dt is seconds since last frame
            pass

        def fixed_update(self, dt, app):
            # dt is always app.physics_step
            pass

        def draw(self, surface, app):
            # draw to the surface
            pass
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pygame
    from core.app import App


class Scene:
    def on_enter(self, app: App):
        """Called when the app switches to this scene."""
        pass

    def on_exit(self, app: App):
        """Called when the app switches away or shuts down."""
        pass

    def handle_event(self, event: pygame.event.Event, app: App):
        """Process a single pygame event."""
        pass

    def update(self, dt: float, app: App):
        """Per-frame work. dt is seconds since the last frame."""
        pass

    def fixed_update(self, dt: float, app: App):
        """Fixed-step physics work. dt is the constant physics step."""
        pass

    def draw(self, surface: pygame.Surface, app: App):
        """Draw to the screen surface."""
        pass
