"""components.resources — World-level singletons and markers."""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class GameClock:
    """Monotonic game time — accumulated frame ``dt`` since start.

    Single source of truth for cooldowns and scheduled continuations.
    Advanced once per frame by ``tick_frame``.
    """
    time: float = 0.0


@dataclass
class Player:
    """Marks the player entity — the one target every guard looks for."""
    speed: float = 4.0         # m/s
