"""components.spatial — Position, movement, and collision shapes.

All coordinates and dimensions are in metres.  ``Position`` is the
centre of the entity.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class Position:
    x: float = 0.0        # m
    y: float = 0.0        # m


@dataclass
class Velocity:
    x: float = 0.0        # m/s
    y: float = 0.0        # m/s


@dataclass
class Collider:
    """Axis-aligned box centred on Position.

    ``enabled`` is switched off while a guard is vanished during
    stuck-recovery so it neither blocks nor collides.
    """
    width: float = 0.8    # m
    height: float = 0.8   # m
    enabled: bool = True


@dataclass
class Facing:
    """Which way an entity looks.

    Values: 'right', 'left', 'up', 'down'.
    Drives the vision cone and sprite flip.
    """
    direction: str = "right"


@dataclass
class Knockback:
    """Impulse velocity added on top of Velocity, decays by friction."""
    x: float = 0.0        # m/s
    y: float = 0.0        # m/s
    friction: float = 0.85   # per physics step multiplier
