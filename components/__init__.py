"""components — ECS component dataclasses, organised by domain.

Submodules
----------
spatial     Position, Velocity, Collider, Facing, Knockback
rendering   Identity, Sprite
rpg         Health
ai          DetectionConfig, PatrolRoute, Locomotion, Avoidance,
            Perception, Behavior, AttackConfig, Recovery, AnimIntent
resources   GameClock, Player
dev_log     DevLog

All public names are re-exported here so callers can simply do
``from components import Position``.
"""

# ── Spatial ──────────────────────────────────────────────────────────
from components.spatial import Position, Velocity, Collider, Facing, Knockback

# ── Rendering ────────────────────────────────────────────────────────
from components.rendering import Identity, Sprite

# ── RPG ──────────────────────────────────────────────────────────────
from components.rpg import Health

# ── AI ───────────────────────────────────────────────────────────────
from components.ai import (
    DetectionConfig, PatrolRoute, Locomotion, Avoidance,
    Perception, Behavior, AttackConfig, Recovery, AnimIntent,
)

# ── World resources / singletons ─────────────────────────────────────
from components.resources import GameClock, Player
from components.dev_log import DevLog

__all__ = [
    # spatial
    "Position", "Velocity", "Collider", "Facing", "Knockback",
    # rendering
    "Identity", "Sprite",
    # rpg
    "Health",
    # ai
    "DetectionConfig", "PatrolRoute", "Locomotion", "Avoidance",
    "Perception", "Behavior", "AttackConfig", "Recovery", "AnimIntent",
    # resources
    "GameClock", "Player", "DevLog",
]
