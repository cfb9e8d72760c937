"""components.ai — Detection config, perception, behaviour, patrol, recovery.

Split into *shared* inputs (``DetectionConfig``, ``PatrolRoute``) that
many guards may reference, and *owned* per-guard state that only the
matching system mutates:

    Perception   ← logic/ai/perception.py
    Behavior     ← logic/ai/behavior.py  (+ states.py)
    AttackConfig ← logic/combat/attacks.py
    Recovery     ← logic/recovery.py
    AnimIntent   ← written by all of the above, read only by the renderer
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any

from core.constants import SIGHT_MASK, AVOID_MASK, LAYER_TERRAIN
from core.timers import CancelToken


# ── Shared, read-only ────────────────────────────────────────────────

@dataclass(frozen=True)
class DetectionConfig:
    """Per-guard-type vision and suspicion parameters.

    ``view_radius``          — max sight distance (m, > 0).
    ``view_angle``           — full cone width (°, 0–360).
    ``obstacle_mask``        — geometry layers that block line of sight.
    ``suspicion_threshold``  — detection level that makes a patrol suspicious.
    ``alert_threshold``      — detection level that makes a patrol alerted.
    ``suspicion_build_time`` — seconds of continuous sight from 0 → 1 (> 0).
    ``memory_duration``      — seconds a lost target is still remembered.
    """
    view_radius: float = 5.0
    view_angle: float = 90.0
    obstacle_mask: int = SIGHT_MASK
    suspicion_threshold: float = 0.3
    alert_threshold: float = 0.8
    suspicion_build_time: float = 3.0
    memory_duration: float = 5.0


@dataclass
class PatrolRoute:
    """Cyclic list of ``(x, y)`` waypoints.  Index 0 follows the last."""
    waypoints: list[tuple[float, float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.waypoints)

    def wrap(self, index: int) -> int:
        """Clamp *index* against the current length (0 for empty routes)."""
        n = len(self.waypoints)
        return index % n if n else 0

    def point(self, index: int) -> tuple[float, float] | None:
        if not self.waypoints:
            return None
        return self.waypoints[self.wrap(index)]


# ── Movement tuning (per guard) ──────────────────────────────────────

@dataclass
class Locomotion:
    """Base movement parameters.

    ``speed``            — patrol speed (m/s); other states multiply it.
    ``wait_time``        — pause at each waypoint (s), split over 4 looks.
    ``reached_distance`` — waypoint / last-known arrival radius (m).
    """
    speed: float = 2.0
    wait_time: float = 2.0
    reached_distance: float = 0.5


@dataclass
class Avoidance:
    """Reactive steering probe.

    ``ray_distance``    — probe length (m).
    ``avoidance_force`` — weight of the sidestep vs. the desired heading.
    ``layer_mask``      — geometry layers the probes react to.
    """
    ray_distance: float = 1.0
    avoidance_force: float = 2.0
    layer_mask: int = AVOID_MASK


# ── Owned per-guard state ────────────────────────────────────────────

@dataclass
class Perception:
    """What one guard currently knows about the player.

    ``player_eid`` is a weak reference — an entity id resolved through
    the world on use, dropped when memory runs out.  ``target_eid`` is
    the locator's cached answer ("who is the player"), kept even while
    the guard has forgotten about them.
    """
    can_see_player: bool = False
    detection_level: float = 0.0      # 0–1, after the power curve
    suspicion: float = 0.0            # 0–1, raw accumulator
    last_known: tuple[float, float] | None = None
    player_eid: int | None = None
    target_eid: int | None = None
    time_since_seen: float = 0.0      # s
    recently_seen: bool = False

    # Detection toggle (external, e.g. player stealth ability)
    enabled: bool = True
    # Suppressed while the guard is vanished by stuck-recovery
    suspended: bool = False

    # Internal interval timer
    interval: float = 0.2             # s
    timer: float = 0.0                # s accumulated toward next update


@dataclass
class Behavior:
    """Active behaviour state plus the guard-level override flags.

    ``state`` is one of the variants in ``logic.ai.states``.
    ``token`` revokes continuations started by the current state.
    ``life_token`` revokes everything the guard scheduled; cancelled on
    despawn.
    """
    state: Any = None
    token: CancelToken = field(default_factory=CancelToken)
    life_token: CancelToken = field(default_factory=CancelToken)
    distracted: bool = False
    warned_no_route: bool = False
    transitions: int = 0


@dataclass
class AttackConfig:
    """Melee attack parameters and bookkeeping.

    ``last_attack_time`` is absolute GameClock time (s).
    """
    damage: float = 10.0              # HP
    range: float = 1.5                # m
    cooldown: float = 1.0             # s
    last_attack_time: float = -math.inf
    attacking: bool = False


@dataclass
class Recovery:
    """Stuck-recovery settings and state.

    ``has_snapshot`` marks ``last_patrol_index`` / ``last_patrol_position``
    as valid — a waypoint at the origin is a real waypoint.
    """
    enabled: bool = True
    cooldown: float = 5.0             # s
    disappear_duration: float = 1.0   # s
    terrain_mask: int = LAYER_TERRAIN
    in_progress: bool = False
    last_time: float = -math.inf
    has_snapshot: bool = False
    last_patrol_index: int = 0
    last_patrol_position: tuple[float, float] = (0.0, 0.0)
    sequences: int = 0
    token: CancelToken = field(default_factory=CancelToken)


@dataclass
class AnimIntent:
    """Outbound animation / visual intent.  Written by the AI, never read by it.

    ``attack_trigger`` is a one-shot flag; the consumer clears it.
    """
    move_x: float = 0.0
    move_y: float = 0.0
    is_moving: bool = False
    is_alerted: bool = False
    is_suspicious: bool = False
    attack_trigger: bool = False
