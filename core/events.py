"""core/events.py — Lightweight event bus.

Decouples systems that need to *signal* something from systems that
*react* to it.  The bus lives as an ECS resource::

    from core.events import EventBus
    bus = world.res(EventBus)
    bus.emit(AttackStarted(eid=42, target_eid=1))

Consumers subscribe with a callable::

    bus.subscribe("TerrainCollision", my_handler)

And the physics tick drains once per step::

    bus.drain()          # calls all handlers for pending events

Design rules:
  - Events are plain dataclasses — no behaviour.
  - ``emit()`` is O(1) (just appends).
  - ``drain()`` processes all queued events in FIFO order.
  - Handlers may emit new events; those are processed in the same drain.
"""

from __future__ import annotations
import traceback
from dataclasses import dataclass
from typing import Any, Callable
from collections import defaultdict


# ═══════════════════════════════════════════════════════════════════
#  Event definitions
# ═══════════════════════════════════════════════════════════════════

@dataclass
class StateChanged:
    """A guard switched behaviour state."""
    eid: int
    old: str = ""
    new: str = ""


@dataclass
class AttackStarted:
    """A guard began an attack wind-up (animation trigger)."""
    eid: int
    target_eid: int | None = None


@dataclass
class PlayerDamaged:
    """An attack landed on the player's health."""
    attacker_eid: int
    target_eid: int
    amount: float = 0.0
    remaining: float = 0.0


@dataclass
class TerrainCollision:
    """Movement was blocked by an obstacle."""
    eid: int
    layer: int = 0
    x: float = 0.0
    y: float = 0.0


@dataclass
class VanishEffect:
    """Play the smoke puff at (x, y) — hook for VFX / audio."""
    eid: int
    x: float = 0.0
    y: float = 0.0


@dataclass
class RecoveryFinished:
    """A stuck guard reappeared on its patrol route."""
    eid: int
    x: float = 0.0
    y: float = 0.0


@dataclass
class GuardDistracted:
    """An item effect froze a guard for ``duration`` seconds."""
    eid: int
    duration: float = 0.0


# ═══════════════════════════════════════════════════════════════════
#  Event Bus
# ═══════════════════════════════════════════════════════════════════

class EventBus:
    """Fire-and-forget event bus stored as an ECS resource."""

    def __init__(self):
        self._queue: list[Any] = []
        self._subs: dict[str, list[Callable]] = defaultdict(list)
        self._stats: dict[str, int] = defaultdict(int)

    # ── Public API ───────────────────────────────────────────────────

    def emit(self, event) -> None:
        """Queue an event for processing on next ``drain()``."""
        self._queue.append(event)

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Register *handler* to receive events of *event_type*.

        *event_type* is the class name, e.g. ``"TerrainCollision"``.
        """
        self._subs[event_type].append(handler)

    def drain(self) -> int:
        """Process all queued events.  Returns number processed."""
        processed = 0
        safety = 1000
        while self._queue and safety > 0:
            batch = self._queue[:]
            self._queue.clear()
            for event in batch:
                name = type(event).__name__
                self._stats[name] += 1
                for handler in self._subs.get(name, []):
                    try:
                        handler(event)
                    except Exception as exc:
                        print(f"[EVENT] handler error for {name}: {exc}")
                        traceback.print_exc()
            processed += len(batch)
            safety -= 1
        return processed

    def clear(self) -> None:
        """Discard all pending events."""
        self._queue.clear()

    def pending(self) -> list[Any]:
        """Events waiting for the next drain (oldest first)."""
        return list(self._queue)

    def stats(self) -> dict[str, int]:
        """Return cumulative event counts by type."""
        return dict(self._stats)

    def __repr__(self) -> str:
        return f"EventBus(pending={len(self._queue)}, subs={len(self._subs)})"
