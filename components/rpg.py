"""components.rpg — Player health (the damage sink guards attack)."""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class Health:
    current: float = 30.0      # HP
    maximum: float = 30.0      # HP

    @property
    def dead(self) -> bool:
        return self.current <= 0

    def apply_damage(self, amount: float) -> float:
        """Subtract *amount* (floored at 0).  Returns remaining HP."""
        self.current = max(0.0, self.current - max(0.0, amount))
        return self.current

    def heal(self, amount: float) -> float:
        self.current = min(self.maximum, self.current + max(0.0, amount))
        return self.current
