"""logic/combat — Combat subpackage.

Modules
-------
attacks      — combat_system() frame check, start_attack() sequence,
               can_attack()

Public symbols are re-exported here for ``from logic.combat import X``.
"""

# ── attacks ──────────────────────────────────────────────────────────
from logic.combat.attacks import (                   # noqa: F401
    can_attack,
    combat_system,
    start_attack,
)
