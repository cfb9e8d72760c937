"""logic — Game systems package.

Subpackages
-----------
ai/         — perception, steering, behaviour states and driver
combat/     — guard attack check and scheduled attack sequence

Top-level modules
-----------------
tick            — frame / physics tick orchestration (+ player input)
guard_factory   — world setup, guard spawning from TOML data, levels
movement        — physics / collision, terrain collision events
recovery        — stuck-recovery vanish / warp sequence
effects         — item effects on guards, stealth blind-all
"""
