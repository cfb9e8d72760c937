"""core/tuning.py — Data-driven tuning constants.

Gameplay timings and multipliers live in ``data/tuning.toml`` and are
loaded once at startup.  Any system reads a value with a default::

    from core.tuning import get as _tun
    windup = _tun("ai.combat", "windup", 0.3)

The default in code is authoritative when the file is absent, so unit
tests never need to load anything.  ``reload()`` re-reads the file
(the demo scene binds it to F5).
"""

from __future__ import annotations
from pathlib import Path

try:
    import tomllib                         # Python 3.11+
except ModuleNotFoundError:                # pragma: no cover
    import tomli as tomllib                # Python < 3.11


DEFAULT_PATH = Path(__file__).resolve().parent.parent / "data" / "tuning.toml"

_data: dict = {}
_path: Path | None = None


def load(path: str | Path | None = None) -> int:
    """Load (or reload) tuning constants.  Returns the value count."""
    global _data, _path

    _path = Path(path) if path is not None else DEFAULT_PATH
    if not _path.exists():
        print(f"[TUNING] {_path} not found — using defaults")
        _data = {}
        return 0

    with open(_path, "rb") as f:
        _data = tomllib.load(f)

    count = _count_leaves(_data)
    print(f"[TUNING] Loaded {count} values from {_path}")
    return count


def reload() -> int:
    """Re-read the tuning file from disk (hot-reload)."""
    return load(_path)


def reset() -> None:
    """Forget every loaded value (tests use this to get pure defaults)."""
    global _data
    _data = {}


def _walk(section_path: str):
    node = _data
    for part in section_path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
        if node is None:
            return None
    return node


def get(section: str, key: str, default=None):
    """Read ``[section] key``; dots in *section* traverse nested tables.

    >>> get("ai.states", "search_duration", 5.0)
    5.0
    """
    node = _walk(section)
    if isinstance(node, dict):
        return node.get(key, default)
    return default


def section(section_path: str) -> dict:
    """Return an entire section dict (shallow copy), or empty dict."""
    node = _walk(section_path)
    return dict(node) if isinstance(node, dict) else {}


def _count_leaves(d: dict) -> int:
    n = 0
    for v in d.values():
        n += _count_leaves(v) if isinstance(v, dict) else 1
    return n
