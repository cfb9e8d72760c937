"""components.dev_log — Structured guard event log.

A ring-buffer resource that records timestamped guard actions: state
transitions, attacks, recoveries, item effects.  Read by the demo
scene's side panel and by tests that want to assert *why* a guard did
something.

Usage:
    log = world.res(DevLog)
    log.record(eid, "state", "patrol → suspicious", t=clock.time,
               details={"level": 0.31})

Each entry is a dict:
    {"t": float, "eid": int, "cat": str, "msg": str, "details": dict | None}
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field


@dataclass
class DevLog:
    """Ring-buffer of guard events."""

    max_entries: int = 500
    entries: deque = field(default_factory=deque)

    # If non-empty, only entries whose ``cat`` / ``eid`` is listed are kept.
    cat_filter: set[str] = field(default_factory=set)
    eid_filter: set[int] = field(default_factory=set)

    def __post_init__(self):
        self.entries = deque(self.entries, maxlen=self.max_entries)

    def record(self, eid: int, cat: str, msg: str, *,
               t: float = 0.0, details: dict | None = None) -> None:
        if self.cat_filter and cat not in self.cat_filter:
            return
        if self.eid_filter and eid not in self.eid_filter:
            return
        self.entries.append({
            "t": t,
            "eid": eid,
            "cat": cat,
            "msg": msg,
            "details": details,
        })

    def clear(self):
        self.entries.clear()

    def recent(self, n: int = 50) -> list[dict]:
        """Return the *n* most recent entries (newest last)."""
        return list(self.entries)[-n:]

    def for_eid(self, eid: int, n: int = 30) -> list[dict]:
        return [e for e in self.entries if e["eid"] == eid][-n:]

    def for_cat(self, cat: str, n: int = 50) -> list[dict]:
        return [e for e in self.entries if e["cat"] == cat][-n:]
