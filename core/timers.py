"""core/timers.py — Scheduled continuations with cancellation tokens.

Timed AI sequences (attack wind-up, distraction, stuck-recovery) are
never blocking waits.  Each step posts the *next* step as a callable
due at an absolute game time, guarded by a ``CancelToken``::

    sched = world.res(Scheduler)
    token = CancelToken()
    sched.post(clock.time, 0.3, deal_damage, token, eid=7, tag="attack")
    ...
    token.cancel()          # deal_damage will never run

The host calls ``tick(game_time)`` once per frame; every continuation
whose due time has passed runs in due-time order (FIFO among equals).
Continuations posted while ticking run in the same pass if they are
already due.

A token is usually owned by whatever gave the sequence its meaning —
the behaviour state that started an attack, the guard that started a
recovery — so revoking the owner revokes every step it scheduled.
"""

from __future__ import annotations
import heapq
from dataclasses import dataclass, field
from typing import Callable


class CancelToken:
    """Revocation flag shared by every step of one sequence."""

    __slots__ = ("cancelled",)

    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"


@dataclass(order=True)
class Continuation:
    """One pending step.  Ordered by ``time`` then insertion order."""
    time: float
    _seq: int = field(compare=True, repr=False)
    fn: Callable[[], None] = field(compare=False, repr=False, default=None)
    token: CancelToken = field(compare=False, default=None)
    eid: int = field(compare=False, default=0)
    tag: str = field(compare=False, default="")

    @property
    def live(self) -> bool:
        return self.token is None or not self.token.cancelled


class Scheduler:
    """Min-heap of continuations keyed by absolute game time.

    Stored as a world resource.
    """

    def __init__(self) -> None:
        self._queue: list[Continuation] = []
        self._seq: int = 0
        self.executed: int = 0

    # ── Posting ──────────────────────────────────────────────────────

    def post(self, now: float, delay: float, fn: Callable[[], None],
             token: CancelToken | None = None, *,
             eid: int = 0, tag: str = "") -> Continuation:
        """Schedule *fn* to run ``delay`` seconds after *now*."""
        self._seq += 1
        cont = Continuation(time=now + max(0.0, delay), _seq=self._seq,
                            fn=fn, token=token, eid=eid, tag=tag)
        heapq.heappush(self._queue, cont)
        return cont

    # ── Tick ─────────────────────────────────────────────────────────

    def tick(self, game_time: float) -> int:
        """Run every live continuation due at or before *game_time*.

        Returns the number executed.
        """
        ran = 0
        while self._queue and self._queue[0].time <= game_time:
            cont = heapq.heappop(self._queue)
            if not cont.live:
                continue
            cont.fn()
            ran += 1
        self.executed += ran
        return ran

    # ── Introspection ────────────────────────────────────────────────

    def pending(self, eid: int | None = None, tag: str | None = None) -> list[Continuation]:
        """Live continuations, optionally filtered by entity and tag."""
        out = []
        for cont in sorted(self._queue):
            if not cont.live:
                continue
            if eid is not None and cont.eid != eid:
                continue
            if tag is not None and cont.tag != tag:
                continue
            out.append(cont)
        return out

    def pending_count(self) -> int:
        return sum(1 for c in self._queue if c.live)

    def clear(self) -> None:
        self._queue.clear()

    def __repr__(self) -> str:
        return f"Scheduler(pending={self.pending_count()}, executed={self.executed})"
