"""
core/ecs.py — Entity-Component-System

Entities are ints.  Components are plain dataclasses, stored by type.
World-level singletons (geometry, clock, scheduler, event bus …) are
*resources* — one instance per type, fetched with ``res()``.

    w = World()
    g = w.spawn()
    w.add(g, Position(5.0, 3.0))
    w.add(g, Perception())

    for eid, pos, perc in w.query(Position, Perception):
        ...

    geo = w.res(Geometry)
"""

from __future__ import annotations
from typing import Any, Iterator

# Resources share the component stores under this reserved entity id.
_RES_ID = -1


class World:
    def __init__(self):
        self._next_id = 0
        self._stores: dict[type, dict[int, Any]] = {}
        self._live: set[int] = set()
        self._dead: set[int] = set()

    # -- Entities --

    def spawn(self) -> int:
        self._next_id += 1
        self._live.add(self._next_id)
        return self._next_id

    def kill(self, eid: int):
        """Mark *eid* dead.  Its components stay until ``purge()``."""
        if eid in self._live:
            self._live.discard(eid)
            self._dead.add(eid)

    def alive(self, eid: int | None) -> bool:
        return eid in self._live

    def purge(self):
        """Drop dead entities from every store.  Call once per frame."""
        for store in self._stores.values():
            for eid in self._dead:
                store.pop(eid, None)
        self._dead.clear()

    # -- Components --

    def add(self, eid: int, comp: Any) -> Any:
        self._stores.setdefault(type(comp), {})[eid] = comp
        return comp

    def get(self, eid: int, comp_type: type) -> Any | None:
        return self._stores.get(comp_type, {}).get(eid)

    def has(self, eid: int, comp_type: type) -> bool:
        return eid in self._stores.get(comp_type, {})

    def remove(self, eid: int, comp_type: type):
        self._stores.get(comp_type, {}).pop(eid, None)

    # -- Queries --

    def query(self, *types: type) -> Iterator[tuple]:
        """Yield ``(eid, comp1, comp2, ...)`` for live entities with ALL types.

        Entities are visited in spawn order so systems stay deterministic.
        """
        if not types:
            return
        buckets = [self._stores.get(t, {}) for t in types]
        smallest = min(buckets, key=len)
        for eid in sorted(smallest):
            if eid == _RES_ID or eid in self._dead:
                continue
            if all(eid in b for b in buckets):
                yield (eid, *(b[eid] for b in buckets))

    def query_one(self, *types: type) -> tuple | None:
        """Return first match or None."""
        for result in self.query(*types):
            return result
        return None

    def all_of(self, comp_type: type) -> Iterator[tuple[int, Any]]:
        """Yield ``(eid, component)`` for every live entity with this type."""
        for eid, comp in sorted(self._stores.get(comp_type, {}).items()):
            if eid != _RES_ID and eid not in self._dead:
                yield eid, comp

    # -- Resources (singletons, not tied to entities) --

    def set_res(self, resource: Any) -> Any:
        self._stores.setdefault(type(resource), {})[_RES_ID] = resource
        return resource

    def res(self, res_type: type) -> Any | None:
        return self._stores.get(res_type, {}).get(_RES_ID)
