"""RelationshipIndex — symmetric edge lookups with snapshot isolation."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from rowauthz._types import RelationshipEdge

__all__ = ["RelationshipIndex", "RelationshipSnapshot"]


def _pair(a: Any, b: Any) -> frozenset[str]:
    # Undirected: (a, b) and (b, a) share one key. Ids are compared as
    # strings so integer keys from SQL match string subject ids.
    return frozenset((str(a), str(b)))


class RelationshipSnapshot:
    """Frozen edge set taken at the start of a decision call."""

    __slots__ = ("_edges", "_pairs")

    def __init__(
        self,
        edges: Mapping[str, tuple[RelationshipEdge, ...]],
        pairs: Mapping[str, frozenset[frozenset[str]]],
    ) -> None:
        self._edges = edges
        self._pairs = pairs

    def exists(self, table: str, a: Any, b: Any) -> bool:
        """Return whether an edge links *a* and *b* in either direction."""
        if a is None or b is None:
            return False
        return _pair(a, b) in self._pairs.get(table, frozenset())

    def edges(self, table: str) -> tuple[RelationshipEdge, ...]:
        return self._edges.get(table, ())

    def any_edge(self, table: str, edge_predicate: Callable[[RelationshipEdge], bool]) -> bool:
        """Existence check with an arbitrary predicate over the edges of *table*."""
        return any(edge_predicate(edge) for edge in self.edges(table))

    def __len__(self) -> int:
        return sum(len(group) for group in self._edges.values())


class RelationshipIndex:
    """Undirected edges grouped by relation table.

    Mutations are copy-on-write under a lock; :meth:`snapshot` hands out
    the current immutable state, which later mutations never touch.

    Example::

        index = RelationshipIndex()
        index.add("friendships", "alice", "bob")
        assert index.exists("friendships", "bob", "alice")
    """

    def __init__(self, edges: Iterable[RelationshipEdge] = ()) -> None:
        self._lock = threading.Lock()
        self._snapshot = RelationshipSnapshot(MappingProxyType({}), MappingProxyType({}))
        self.add_edges(edges)

    def _install(self, edges: dict[str, tuple[RelationshipEdge, ...]]) -> None:
        pairs = {
            table: frozenset(_pair(e.endpoint_a, e.endpoint_b) for e in group)
            for table, group in edges.items()
        }
        self._snapshot = RelationshipSnapshot(MappingProxyType(edges), MappingProxyType(pairs))

    def add(self, table: str, a: Any, b: Any) -> RelationshipEdge:
        """Add an edge between *a* and *b*; adding an existing pair is a no-op."""
        edge = RelationshipEdge(table, a, b)
        self.add_edges([edge])
        return edge

    def add_edges(self, edges: Iterable[RelationshipEdge]) -> None:
        new_edges = list(edges)
        if not new_edges:
            return
        with self._lock:
            current = self._snapshot
            updated = {t: list(current.edges(t)) for t in current._edges}
            seen = {t: set(p) for t, p in current._pairs.items()}
            for edge in new_edges:
                key = _pair(edge.endpoint_a, edge.endpoint_b)
                table_seen = seen.setdefault(edge.table, set())
                if key in table_seen:
                    continue
                table_seen.add(key)
                updated.setdefault(edge.table, []).append(edge)
            self._install({t: tuple(group) for t, group in updated.items()})

    def remove(self, table: str, a: Any, b: Any) -> bool:
        """Remove the edge between *a* and *b*; return whether one existed."""
        key = _pair(a, b)
        with self._lock:
            current = self._snapshot
            group = current.edges(table)
            kept = tuple(e for e in group if _pair(e.endpoint_a, e.endpoint_b) != key)
            if len(kept) == len(group):
                return False
            updated = {t: current.edges(t) for t in current._edges}
            updated[table] = kept
            self._install(updated)
            return True

    def exists(self, table: str, a: Any, b: Any) -> bool:
        """Symmetric existence check against the current state."""
        return self._snapshot.exists(table, a, b)

    def snapshot(self) -> RelationshipSnapshot:
        """Return the current immutable edge set."""
        return self._snapshot

    def clear(self) -> None:
        with self._lock:
            self._install({})

    def __len__(self) -> int:
        return len(self._snapshot)
