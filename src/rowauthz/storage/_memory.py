"""InMemoryRowSource — a dict-backed row source for tests and demos."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from rowauthz._types import Row
from rowauthz.policy._predicate import same_id

if TYPE_CHECKING:
    from rowauthz.evaluator._lookup import CancellationToken

__all__ = ["InMemoryRowSource"]


class InMemoryRowSource:
    """Rows grouped by table, kept in insertion order.

    Example::

        source = InMemoryRowSource([row_alice, row_bob])
        source.fetch_own_row("profiles", "alice")  # row_alice
    """

    def __init__(self, rows: Iterable[Row] = ()) -> None:
        self._lock = threading.Lock()
        self._tables: dict[str, list[Row]] = {}
        for row in rows:
            self.put(row)

    def put(self, row: Row) -> None:
        """Insert *row*, replacing any row of the same table with the same id."""
        with self._lock:
            table = self._tables.setdefault(row.table, [])
            for i, existing in enumerate(table):
                if same_id(existing.id, row.id):
                    table[i] = row
                    return
            table.append(row)

    def delete(self, table: str, row_id: Any) -> bool:
        with self._lock:
            rows = self._tables.get(table, [])
            for i, existing in enumerate(rows):
                if same_id(existing.id, row_id):
                    del rows[i]
                    return True
            return False

    def fetch_rows(self, table: str) -> list[Row]:
        with self._lock:
            return list(self._tables.get(table, []))

    def fetch_own_row(
        self,
        table: str,
        subject_id: Any,
        *,
        timeout: float | None = None,
        cancel: CancellationToken | None = None,
    ) -> Row | None:
        if cancel is not None:
            cancel.raise_if_cancelled()
        with self._lock:
            for row in self._tables.get(table, []):
                if same_id(row.id, subject_id):
                    return row
        return None
