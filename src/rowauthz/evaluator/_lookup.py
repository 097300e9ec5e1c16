"""RelationLookup — the only data access a predicate gets."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

from rowauthz._types import Identity, RelationshipEdge, Row, RowSource
from rowauthz.exceptions import EvaluationCancelled, RowAuthzError, ScopeViolation
from rowauthz.policy._predicate import same_id
from rowauthz.relationships._index import RelationshipSnapshot

__all__ = ["CancellationToken", "RelationLookup"]


class CancellationToken:
    """Caller-controlled cancellation flag shared across worker threads.

    Example::

        token = CancellationToken()
        threading.Timer(0.2, token.cancel).start()
        rows = engine.filter_for_read(identity, "profiles", rows, cancel=token)
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise EvaluationCancelled("Decision was cancelled")


class RelationLookup:
    """Read primitives handed to predicates for one decision call.

    Relationship checks run against a snapshot taken when the call began.
    Rows of other tables can only be read through :meth:`read_own_row`,
    which is scoped to ``id = identity.subject_id``.
    """

    def __init__(
        self,
        identity: Identity,
        relationships: RelationshipSnapshot,
        row_source: RowSource | None = None,
        *,
        cancel: CancellationToken | None = None,
        deadline: float | None = None,
    ) -> None:
        self._identity = identity
        self._relationships = relationships
        self._row_source = row_source
        self._cancel = cancel
        self._deadline = deadline
        self._own_rows: dict[str, Row | None] = {}
        self._own_rows_lock = threading.Lock()

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def deadline(self) -> float | None:
        """Monotonic time after which the call counts as timed out."""
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check_cancelled(self) -> None:
        """Raise ``EvaluationCancelled`` if the call was cancelled or timed out."""
        if self._cancel is not None:
            self._cancel.raise_if_cancelled()
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise EvaluationCancelled("Decision deadline exceeded")

    def exists(
        self, relation_table: str, edge_predicate: Callable[[RelationshipEdge], bool]
    ) -> bool:
        """Return whether any edge of *relation_table* satisfies *edge_predicate*.

        Example::

            lookup.exists(
                "friendships",
                lambda e: e.connects(lookup.identity.subject_id, row.id),
            )
        """
        self.check_cancelled()
        return self._relationships.any_edge(relation_table, edge_predicate)

    def related(self, relation_table: str, a: Any, b: Any) -> bool:
        """Symmetric edge check: ``(a, b)`` or ``(b, a)`` in *relation_table*."""
        self.check_cancelled()
        return self._relationships.exists(relation_table, a, b)

    def read_own_row(self, table: str) -> Row | None:
        """Return the caller's own row in *table*, or ``None``.

        The row source is asked for ``WHERE id = subject_id`` only, and the
        answer is checked against the subject id. The result is cached for
        the rest of the decision call.

        Raises:
            ScopeViolation: The row source returned a different row.
            RowAuthzError: No row source is configured.
            EvaluationCancelled: The call was cancelled before the read.
        """
        with self._own_rows_lock:
            if table in self._own_rows:
                return self._own_rows[table]

        if self._row_source is None:
            raise RowAuthzError(f"No row source configured for own-row reads on {table}")
        self.check_cancelled()

        subject_id = self._identity.subject_id
        own = self._row_source.fetch_own_row(
            table, subject_id, timeout=self.remaining(), cancel=self._cancel
        )
        self.check_cancelled()
        if own is not None and (own.table != table or not same_id(own.id, subject_id)):
            raise ScopeViolation(table=table, subject_id=subject_id, row_id=own.id)

        with self._own_rows_lock:
            return self._own_rows.setdefault(table, own)
