"""SQLAlchemy-backed row and relationship sources.

Rows are read with SQLAlchemy Core against ``Table`` objects from a
``MetaData`` (declared or reflected). Own-row reads are always issued as
``SELECT ... WHERE <id> = :subject_id``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import (
    ColumnElement,
    Connection,
    Engine,
    MetaData,
    Table,
    and_,
    delete,
    insert,
    select,
    update,
)

from rowauthz._types import Identity, RelationshipEdge, Row
from rowauthz.engine._decision import DecisionEngine, Permit
from rowauthz.evaluator._lookup import CancellationToken
from rowauthz.exceptions import AccessDenied
from rowauthz.relationships._index import RelationshipIndex

__all__ = ["SQLAlchemyRowSource", "authorized_rows", "load_relationships"]


@contextmanager
def _connect(bind: Engine | Connection, *, write: bool = False) -> Iterator[Connection]:
    if isinstance(bind, Connection):
        yield bind
        return
    if write:
        with bind.begin() as conn:
            yield conn
    else:
        with bind.connect() as conn:
            yield conn


def _coerce_id(table: Table, id_column: str, value: Any) -> Any:
    # Subject ids arrive as strings from tokens; match the column's type.
    try:
        python_type = table.c[id_column].type.python_type
    except NotImplementedError:
        return value
    if isinstance(value, python_type):
        return value
    try:
        return python_type(value)
    except (TypeError, ValueError):
        return value


def _unchanged(table: Table, row: Row) -> ColumnElement[bool]:
    # Every column as it was when the write was authorized.
    return and_(
        *(
            table.c[name].is_(None) if value is None else table.c[name] == value
            for name, value in row.fields.items()
            if name in table.c
        )
    )


class SQLAlchemyRowSource:
    """Row source over SQLAlchemy ``Table`` objects.

    Besides the read side used by the engine, it offers guarded writes
    that call :meth:`DecisionEngine.authorize_write` before executing and
    never touch the database on denial. Updates and deletes only apply
    while the row still equals the pre-image that was authorized; a row
    changed in between is reported as ``AccessDenied``.

    Example::

        source = SQLAlchemyRowSource(engine, metadata)
        decision = DecisionEngine(registry, row_source=source)
        rows = authorized_rows(decision, source, alice, "profiles")
    """

    def __init__(
        self,
        bind: Engine | Connection,
        metadata: MetaData,
        *,
        id_column: str = "id",
    ) -> None:
        self._bind = bind
        self._metadata = metadata
        self._id_column = id_column

    def _table(self, name: str) -> Table:
        try:
            return self._metadata.tables[name]
        except KeyError:
            raise KeyError(f"Unknown table {name!r}") from None

    def _to_row(self, table: str, mapping: Mapping[str, Any]) -> Row:
        fields = dict(mapping)
        return Row(table, fields.get(self._id_column), fields)

    def fetch_rows(self, table: str) -> list[Row]:
        """Unfiltered ``SELECT *``; filter the result with the engine."""
        t = self._table(table)
        with _connect(self._bind) as conn:
            return [self._to_row(table, m) for m in conn.execute(select(t)).mappings()]

    def fetch_own_row(
        self,
        table: str,
        subject_id: Any,
        *,
        timeout: float | None = None,
        cancel: CancellationToken | None = None,
    ) -> Row | None:
        """``SELECT * FROM <table> WHERE id = :subject_id``.

        The query is skipped once *cancel* is set. *timeout* is not pushed
        down to the driver; the engine denies rows whose decision overruns.
        """
        if cancel is not None:
            cancel.raise_if_cancelled()
        t = self._table(table)
        id_col = t.c[self._id_column]
        stmt = select(t).where(id_col == _coerce_id(t, self._id_column, subject_id)).limit(1)
        with _connect(self._bind) as conn:
            mapping = conn.execute(stmt).mappings().first()
        return self._to_row(table, mapping) if mapping is not None else None

    def _fetch_by_id(self, conn: Connection, t: Table, row_id: Any) -> Row | None:
        stmt = select(t).where(t.c[self._id_column] == _coerce_id(t, self._id_column, row_id))
        mapping = conn.execute(stmt).mappings().first()
        return self._to_row(t.name, mapping) if mapping is not None else None

    def insert_row(
        self,
        decision: DecisionEngine,
        identity: Identity,
        table: str,
        values: Mapping[str, Any],
    ) -> Permit:
        """Insert *values* if a policy permits it.

        Raises:
            AccessDenied: Nothing is written.
        """
        t = self._table(table)
        new_row = self._to_row(table, values)
        permit = decision.authorize_write(identity, table, "insert", post_image=new_row)
        with _connect(self._bind, write=True) as conn:
            conn.execute(insert(t).values(**dict(values)))
        return permit

    def update_row(
        self,
        decision: DecisionEngine,
        identity: Identity,
        table: str,
        row_id: Any,
        changes: Mapping[str, Any],
        *,
        cancel: CancellationToken | None = None,
    ) -> Permit:
        """Apply *changes* to one row if a policy permits it.

        A missing row is reported as ``AccessDenied`` so its absence is
        indistinguishable from a denial.
        """
        t = self._table(table)
        with _connect(self._bind) as conn:
            target = self._fetch_by_id(conn, t, row_id)
        if target is None:
            raise AccessDenied(subject_id=identity.subject_id, operation="update", table=table)
        permit = decision.authorize_write(
            identity, table, "update", target, target.with_changes(**changes), cancel=cancel
        )
        with _connect(self._bind, write=True) as conn:
            result = conn.execute(update(t).where(_unchanged(t, target)).values(**dict(changes)))
            if result.rowcount != 1:
                raise AccessDenied(
                    subject_id=identity.subject_id, operation="update", table=table
                )
        return permit

    def delete_row(
        self,
        decision: DecisionEngine,
        identity: Identity,
        table: str,
        row_id: Any,
        *,
        cancel: CancellationToken | None = None,
    ) -> Permit:
        """Delete one row if a policy permits it."""
        t = self._table(table)
        with _connect(self._bind) as conn:
            target = self._fetch_by_id(conn, t, row_id)
        if target is None:
            raise AccessDenied(subject_id=identity.subject_id, operation="delete", table=table)
        permit = decision.authorize_write(identity, table, "delete", target, cancel=cancel)
        with _connect(self._bind, write=True) as conn:
            result = conn.execute(delete(t).where(_unchanged(t, target)))
            if result.rowcount != 1:
                raise AccessDenied(
                    subject_id=identity.subject_id, operation="delete", table=table
                )
        return permit


def authorized_rows(
    decision: DecisionEngine,
    source: SQLAlchemyRowSource,
    identity: Identity,
    table: str,
    *,
    cancel: CancellationToken | None = None,
) -> list[Row]:
    """Fetch every row of *table* and return those visible to *identity*."""
    return decision.filter_for_read(identity, table, source.fetch_rows(table), cancel=cancel)


def load_relationships(
    bind: Engine | Connection,
    table: Table,
    a_column: str,
    b_column: str,
    *,
    index: RelationshipIndex | None = None,
    relation_name: str | None = None,
) -> RelationshipIndex:
    """Load undirected edges from *table* into a :class:`RelationshipIndex`.

    Example::

        index = load_relationships(engine, friendships, "user_a_id", "user_b_id")
        index.exists("friendships", "bob", "alice")
    """
    target = index if index is not None else RelationshipIndex()
    name = relation_name or table.name
    stmt = select(table.c[a_column], table.c[b_column])
    with _connect(bind) as conn:
        edges = [RelationshipEdge(name, a, b) for a, b in conn.execute(stmt)]
    target.add_edges(edges)
    return target
