"""Composable predicates for row policies."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rowauthz._types import Identity, Row

if TYPE_CHECKING:
    from rowauthz.evaluator._lookup import RelationLookup

__all__ = [
    "Predicate",
    "always_allow",
    "always_deny",
    "has_role",
    "is_owner",
    "keeps_own_fields",
    "own_row_matches",
    "participant_of",
    "predicate",
    "related_via",
    "same_id",
]


def same_id(a: Any, b: Any) -> bool:
    """Compare two ids, tolerating ``1`` vs ``"1"`` from different layers."""
    if a is None or b is None:
        return False
    return a == b or str(a) == str(b)


def _column_value(row: Row, column: str) -> Any:
    if column == "id":
        return row.id
    return row.get(column)


class Predicate:
    """A composable row predicate.

    Wraps a callable ``(identity, row, lookup) -> bool``. Supports ``&``
    (AND), ``|`` (OR) and ``~`` (NOT). ``lookup`` may be omitted for
    predicates that do not consult other relations, which lets the same
    object serve as a write check.

    Example::

        own = is_owner()
        friend = related_via("friendships")
        readable = own | friend
        readable(identity, row, lookup)  # bool
    """

    def __init__(self, fn: Callable[..., bool], *, name: str = "") -> None:
        self._fn = fn
        self._name = name or getattr(fn, "__name__", "<anonymous>")

    def __call__(
        self, identity: Identity, row: Row, lookup: RelationLookup | None = None
    ) -> bool:
        return self._fn(identity, row, lookup)

    def __and__(self, other: Predicate) -> Predicate:
        def _and(identity: Identity, row: Row, lookup: RelationLookup | None) -> bool:
            return self(identity, row, lookup) and other(identity, row, lookup)

        return Predicate(_and, name=f"({self._name} & {other._name})")

    def __or__(self, other: Predicate) -> Predicate:
        def _or(identity: Identity, row: Row, lookup: RelationLookup | None) -> bool:
            return self(identity, row, lookup) or other(identity, row, lookup)

        return Predicate(_or, name=f"({self._name} | {other._name})")

    def __invert__(self) -> Predicate:
        def _not(identity: Identity, row: Row, lookup: RelationLookup | None) -> bool:
            return not self(identity, row, lookup)

        return Predicate(_not, name=f"~{self._name}")

    @property
    def name(self) -> str:
        """The human-readable name of this predicate."""
        return self._name

    def __repr__(self) -> str:
        return f"Predicate({self._name!r})"


def predicate(fn: Callable[..., bool]) -> Predicate:
    """Decorator/factory that creates a Predicate from a callable.

    Example::

        @predicate
        def is_public(identity, row, lookup) -> bool:
            return row.get("is_public") is True
    """
    return Predicate(fn, name=getattr(fn, "__name__", "<lambda>"))


# Built-in predicates


def _always_allow(identity: Identity, row: Row, lookup: Any) -> bool:
    return True


def _always_deny(identity: Identity, row: Row, lookup: Any) -> bool:
    return False


always_allow: Predicate = Predicate(_always_allow, name="always_allow")
always_deny: Predicate = Predicate(_always_deny, name="always_deny")


def is_owner(column: str = "id") -> Predicate:
    """``auth.uid() = <column>``: the row belongs to the caller."""

    def _is_owner(identity: Identity, row: Row, lookup: Any) -> bool:
        return same_id(_column_value(row, column), identity.subject_id)

    return Predicate(_is_owner, name=f"is_owner({column})")


def participant_of(*columns: str) -> Predicate:
    """The caller's id appears in any of *columns* (e.g. both friendship ends)."""
    if not columns:
        raise ValueError("participant_of needs at least one column")

    def _participant(identity: Identity, row: Row, lookup: Any) -> bool:
        return any(same_id(_column_value(row, c), identity.subject_id) for c in columns)

    return Predicate(_participant, name=f"participant_of({', '.join(columns)})")


def has_role(*roles: str) -> Predicate:
    """The role carried by the caller's verified token is one of *roles*."""

    def _has_role(identity: Identity, row: Row, lookup: Any) -> bool:
        return identity.role in roles

    return Predicate(_has_role, name=f"has_role({', '.join(roles)})")


def related_via(relation_table: str, column: str = "id") -> Predicate:
    """An undirected edge in *relation_table* links the caller and ``row[column]``."""

    def _related(identity: Identity, row: Row, lookup: RelationLookup) -> bool:
        return lookup.related(relation_table, identity.subject_id, _column_value(row, column))

    return Predicate(_related, name=f"related_via({relation_table})")


def own_row_matches(table: str, **expected: Any) -> Predicate:
    """The caller's own row in *table* has all *expected* field values.

    This is the self-referential check behind "admins read everything":
    only the caller's own row is ever read, through
    :meth:`RelationLookup.read_own_row`.

    Example::

        is_admin = own_row_matches("profiles", role="admin")
    """
    if not expected:
        raise ValueError("own_row_matches needs at least one field to compare")

    def _own_row_matches(identity: Identity, row: Row, lookup: RelationLookup) -> bool:
        own = lookup.read_own_row(table)
        if own is None:
            return False
        return all(own.get(k) == v for k, v in expected.items())

    detail = ", ".join(f"{k}={v!r}" for k, v in expected.items())
    return Predicate(_own_row_matches, name=f"own_row_matches({table}: {detail})")


def keeps_own_fields(table: str, *columns: str) -> Predicate:
    """The row leaves *columns* as they are in the caller's stored row of *table*.

    A write check for updates: users may edit their own row but not its
    sensitive fields, so ``role`` cannot be raised from the client side.
    It needs the lookup, which the engine hands to :class:`Predicate`
    write checks.

    Example::

        write_check = is_owner() & keeps_own_fields("profiles", "role")
    """
    if not columns:
        raise ValueError("keeps_own_fields needs at least one column")

    def _keeps_own_fields(identity: Identity, row: Row, lookup: RelationLookup | None) -> bool:
        if lookup is None:
            raise TypeError("keeps_own_fields needs a relation lookup")
        own = lookup.read_own_row(table)
        if own is None:
            return False
        return all(_column_value(row, c) == _column_value(own, c) for c in columns)

    return Predicate(_keeps_own_fields, name=f"keeps_own_fields({table}: {', '.join(columns)})")
