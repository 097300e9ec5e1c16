"""Shared data records, protocols and type aliases for row-authz."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rowauthz.evaluator._lookup import CancellationToken, RelationLookup

__all__ = [
    "Identity",
    "OnPredicateError",
    "Operation",
    "PredicateFn",
    "RelationshipEdge",
    "Role",
    "Row",
    "RowSource",
    "WRITE_OPERATIONS",
    "OPERATIONS",
    "ROLES",
    "WriteCheckFn",
    "parse_role",
]

# Valid values for Policy.operation.
Operation = Literal["select", "insert", "update", "delete"]

# Valid values for Identity.role.
Role = Literal["user", "verified", "moderator", "admin"]

# Valid values for AuthzConfig.on_predicate_error.
OnPredicateError = Literal["log", "warn"]

OPERATIONS: frozenset[str] = frozenset({"select", "insert", "update", "delete"})
WRITE_OPERATIONS: frozenset[str] = frozenset({"insert", "update", "delete"})
ROLES: frozenset[str] = frozenset({"user", "verified", "moderator", "admin"})


def parse_role(value: object) -> Role:
    """Coerce a claim value to a known role; anything else becomes ``"user"``.

    Example::

        parse_role("admin")          # "admin"
        parse_role("authenticated")  # "user"
        parse_role(None)             # "user"
    """
    if isinstance(value, str) and value in ROLES:
        return value  # type: ignore[return-value]
    return "user"


@dataclass(frozen=True, slots=True)
class Identity:
    """A verified requester.

    Built by :class:`~rowauthz.identity.IdentityResolver` from a signed
    token and discarded when the request completes.

    Attributes:
        subject_id: Opaque id of the caller (the token's ``sub``).
        role: One of ``user``, ``verified``, ``moderator``, ``admin``.
        claims: Read-only copy of the verified token payload.

    Example::

        alice = Identity(subject_id="alice", role="user")
        assert alice.claims == {}
    """

    subject_id: str
    role: Role = "user"
    claims: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"role must be one of {sorted(ROLES)!r}, got {self.role!r}")
        # Frozen dataclass: replace the mapping with a read-only view.
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))


@dataclass(frozen=True, slots=True, eq=True)
class Row:
    """A candidate row supplied by the storage layer.

    Attributes:
        table: Name of the table the row belongs to.
        id: The row's primary key.
        fields: Read-only column values (``id`` is usually repeated here).

    Example::

        row = Row("profiles", "alice", {"id": "alice", "role": "user"})
        row["role"]                      # "user"
        row.with_changes(role="admin")   # post-image for an update
    """

    table: str
    id: Any
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def with_changes(self, **changes: Any) -> Row:
        """Return a copy with *changes* applied to ``fields``.

        When ``id`` is among the changes the row's ``id`` follows it.
        """
        merged = {**self.fields, **changes}
        return Row(self.table, merged.get("id", self.id), merged)


@dataclass(frozen=True, slots=True)
class RelationshipEdge:
    """An undirected link between two ids stored in *table*.

    Example::

        edge = RelationshipEdge("friendships", "alice", "bob")
        assert edge.connects("bob", "alice")
    """

    table: str
    endpoint_a: Any
    endpoint_b: Any

    def connects(self, a: Any, b: Any) -> bool:
        return (self.endpoint_a == a and self.endpoint_b == b) or (
            self.endpoint_a == b and self.endpoint_b == a
        )

    def touches(self, endpoint: Any) -> bool:
        return endpoint in (self.endpoint_a, self.endpoint_b)


@runtime_checkable
class RowSource(Protocol):
    """Storage-layer collaborator that hands rows to the engine.

    ``fetch_own_row`` must only ever return the row whose id equals
    *subject_id*; the evaluator double-checks this. *timeout* is the time
    left in the decision call (``None`` when unbounded) and *cancel* the
    caller's cancellation token; implementations should bound or abandon
    external calls accordingly.
    """

    def fetch_rows(self, table: str) -> list[Row]: ...

    def fetch_own_row(
        self,
        table: str,
        subject_id: Any,
        *,
        timeout: float | None = None,
        cancel: CancellationToken | None = None,
    ) -> Row | None: ...


# Signature of a policy predicate: who may see or act on a row.
PredicateFn = Callable[[Identity, Row, "RelationLookup"], bool]

# Signature of a write check: what a written row may look like. Predicate
# objects used as write checks are also given the RelationLookup.
WriteCheckFn = Callable[[Identity, Row], bool]
