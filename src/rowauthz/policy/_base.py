"""Policy dataclass — a named, operation-scoped row predicate."""

from __future__ import annotations

from dataclasses import dataclass

from rowauthz._types import OPERATIONS, Operation, PredicateFn, WriteCheckFn

__all__ = ["Policy"]


@dataclass(frozen=True, slots=True)
class Policy:
    """A single registered policy.

    Attributes:
        name: Policy name, unique per ``(table, operation)``.
        table: The table this policy applies to.
        operation: ``select``, ``insert``, ``update`` or ``delete``.
        predicate: ``(identity, row, lookup) -> bool`` deciding *who* may
            see or act on a row (the ``USING`` half).
        write_check: Optional ``(identity, row) -> bool`` constraining the
            post-image of an insert/update (the ``WITH CHECK`` half).
        description: Human-readable description (from docstring).
    """

    name: str
    table: str
    operation: Operation
    predicate: PredicateFn
    write_check: WriteCheckFn | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("policy name must be non-empty")
        if self.operation not in OPERATIONS:
            raise ValueError(
                f"operation must be one of {sorted(OPERATIONS)!r}, got {self.operation!r}"
            )
        if self.write_check is not None and self.operation not in ("insert", "update"):
            raise ValueError(
                f"write_check is only allowed on insert/update policies, "
                f"not {self.operation!r} ({self.name!r})"
            )

    @property
    def key(self) -> tuple[str, str, str]:
        """The ``(table, operation, name)`` identity of this policy."""
        return (self.table, self.operation, self.name)
