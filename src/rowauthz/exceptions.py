"""Exception hierarchy for row-authz."""

from __future__ import annotations

from typing import Any

__all__ = [
    "AccessDenied",
    "DuplicatePolicy",
    "EvaluationCancelled",
    "Expired",
    "InvalidCredential",
    "PredicateEvaluationError",
    "RowAuthzError",
    "ScopeViolation",
]


class RowAuthzError(Exception):
    """Base exception for all row-authz errors."""


class InvalidCredential(RowAuthzError):  # noqa: N818
    """The presented token could not be verified.

    Attributes:
        reason: Short machine-friendly reason (``"signature"``,
            ``"malformed"``, ``"audience"``, ...).

    Example::

        try:
            identity = resolver.resolve(token)
        except InvalidCredential:
            return unauthenticated()
    """

    def __init__(self, message: str = "Invalid credential", *, reason: str = "invalid") -> None:
        self.reason = reason
        super().__init__(message)


class Expired(InvalidCredential):  # noqa: N818
    """The token's ``exp`` claim is in the past."""

    def __init__(self, message: str = "Credential has expired") -> None:
        super().__init__(message, reason="expired")


class DuplicatePolicy(RowAuthzError):  # noqa: N818
    """A policy with the same ``(table, operation, name)`` is already registered.

    Attributes:
        table: The table of the rejected policy.
        operation: The operation of the rejected policy.
        name: The duplicated policy name.
    """

    def __init__(self, *, table: str, operation: str, name: str) -> None:
        self.table = table
        self.operation = operation
        self.name = name
        super().__init__(f"Policy {name!r} is already registered for ({table}, {operation!r})")


class AccessDenied(RowAuthzError):  # noqa: N818
    """The caller may not perform a write on the given row.

    The message deliberately carries no policy names.

    Attributes:
        subject_id: The caller's subject id.
        operation: ``"insert"``, ``"update"`` or ``"delete"``.
        table: The target table.

    Example::

        try:
            engine.authorize_write(identity, "profiles", "delete", row)
        except AccessDenied as exc:
            print(f"{exc.subject_id} cannot {exc.operation} on {exc.table}")
    """

    def __init__(
        self,
        *,
        subject_id: Any,
        operation: str,
        table: str,
        message: str | None = None,
    ) -> None:
        self.subject_id = subject_id
        self.operation = operation
        self.table = table
        if message is None:
            message = f"{subject_id!r} is not permitted to {operation} on {table}"
        super().__init__(message)


class PredicateEvaluationError(RowAuthzError):
    """A predicate or write check failed while being evaluated.

    Never raised out of the engine: the failing policy counts as ``False``
    and this object is reported as a diagnostic.

    Attributes:
        policy_name: Name of the failing policy (empty for engine-level
            diagnostics such as timeouts).
        table: Table being decided.
        operation: Operation being decided.
        row_id: Id of the row being decided.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        *,
        policy_name: str,
        table: str,
        operation: str,
        row_id: Any,
        cause: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        self.policy_name = policy_name
        self.table = table
        self.operation = operation
        self.row_id = row_id
        self.cause = cause
        if message is None:
            message = (
                f"Policy {policy_name!r} on ({table}, {operation!r}) failed for row {row_id!r}: "
                f"{cause!r}"
            )
        super().__init__(message)


class ScopeViolation(RowAuthzError):  # noqa: N818
    """A row source answered an own-row read with someone else's row."""

    def __init__(self, *, table: str, subject_id: Any, row_id: Any) -> None:
        self.table = table
        self.subject_id = subject_id
        self.row_id = row_id
        super().__init__(
            f"Own-row read on {table} for {subject_id!r} returned row {row_id!r}"
        )


class EvaluationCancelled(RowAuthzError):  # noqa: N818
    """The decision was cancelled or ran past its deadline."""
