"""Point checks — can() and authorize() for a single row."""

from __future__ import annotations

from rowauthz._types import Identity, Operation, Row
from rowauthz.engine._decision import DecisionEngine
from rowauthz.exceptions import AccessDenied

__all__ = ["authorize", "can"]


def can(
    engine: DecisionEngine,
    identity: Identity,
    table: str,
    operation: Operation,
    row: Row,
    post_image: Row | None = None,
) -> bool:
    """Check if *identity* may perform *operation* on *row*.

    ``select`` runs the read filter over the single row; writes go through
    :meth:`DecisionEngine.authorize_write`.

    Args:
        engine: The decision engine to ask.
        identity: The caller.
        table: The row's table.
        operation: ``select``, ``insert``, ``update`` or ``delete``.
        row: The row (the new row for ``insert``).
        post_image: The row after an update.

    Returns:
        ``True`` if access is granted, ``False`` if denied.

    Example::

        if can(engine, alice, "profiles", "select", row_bob):
            show(row_bob)
    """
    if operation == "select":
        return bool(engine.filter_for_read(identity, table, [row]))
    try:
        engine.authorize_write(identity, table, operation, row, post_image)
    except AccessDenied:
        return False
    return True


def authorize(
    engine: DecisionEngine,
    identity: Identity,
    table: str,
    operation: Operation,
    row: Row,
    post_image: Row | None = None,
) -> None:
    """Assert that *identity* may perform *operation* on *row*.

    Raises:
        AccessDenied: If the caller is not authorized.

    Example::

        authorize(engine, alice, "profiles", "delete", row_alice)  # raises if denied
    """
    if operation == "select":
        if not engine.filter_for_read(identity, table, [row]):
            raise AccessDenied(subject_id=identity.subject_id, operation=operation, table=table)
        return
    engine.authorize_write(identity, table, operation, row, post_image)
