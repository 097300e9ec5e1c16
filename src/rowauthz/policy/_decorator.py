"""@policy decorator — register row predicates."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from rowauthz._types import Operation, WriteCheckFn
from rowauthz.policy._base import Policy
from rowauthz.policy._registry import PolicyRegistry

if TYPE_CHECKING:
    from rowauthz.policy._predicate import Predicate

__all__ = ["policy"]

F = TypeVar("F", bound=Callable[..., bool])


def policy(
    table: str,
    operation: Operation,
    *,
    registry: PolicyRegistry,
    write_check: WriteCheckFn | None = None,
    predicate: Predicate | None = None,
    name: str | None = None,
) -> Callable[[F], F]:
    """Decorator that registers a predicate function for ``(table, operation)``.

    The decorated function receives ``(identity, row, lookup)`` and returns
    a ``bool``. When ``predicate`` is given it is registered instead of the
    function body; the function still supplies the name and docstring.

    Args:
        table: The table name.
        operation: ``select``, ``insert``, ``update`` or ``delete``.
        registry: The registry to register into (always explicit).
        write_check: Optional post-image check for insert/update.
        predicate: Optional composed :class:`Predicate` to register.
        name: Policy name; defaults to the function name.

    Example::

        @policy("profiles", "select", registry=registry)
        def users_read_own_profile(identity, row, lookup) -> bool:
            return row.id == identity.subject_id
    """

    def decorator(fn: F) -> F:
        registry.register(
            Policy(
                name=name or fn.__name__,
                table=table,
                operation=operation,
                predicate=predicate if predicate is not None else fn,
                write_check=write_check,
                description=(fn.__doc__ or "").strip(),
            )
        )
        return fn

    return decorator
