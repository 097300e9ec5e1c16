"""PolicyRegistry — stores policies and hands out immutable snapshots."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from rowauthz._types import PredicateFn, WriteCheckFn
from rowauthz.exceptions import DuplicatePolicy
from rowauthz.policy._base import Policy

__all__ = ["PolicyRegistry", "PolicySnapshot"]

_Key = tuple[str, str]


class PolicySnapshot:
    """Immutable view of a registry at one point in time.

    Decision calls take a snapshot once and evaluate against it, so a
    concurrent ``register`` or ``reload`` never changes an in-flight
    decision.
    """

    __slots__ = ("_policies",)

    def __init__(self, policies: Mapping[_Key, tuple[Policy, ...]]) -> None:
        self._policies = policies

    def policies_for(self, table: str, operation: str) -> tuple[Policy, ...]:
        return self._policies.get((table, operation), ())

    def has_policy(self, table: str, operation: str) -> bool:
        return bool(self._policies.get((table, operation)))

    def keys(self) -> list[_Key]:
        return sorted(self._policies)

    def __len__(self) -> int:
        return sum(len(group) for group in self._policies.values())


def _build(policies: Iterable[Policy]) -> dict[_Key, tuple[Policy, ...]]:
    grouped: dict[_Key, list[Policy]] = {}
    for p in policies:
        group = grouped.setdefault((p.table, p.operation), [])
        if any(existing.name == p.name for existing in group):
            raise DuplicatePolicy(table=p.table, operation=p.operation, name=p.name)
        group.append(p)
    return {key: tuple(group) for key, group in grouped.items()}


class PolicyRegistry:
    """Registry that maps ``(table, operation)`` pairs to policies.

    Writes are copy-on-write under a lock: every registration installs a
    new immutable mapping, so readers never lock.

    Example::

        registry = PolicyRegistry()
        registry.register(
            Policy("users_read_own_profile", "profiles", "select", is_owner())
        )
        policies = registry.policies_for("profiles", "select")
    """

    def __init__(self, policies: Iterable[Policy] = ()) -> None:
        self._lock = threading.Lock()
        self._policies: Mapping[_Key, tuple[Policy, ...]] = MappingProxyType(_build(policies))

    def register(self, policy: Policy) -> None:
        """Register *policy*.

        Multiple policies for the same ``(table, operation)`` are OR'd
        together at evaluation time.

        Raises:
            DuplicatePolicy: A policy with the same
                ``(table, operation, name)`` already exists.
        """
        with self._lock:
            key = (policy.table, policy.operation)
            current = self._policies.get(key, ())
            if any(existing.name == policy.name for existing in current):
                raise DuplicatePolicy(
                    table=policy.table, operation=policy.operation, name=policy.name
                )
            updated = dict(self._policies)
            updated[key] = (*current, policy)
            self._policies = MappingProxyType(updated)

    def define(
        self,
        table: str,
        operation: str,
        predicate: PredicateFn,
        *,
        name: str,
        write_check: WriteCheckFn | None = None,
        description: str = "",
    ) -> Policy:
        """Build a :class:`Policy` from its parts, register it and return it.

        Example::

            registry.define(
                "friendships", "select",
                lambda identity, row, lookup: identity.subject_id in (
                    row["user_a_id"], row["user_b_id"]
                ),
                name="friendship_participants_can_read",
            )
        """
        new_policy = Policy(
            name=name,
            table=table,
            operation=operation,  # type: ignore[arg-type]
            predicate=predicate,
            write_check=write_check,
            description=description,
        )
        self.register(new_policy)
        return new_policy

    def policies_for(self, table: str, operation: str) -> tuple[Policy, ...]:
        """Return policies for ``(table, operation)`` in registration order.

        Returns an empty tuple for an unregistered key (deny by default).
        """
        return self._policies.get((table, operation), ())

    def has_policy(self, table: str, operation: str) -> bool:
        """Check whether at least one policy exists for ``(table, operation)``."""
        return bool(self._policies.get((table, operation)))

    def registered_tables(self, operation: str) -> set[str]:
        """Return all tables that have policies registered for *operation*."""
        return {table for table, op in self._policies if op == operation}

    def snapshot(self) -> PolicySnapshot:
        """Return the current immutable policy set."""
        return PolicySnapshot(self._policies)

    def reload(self, policies: Iterable[Policy]) -> None:
        """Atomically replace every policy with *policies*.

        The new set is validated before it is installed; on
        ``DuplicatePolicy`` the previous set stays in place.
        """
        fresh = MappingProxyType(_build(policies))
        with self._lock:
            self._policies = fresh

    def clear(self) -> None:
        """Remove all registered policies.

        Primarily useful in test teardown.
        """
        with self._lock:
            self._policies = MappingProxyType({})

    def __len__(self) -> int:
        return sum(len(group) for group in self._policies.values())
