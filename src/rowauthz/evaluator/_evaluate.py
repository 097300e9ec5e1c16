"""Single-policy evaluation with per-policy fail-closed error handling."""

from __future__ import annotations

from typing import Any

from rowauthz._audit import log_predicate_error
from rowauthz._types import Identity, Row
from rowauthz.config._config import AuthzConfig
from rowauthz.evaluator._lookup import RelationLookup
from rowauthz.exceptions import EvaluationCancelled, PredicateEvaluationError
from rowauthz.policy._base import Policy
from rowauthz.policy._predicate import Predicate

__all__ = ["evaluate", "evaluate_write_check"]


def _fail(
    policy: Policy,
    row: Row,
    cause: BaseException,
    diagnostics: list[PredicateEvaluationError] | None,
    config: AuthzConfig | None,
    *,
    phase: str,
) -> bool:
    error = PredicateEvaluationError(
        policy_name=policy.name,
        table=policy.table,
        operation=policy.operation,
        row_id=row.id,
        cause=cause,
        message=(
            f"{phase} of policy {policy.name!r} on ({policy.table}, {policy.operation!r}) "
            f"failed for row {row.id!r}: {cause!r}"
        ),
    )
    if diagnostics is not None:
        diagnostics.append(error)
    log_predicate_error(error, config)
    return False


def _checked(result: Any) -> bool:
    if not isinstance(result, bool):
        raise TypeError(f"expected bool, got {type(result).__name__}")
    return result


def evaluate(
    policy: Policy,
    identity: Identity,
    row: Row,
    lookup: RelationLookup,
    *,
    diagnostics: list[PredicateEvaluationError] | None = None,
    config: AuthzConfig | None = None,
) -> bool:
    """Run *policy*'s predicate for one identity and one row.

    An exception or a non-``bool`` result makes this policy ``False``;
    a :class:`PredicateEvaluationError` is appended to *diagnostics* and
    logged. Cancellation is the one error that propagates.

    Args:
        policy: The policy to evaluate.
        identity: The caller.
        row: The candidate row (pre-image for update/delete).
        lookup: Relationship and own-row primitives for this call.
        diagnostics: Optional list collecting non-fatal failures.
        config: Controls whether failures also raise a ``RuntimeWarning``.

    Returns:
        Whether the policy grants access to the row.
    """
    try:
        return _checked(policy.predicate(identity, row, lookup))
    except EvaluationCancelled:
        raise
    except Exception as exc:
        return _fail(policy, row, exc, diagnostics, config, phase="Predicate")


def evaluate_write_check(
    policy: Policy,
    identity: Identity,
    post_image: Row,
    *,
    lookup: RelationLookup | None = None,
    diagnostics: list[PredicateEvaluationError] | None = None,
    config: AuthzConfig | None = None,
) -> bool:
    """Apply *policy*'s write check to the post-image of a write.

    A policy without a write check accepts any post-image. Plain
    callables are called as ``(identity, post_image)``; a
    :class:`~rowauthz.policy.Predicate` also receives *lookup*, so it can
    compare the post-image against the caller's stored row.
    """
    check = policy.write_check
    if check is None:
        return True
    try:
        if isinstance(check, Predicate):
            return _checked(check(identity, post_image, lookup))
        return _checked(check(identity, post_image))
    except EvaluationCancelled:
        raise
    except Exception as exc:
        return _fail(policy, post_image, exc, diagnostics, config, phase="Write check")
