"""Audit logging for access decisions and predicate failures."""

from __future__ import annotations

import logging
import warnings
from collections.abc import Sequence

from rowauthz._types import Identity
from rowauthz.config._config import AuthzConfig
from rowauthz.exceptions import PredicateEvaluationError
from rowauthz.policy._base import Policy

__all__ = ["log_policy_evaluation", "log_predicate_error", "log_write_denied"]

logger = logging.getLogger("rowauthz")


def log_policy_evaluation(
    *,
    table: str,
    operation: str,
    identity: Identity,
    policies: Sequence[Policy],
    considered: int,
    granted: int,
) -> None:
    """Log a decision call.

    Logging levels:
    - INFO: Summary (table, operation, policy count, granted/considered)
    - DEBUG: Policy names
    - WARNING: No policy found (deny-by-default triggered)

    Example::

        log_policy_evaluation(
            table="profiles",
            operation="select",
            identity=alice,
            policies=snapshot.policies_for("profiles", "select"),
            considered=3,
            granted=1,
        )
    """
    if not policies:
        logger.warning(
            "No policy registered for (%s, %r) — deny-by-default applied",
            table,
            operation,
        )
        return

    logger.info(
        "Policy evaluation: %s.%s — %d policy(ies), %d/%d row(s) granted for subject %r",
        table,
        operation,
        len(policies),
        granted,
        considered,
        identity.subject_id,
    )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Policies considered for %s.%s: %s",
            table,
            operation,
            [p.name for p in policies],
        )


def log_predicate_error(
    error: PredicateEvaluationError,
    config: AuthzConfig | None = None,
) -> None:
    """Report a failed predicate on ``rowauthz.predicate``.

    Always logged at WARNING; additionally issued as a ``RuntimeWarning``
    when ``config.on_predicate_error == "warn"``.
    """
    logging.getLogger("rowauthz.predicate").warning(
        "Predicate failure treated as deny: %s",
        error,
    )
    if config is not None and config.on_predicate_error == "warn":
        warnings.warn(str(error), RuntimeWarning, stacklevel=3)


def log_write_denied(*, table: str, operation: str, identity: Identity) -> None:
    """Log a denied write on ``rowauthz.denied`` without naming policies."""
    logging.getLogger("rowauthz.denied").info(
        "DENIED %s on %s for subject %r",
        operation,
        table,
        identity.subject_id,
    )
