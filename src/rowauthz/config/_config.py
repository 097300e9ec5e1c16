"""Engine and token configuration for row-authz."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from rowauthz._types import OnPredicateError

__all__ = ["AuthzConfig"]

_VALID_ON_PREDICATE_ERROR: set[str] = {"log", "warn"}


@dataclass(frozen=True, slots=True)
class AuthzConfig:
    """Immutable configuration passed explicitly to resolvers and engines.

    Attributes:
        verification_key: Secret (HS*) or public key (RS*/ES*) used to verify
            tokens; also the signing key for :class:`TokenIssuer` with HS*.
        algorithms: Accepted JWT algorithms. The first one signs.
        audience: Expected ``aud`` claim, or ``None`` to skip the check.
        issuer: Expected ``iss`` claim, or ``None`` to skip the check.
        leeway: Clock skew tolerance in seconds for ``exp``/``iat``.
        subject_claim: Claim holding the subject id.
        role_claim: Claim holding the role.
        access_token_ttl: Access token lifetime in seconds.
        refresh_token_ttl: Refresh token lifetime in seconds.
        max_workers: Threads used by ``filter_for_read``; ``1`` is sequential.
        decision_timeout: Seconds a single decision call may take, or ``None``.
        log_policy_decisions: Emit INFO/DEBUG decision logs.
        on_predicate_error: ``"log"`` only logs predicate failures;
            ``"warn"`` also issues a ``RuntimeWarning``.

    Example::

        config = AuthzConfig(verification_key="s3cret", max_workers=4)
        strict = config.merge(decision_timeout=0.5)
    """

    verification_key: str | None = None
    algorithms: tuple[str, ...] = ("HS256",)
    audience: str | None = None
    issuer: str | None = None
    leeway: float = 0.0
    subject_claim: str = "sub"
    role_claim: str = "role"
    access_token_ttl: int = 3600
    refresh_token_ttl: int = 60 * 24 * 3600
    max_workers: int = 1
    decision_timeout: float | None = None
    log_policy_decisions: bool = False
    on_predicate_error: OnPredicateError = "log"

    def __post_init__(self) -> None:
        if not self.algorithms:
            raise ValueError("algorithms must name at least one JWT algorithm")
        if self.leeway < 0:
            raise ValueError(f"leeway must be >= 0, got {self.leeway!r}")
        if self.access_token_ttl <= 0:
            raise ValueError(f"access_token_ttl must be > 0, got {self.access_token_ttl!r}")
        if self.refresh_token_ttl <= 0:
            raise ValueError(f"refresh_token_ttl must be > 0, got {self.refresh_token_ttl!r}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers!r}")
        if self.decision_timeout is not None and self.decision_timeout <= 0:
            raise ValueError(f"decision_timeout must be > 0, got {self.decision_timeout!r}")
        if self.on_predicate_error not in _VALID_ON_PREDICATE_ERROR:
            raise ValueError(
                f"on_predicate_error must be one of {_VALID_ON_PREDICATE_ERROR!r}, "
                f"got {self.on_predicate_error!r}"
            )

    def merge(
        self,
        *,
        verification_key: str | None = None,
        algorithms: tuple[str, ...] | None = None,
        audience: str | None = None,
        issuer: str | None = None,
        leeway: float | None = None,
        subject_claim: str | None = None,
        role_claim: str | None = None,
        access_token_ttl: int | None = None,
        refresh_token_ttl: int | None = None,
        max_workers: int | None = None,
        decision_timeout: float | None = None,
        log_policy_decisions: bool | None = None,
        on_predicate_error: OnPredicateError | None = None,
    ) -> AuthzConfig:
        """Return a new config with non-None overrides applied.

        Example::

            base = AuthzConfig()
            threaded = base.merge(max_workers=8)
            assert base.max_workers == 1
        """
        overrides: dict[str, Any] = {
            "verification_key": verification_key,
            "algorithms": tuple(algorithms) if algorithms is not None else None,
            "audience": audience,
            "issuer": issuer,
            "leeway": leeway,
            "subject_claim": subject_claim,
            "role_claim": role_claim,
            "access_token_ttl": access_token_ttl,
            "refresh_token_ttl": refresh_token_ttl,
            "max_workers": max_workers,
            "decision_timeout": decision_timeout,
            "log_policy_decisions": log_policy_decisions,
            "on_predicate_error": on_predicate_error,
        }
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
