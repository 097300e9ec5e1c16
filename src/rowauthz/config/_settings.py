"""Environment-backed settings that produce an :class:`AuthzConfig`.

Every field maps to a ``ROWAUTHZ_``-prefixed environment variable
(``verification_key`` reads ``ROWAUTHZ_JWT_SECRET``). A ``.env`` file in
the working directory is read when present.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rowauthz.config._config import AuthzConfig

__all__ = ["AuthzSettings"]


class AuthzSettings(BaseSettings):
    """Settings loaded from the environment.

    Example::

        # ROWAUTHZ_JWT_SECRET=... ROWAUTHZ_MAX_WORKERS=4
        config = AuthzSettings().to_config()
    """

    model_config = SettingsConfigDict(
        env_prefix="ROWAUTHZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    verification_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ROWAUTHZ_JWT_SECRET", "ROWAUTHZ_VERIFICATION_KEY"),
    )
    algorithms: str = "HS256"
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
    on_predicate_error: str = "log"

    @field_validator("algorithms")
    @classmethod
    def _strip_algorithms(cls, value: str) -> str:
        # Comma-separated list, e.g. "RS256,ES256".
        return ",".join(part.strip() for part in value.split(",") if part.strip())

    def to_config(self) -> AuthzConfig:
        """Build the immutable engine configuration.

        Raises:
            ValueError: If a value fails :class:`AuthzConfig` validation.
        """
        return AuthzConfig(
            verification_key=self.verification_key,
            algorithms=tuple(self.algorithms.split(",")) if self.algorithms else (),
            audience=self.audience,
            issuer=self.issuer,
            leeway=self.leeway,
            subject_claim=self.subject_claim,
            role_claim=self.role_claim,
            access_token_ttl=self.access_token_ttl,
            refresh_token_ttl=self.refresh_token_ttl,
            max_workers=self.max_workers,
            decision_timeout=self.decision_timeout,
            log_policy_decisions=self.log_policy_decisions,
            on_predicate_error=self.on_predicate_error,  # type: ignore[arg-type]
        )
