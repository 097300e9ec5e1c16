"""TokenIssuer — sign access/refresh token pairs and refresh sessions."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from rowauthz._types import Role, parse_role
from rowauthz.config._config import AuthzConfig
from rowauthz.identity._resolver import decode_verified
from rowauthz.exceptions import InvalidCredential

__all__ = ["Session", "TokenIssuer"]

logger = logging.getLogger("rowauthz.identity")

# Claims the issuer controls; everything else is carried over on refresh.
_RESERVED_CLAIMS = frozenset({"sub", "role", "iat", "exp", "nbf", "aud", "iss", "jti", "token_use"})


@dataclass(frozen=True, slots=True)
class Session:
    """A signed access/refresh token pair.

    Attributes:
        access_token: Short-lived token accepted by ``IdentityResolver``.
        refresh_token: Long-lived token accepted only by ``TokenIssuer.refresh``.
        expires_at: Access token expiry (UTC).
        refresh_expires_at: Refresh token expiry (UTC).
    """

    access_token: str
    refresh_token: str
    expires_at: datetime
    refresh_expires_at: datetime

    def expires_in(self, now: datetime | None = None) -> int:
        """Whole seconds until the access token expires (never negative)."""
        current = now if now is not None else datetime.now(timezone.utc)
        return max(0, int((self.expires_at - current).total_seconds()))


class TokenIssuer:
    """Issues and refreshes sessions signed with ``config.verification_key``.

    Example::

        issuer = TokenIssuer(AuthzConfig(verification_key=secret))
        session = issuer.issue_session("alice", role="user")
        later = issuer.refresh(session.refresh_token)
    """

    def __init__(self, config: AuthzConfig, *, signing_key: str | None = None) -> None:
        key = signing_key if signing_key is not None else config.verification_key
        if not key:
            raise ValueError("TokenIssuer needs a signing key")
        self._config = config
        self._key = key

    def _encode(self, payload: dict[str, Any]) -> str:
        return jwt.encode(payload, self._key, algorithm=self._config.algorithms[0])

    def issue_session(
        self,
        subject_id: str,
        role: Role = "user",
        claims: Mapping[str, Any] | None = None,
        *,
        now: datetime | None = None,
    ) -> Session:
        """Sign a fresh access/refresh pair for *subject_id*.

        Args:
            subject_id: The caller's id (``sub``).
            role: Role claim for the access token.
            claims: Extra claims (e.g. ``{"email": ...}``). Reserved claims
                such as ``exp`` are ignored.
            now: Issue time; defaults to the current UTC time.
        """
        issued_at = now if now is not None else datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self._config.access_token_ttl)
        refresh_expires_at = issued_at + timedelta(seconds=self._config.refresh_token_ttl)

        base: dict[str, Any] = {
            k: v for k, v in (claims or {}).items() if k not in _RESERVED_CLAIMS
        }
        base[self._config.subject_claim] = subject_id
        base[self._config.role_claim] = role
        base["iat"] = issued_at
        if self._config.audience is not None:
            base["aud"] = self._config.audience
        if self._config.issuer is not None:
            base["iss"] = self._config.issuer

        access = self._encode({**base, "exp": expires_at, "token_use": "access"})
        refresh = self._encode(
            {
                **base,
                "exp": refresh_expires_at,
                "token_use": "refresh",
                "jti": uuid.uuid4().hex,
            }
        )
        logger.debug("Issued session for %r (role=%s)", subject_id, role)
        return Session(
            access_token=access,
            refresh_token=refresh,
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    def refresh(self, refresh_token: str, *, now: datetime | None = None) -> Session:
        """Exchange a valid refresh token for a new session.

        Subject, role and custom claims are carried over.

        Raises:
            Expired: The refresh token has expired.
            InvalidCredential: The token is invalid or is an access token.
        """
        payload = decode_verified(refresh_token, self._config)
        if payload.get("token_use") != "refresh":
            raise InvalidCredential("Not a refresh token", reason="token_use")

        subject = payload.get(self._config.subject_claim)
        if not subject:
            raise InvalidCredential("Credential has no subject", reason="missing_claim")

        skipped = _RESERVED_CLAIMS | {self._config.subject_claim, self._config.role_claim}
        extra = {k: v for k, v in payload.items() if k not in skipped}
        logger.debug("Refreshing session for %r", subject)
        return self.issue_session(
            str(subject),
            role=parse_role(payload.get(self._config.role_claim)),
            claims=extra,
            now=now,
        )
