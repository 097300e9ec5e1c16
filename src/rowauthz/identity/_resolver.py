"""IdentityResolver — verify a signed access token and build an Identity."""

from __future__ import annotations

import logging
from typing import Any

import jwt

from rowauthz._types import Identity, parse_role
from rowauthz.config._config import AuthzConfig
from rowauthz.exceptions import Expired, InvalidCredential

__all__ = ["IdentityResolver", "decode_verified", "inspect_token"]

logger = logging.getLogger("rowauthz.identity")


def decode_verified(token: str, config: AuthzConfig) -> dict[str, Any]:
    """Verify *token* with PyJWT and return its payload.

    Raises:
        Expired: The ``exp`` claim is in the past (beyond ``leeway``).
        InvalidCredential: Any other verification failure.
    """
    if not config.verification_key:
        raise InvalidCredential("No verification key configured", reason="no_key")
    if not isinstance(token, str) or not token:
        raise InvalidCredential("Credential must be a non-empty string", reason="malformed")

    options: dict[str, Any] = {"require": ["exp", config.subject_claim]}
    if config.audience is None:
        options["verify_aud"] = False
    try:
        return jwt.decode(
            token,
            config.verification_key,
            algorithms=list(config.algorithms),
            audience=config.audience,
            issuer=config.issuer,
            leeway=config.leeway,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        logger.debug("Rejected expired credential")
        raise Expired() from exc
    except jwt.InvalidSignatureError as exc:
        logger.debug("Rejected credential with bad signature")
        raise InvalidCredential("Signature verification failed", reason="signature") from exc
    except jwt.InvalidAudienceError as exc:
        raise InvalidCredential("Unexpected audience", reason="audience") from exc
    except jwt.InvalidIssuerError as exc:
        raise InvalidCredential("Unexpected issuer", reason="issuer") from exc
    except jwt.MissingRequiredClaimError as exc:
        raise InvalidCredential(f"Missing claim {exc.claim!r}", reason="missing_claim") from exc
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected malformed credential: %s", exc)
        raise InvalidCredential("Malformed credential", reason="malformed") from exc


def inspect_token(token: str) -> dict[str, Any]:
    """Decode a token's payload *without* verifying it.

    For display only ("what is inside my access token?"); never use the
    result for an access decision.

    Raises:
        InvalidCredential: The token is not a decodable JWT.

    Example::

        payload = inspect_token(session.access_token)
        print(payload["exp"], payload["role"])
    """
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        raise InvalidCredential("Malformed credential", reason="malformed") from exc


class IdentityResolver:
    """Turns access tokens into :class:`~rowauthz.Identity` values.

    Pure function of (token, current time, verification key).

    Example::

        resolver = IdentityResolver(AuthzConfig(verification_key=secret))
        identity = resolver.resolve(request_token)
    """

    def __init__(self, config: AuthzConfig) -> None:
        self._config = config

    @property
    def config(self) -> AuthzConfig:
        return self._config

    def resolve(self, credential: str) -> Identity:
        """Verify *credential* and extract subject id, role and claims.

        Args:
            credential: The signed access token.

        Returns:
            The caller's :class:`Identity`. Unknown or missing roles
            become ``"user"``.

        Raises:
            Expired: The token has expired.
            InvalidCredential: Bad signature, malformed token, wrong
                audience/issuer, missing subject, or a refresh token.
        """
        payload = decode_verified(credential, self._config)
        if payload.get("token_use", "access") != "access":
            raise InvalidCredential("Refresh tokens cannot be used for access", reason="token_use")

        subject = payload.get(self._config.subject_claim)
        if subject is None or subject == "":
            raise InvalidCredential("Credential has no subject", reason="missing_claim")

        return Identity(
            subject_id=str(subject),
            role=parse_role(payload.get(self._config.role_claim)),
            claims=payload,
        )
