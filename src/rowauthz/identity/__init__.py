"""Identity — verify tokens into identities, issue and refresh sessions."""

from rowauthz.identity._issuer import Session, TokenIssuer
from rowauthz.identity._resolver import IdentityResolver, decode_verified, inspect_token

__all__ = [
    "IdentityResolver",
    "Session",
    "TokenIssuer",
    "decode_verified",
    "inspect_token",
]
