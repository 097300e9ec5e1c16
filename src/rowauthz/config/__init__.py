"""Configuration module for row-authz."""

from __future__ import annotations

from rowauthz.config._config import AuthzConfig
from rowauthz.config._settings import AuthzSettings

__all__ = ["AuthzConfig", "AuthzSettings"]
