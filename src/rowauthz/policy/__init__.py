"""Policy engine — registration and lookup of row policies."""

from rowauthz.policy._base import Policy
from rowauthz.policy._decorator import policy
from rowauthz.policy._predicate import (
    Predicate,
    always_allow,
    always_deny,
    has_role,
    is_owner,
    keeps_own_fields,
    own_row_matches,
    participant_of,
    predicate,
    related_via,
    same_id,
)
from rowauthz.policy._registry import PolicyRegistry, PolicySnapshot

__all__ = [
    "Policy",
    "PolicyRegistry",
    "PolicySnapshot",
    "Predicate",
    "always_allow",
    "always_deny",
    "has_role",
    "is_owner",
    "keeps_own_fields",
    "own_row_matches",
    "participant_of",
    "policy",
    "predicate",
    "related_via",
    "same_id",
]
