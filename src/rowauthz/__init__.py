"""row-authz — embedded row-level authorization engine.

Verifies signed access tokens into identities and filters rows with
OR-combined, per-operation policies. Fail-closed: no policy, no access.

Example::

    from rowauthz import DecisionEngine, IdentityResolver, PolicyRegistry, policy

    registry = PolicyRegistry()

    @policy("profiles", "select", registry=registry)
    def users_read_own_profile(identity, row, lookup) -> bool:
        return row.id == identity.subject_id

    identity = IdentityResolver(config).resolve(access_token)
    visible = DecisionEngine(registry).filter_for_read(identity, "profiles", rows)
"""

from importlib.metadata import PackageNotFoundError, version

from rowauthz._checks import authorize, can
from rowauthz._types import Identity, Operation, RelationshipEdge, Role, Row, RowSource
from rowauthz.config import AuthzConfig, AuthzSettings
from rowauthz.engine import CancellationToken, DecisionEngine, Permit, ReadDecision
from rowauthz.evaluator import RelationLookup, evaluate
from rowauthz.exceptions import (
    AccessDenied,
    DuplicatePolicy,
    EvaluationCancelled,
    Expired,
    InvalidCredential,
    PredicateEvaluationError,
    RowAuthzError,
    ScopeViolation,
)
from rowauthz.identity import IdentityResolver, Session, TokenIssuer, inspect_token
from rowauthz.policy import Policy, PolicyRegistry, policy
from rowauthz.relationships import RelationshipIndex

try:
    __version__ = version("row-authz")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "__version__",
    "AccessDenied",
    "AuthzConfig",
    "AuthzSettings",
    "CancellationToken",
    "DecisionEngine",
    "DuplicatePolicy",
    "EvaluationCancelled",
    "Expired",
    "Identity",
    "IdentityResolver",
    "InvalidCredential",
    "Operation",
    "Permit",
    "Policy",
    "PolicyRegistry",
    "PredicateEvaluationError",
    "ReadDecision",
    "RelationLookup",
    "RelationshipEdge",
    "RelationshipIndex",
    "Role",
    "Row",
    "RowAuthzError",
    "RowSource",
    "ScopeViolation",
    "Session",
    "TokenIssuer",
    "authorize",
    "can",
    "evaluate",
    "inspect_token",
    "policy",
]
