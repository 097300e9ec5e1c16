"""Explain mode — structured insight into access decisions."""

from rowauthz.explain._access import explain_access, visibility_matrix
from rowauthz.explain._models import AccessExplanation, AccessPolicyEvaluation, VisibilityMatrix

__all__ = [
    "AccessExplanation",
    "AccessPolicyEvaluation",
    "VisibilityMatrix",
    "explain_access",
    "visibility_matrix",
]
