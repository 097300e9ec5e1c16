"""Evaluator — run policy predicates against rows."""

from rowauthz.evaluator._evaluate import evaluate, evaluate_write_check
from rowauthz.evaluator._lookup import CancellationToken, RelationLookup

__all__ = [
    "CancellationToken",
    "RelationLookup",
    "evaluate",
    "evaluate_write_check",
]
