"""Decision engine — row filtering and write authorization."""

from rowauthz.engine._decision import DecisionEngine, Permit, ReadDecision
from rowauthz.evaluator._lookup import CancellationToken

__all__ = ["CancellationToken", "DecisionEngine", "Permit", "ReadDecision"]
