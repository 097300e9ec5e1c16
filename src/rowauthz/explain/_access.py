"""explain_access() and visibility_matrix() — inspect access decisions."""

from __future__ import annotations

from collections.abc import Sequence

from rowauthz._types import Identity, Row
from rowauthz.engine._decision import DecisionEngine
from rowauthz.evaluator._evaluate import evaluate, evaluate_write_check
from rowauthz.evaluator._lookup import RelationLookup
from rowauthz.exceptions import PredicateEvaluationError
from rowauthz.explain._models import AccessExplanation, AccessPolicyEvaluation, VisibilityMatrix

__all__ = ["explain_access", "visibility_matrix"]


def explain_access(
    engine: DecisionEngine,
    identity: Identity,
    table: str,
    operation: str,
    row: Row,
    post_image: Row | None = None,
) -> AccessExplanation:
    """Explain why *identity* can or cannot perform *operation* on *row*.

    Unlike the engine, every policy is evaluated (no short-circuit) so the
    report shows all matches. Uses the same registry, relationship and
    row-source snapshots the engine would.

    Args:
        engine: The decision engine whose policies to explain.
        identity: The caller.
        table: The row's table.
        operation: ``select``, ``insert``, ``update`` or ``delete``.
        row: Target row (the new row for ``insert``).
        post_image: Row after an update. For ``insert`` it is the new row
            and takes precedence over *row*, as in
            :meth:`DecisionEngine.authorize_write`.

    Returns:
        An ``AccessExplanation`` with per-policy results and the verdict.
    """
    if operation == "insert" and post_image is not None:
        row = post_image
    after = post_image if post_image is not None else row
    policies = engine.registry.snapshot().policies_for(table, operation)
    if not policies:
        return AccessExplanation(
            subject_id=identity.subject_id,
            role=identity.role,
            operation=operation,
            table=table,
            row_id=row.id,
            allowed=False,
            deny_by_default=True,
            policies=[],
        )

    lookup = RelationLookup(identity, engine.relationships.snapshot(), engine.row_source)
    evaluations: list[AccessPolicyEvaluation] = []

    for p in policies:
        diagnostics: list[PredicateEvaluationError] = []
        matched = evaluate(p, identity, row, lookup, diagnostics=diagnostics, config=engine.config)
        check: bool | None = None
        if matched and operation in ("insert", "update") and p.write_check is not None:
            check = evaluate_write_check(
                p, identity, after, lookup=lookup, diagnostics=diagnostics, config=engine.config
            )
        evaluations.append(
            AccessPolicyEvaluation(
                name=p.name,
                description=p.description,
                matched=matched,
                write_check_passed=check,
                error=str(diagnostics[0].cause) if diagnostics else None,
            )
        )

    return AccessExplanation(
        subject_id=identity.subject_id,
        role=identity.role,
        operation=operation,
        table=table,
        row_id=row.id,
        allowed=any(e.granted for e in evaluations),
        deny_by_default=False,
        policies=evaluations,
    )


def visibility_matrix(
    engine: DecisionEngine,
    identities: Sequence[Identity],
    table: str,
    rows: Sequence[Row],
) -> VisibilityMatrix:
    """Run ``filter_for_read`` for each identity and tabulate the results.

    Example::

        matrix = visibility_matrix(engine, [alice, bob], "profiles", rows)
        print(matrix)
        assert matrix.sees("alice", "bob")
    """
    visible = {
        identity.subject_id: [r.id for r in engine.filter_for_read(identity, table, rows)]
        for identity in identities
    }
    return VisibilityMatrix(
        table=table,
        subjects=[i.subject_id for i in identities],
        row_ids=[r.id for r in rows],
        visible=visible,
    )
