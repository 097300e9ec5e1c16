"""DecisionEngine — OR-combine policies into read filters and write permits."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any

from rowauthz._audit import log_policy_evaluation, log_predicate_error, log_write_denied
from rowauthz._types import WRITE_OPERATIONS, Identity, Row, RowSource
from rowauthz.config._config import AuthzConfig
from rowauthz.evaluator._evaluate import evaluate, evaluate_write_check
from rowauthz.evaluator._lookup import CancellationToken, RelationLookup
from rowauthz.exceptions import AccessDenied, EvaluationCancelled, PredicateEvaluationError
from rowauthz.policy._base import Policy
from rowauthz.policy._registry import PolicyRegistry
from rowauthz.relationships._index import RelationshipIndex

__all__ = ["DecisionEngine", "Permit", "ReadDecision"]

logger = logging.getLogger(__name__)

# Longest the engine blocks before re-checking cancellation and the deadline.
_POLL_INTERVAL = 0.05


@dataclass(frozen=True, slots=True)
class Permit:
    """Proof that a write was authorized.

    Attributes:
        table: The target table.
        operation: ``insert``, ``update`` or ``delete``.
        subject_id: The caller.
        row_id: Id of the written row (post-image id for inserts).
        granted_by: Name of the first policy that allowed the write.
    """

    table: str
    operation: str
    subject_id: str
    row_id: Any
    granted_by: str


@dataclass(frozen=True, slots=True)
class ReadDecision:
    """Result of :meth:`DecisionEngine.decide_read`.

    Attributes:
        rows: Visible rows, in candidate order.
        diagnostics: Non-fatal predicate failures, timeouts and cancellations.
    """

    rows: list[Row] = field(default_factory=list)
    diagnostics: list[PredicateEvaluationError] = field(default_factory=list)


class DecisionEngine:
    """Decides row visibility and write permission for verified identities.

    The registry and relationship index are injected; every call works on
    snapshots of both taken when the call starts.

    Example::

        engine = DecisionEngine(registry, relationships=index, row_source=source)
        visible = engine.filter_for_read(alice, "profiles", candidates)
        permit = engine.authorize_write(
            alice, "profiles", "update", row, row.with_changes(bio="hi")
        )
    """

    def __init__(
        self,
        registry: PolicyRegistry,
        *,
        relationships: RelationshipIndex | None = None,
        row_source: RowSource | None = None,
        config: AuthzConfig | None = None,
    ) -> None:
        self._registry = registry
        self._relationships = relationships if relationships is not None else RelationshipIndex()
        self._row_source = row_source
        self._config = config if config is not None else AuthzConfig()

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def relationships(self) -> RelationshipIndex:
        return self._relationships

    @property
    def row_source(self) -> RowSource | None:
        return self._row_source

    @property
    def config(self) -> AuthzConfig:
        return self._config

    def _lookup(self, identity: Identity, cancel: CancellationToken | None) -> RelationLookup:
        timeout = self._config.decision_timeout
        deadline = time.monotonic() + timeout if timeout is not None else None
        return RelationLookup(
            identity,
            self._relationships.snapshot(),
            self._row_source,
            cancel=cancel,
            deadline=deadline,
        )

    # -- reads ---------------------------------------------------------------

    def _row_visible(
        self,
        policies: Sequence[Policy],
        identity: Identity,
        row: Row,
        lookup: RelationLookup,
        diagnostics: list[PredicateEvaluationError],
    ) -> bool:
        lookup.check_cancelled()
        for p in policies:
            if evaluate(p, identity, row, lookup, diagnostics=diagnostics, config=self._config):
                # A grant observed after cancellation does not count.
                lookup.check_cancelled()
                return True
        return False

    def _denied_diagnostic(
        self, table: str, row: Row, cause: BaseException
    ) -> PredicateEvaluationError:
        error = PredicateEvaluationError(
            policy_name="",
            table=table,
            operation="select",
            row_id=row.id,
            cause=cause,
            message=f"Row {row.id!r} of {table} denied: {cause}",
        )
        log_predicate_error(error, self._config)
        return error

    def decide_read(
        self,
        identity: Identity,
        table: str,
        rows: Sequence[Row],
        *,
        cancel: CancellationToken | None = None,
    ) -> ReadDecision:
        """Filter *rows* for *identity* and report diagnostics.

        A row is kept iff at least one ``select`` policy on *table* grants
        it. Rows that are denied, that errored in every policy, or that
        were not decided before cancellation/timeout are dropped.

        Args:
            identity: The caller.
            table: The table the candidates come from.
            rows: Candidate rows (e.g. an unfiltered query result).
            cancel: Optional cancellation token.

        Returns:
            A :class:`ReadDecision` with the visible rows in input order.
        """
        policies = self._registry.snapshot().policies_for(table, "select")
        if not policies or not rows:
            if self._config.log_policy_decisions:
                log_policy_evaluation(
                    table=table,
                    operation="select",
                    identity=identity,
                    policies=policies,
                    considered=len(rows),
                    granted=0,
                )
            return ReadDecision()

        lookup = self._lookup(identity, cancel)
        diagnostics: list[PredicateEvaluationError] = []
        visible = [False] * len(rows)

        if self._config.max_workers > 1 and len(rows) > 1:
            self._decide_concurrently(policies, identity, table, rows, lookup, visible, diagnostics)
        else:
            for i, row in enumerate(rows):
                try:
                    visible[i] = self._row_visible(policies, identity, row, lookup, diagnostics)
                except EvaluationCancelled as exc:
                    diagnostics.append(self._denied_diagnostic(table, row, exc))

        kept = [row for row, ok in zip(rows, visible) if ok]
        if self._config.log_policy_decisions:
            log_policy_evaluation(
                table=table,
                operation="select",
                identity=identity,
                policies=policies,
                considered=len(rows),
                granted=len(kept),
            )
        return ReadDecision(rows=kept, diagnostics=diagnostics)

    def _decide_concurrently(
        self,
        policies: Sequence[Policy],
        identity: Identity,
        table: str,
        rows: Sequence[Row],
        lookup: RelationLookup,
        visible: list[bool],
        diagnostics: list[PredicateEvaluationError],
    ) -> None:
        per_row: list[list[PredicateEvaluationError]] = [[] for _ in rows]
        executor = ThreadPoolExecutor(
            max_workers=min(self._config.max_workers, len(rows)),
            thread_name_prefix="rowauthz",
        )
        try:
            futures = [
                executor.submit(self._row_visible, policies, identity, row, lookup, per_row[i])
                for i, row in enumerate(rows)
            ]
            pending, stopped = self._await_rows(futures, lookup)
            for i, future in enumerate(futures):
                diagnostics.extend(per_row[i])
                if future in pending:
                    future.cancel()
                    diagnostics.append(self._denied_diagnostic(table, rows[i], stopped))
                    continue
                try:
                    visible[i] = future.result()
                except EvaluationCancelled as exc:
                    diagnostics.append(self._denied_diagnostic(table, rows[i], exc))
        finally:
            # Do not block on stragglers; their results are discarded.
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _await_rows(
        futures: list[Future[bool]], lookup: RelationLookup
    ) -> tuple[set[Future[bool]], EvaluationCancelled | None]:
        """Wait for *futures*, giving up once the call is cancelled or times out.

        Returns the unfinished futures and, when the wait was cut short,
        the reason. Blocked workers are abandoned, not joined.
        """
        pending: set[Future[bool]] = set(futures)
        while pending:
            try:
                lookup.check_cancelled()
            except EvaluationCancelled as exc:
                return pending, exc
            remaining = lookup.remaining()
            interval = _POLL_INTERVAL if remaining is None else min(_POLL_INTERVAL, remaining)
            _, pending = wait(pending, timeout=interval)
        return pending, None

    def filter_for_read(
        self,
        identity: Identity,
        table: str,
        rows: Sequence[Row],
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Row]:
        """Return the subset of *rows* visible to *identity*.

        Denied rows are silently dropped; with no ``select`` policy on
        *table* the result is empty.

        Example::

            engine.filter_for_read(alice, "profiles", [row_alice, row_bob])
            # [row_alice] under "users_read_own_profile" alone
        """
        return self.decide_read(identity, table, rows, cancel=cancel).rows

    # -- writes --------------------------------------------------------------

    def authorize_write(
        self,
        identity: Identity,
        table: str,
        operation: str,
        target_row: Row | None = None,
        post_image: Row | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Permit:
        """Authorize an insert, update or delete.

        - ``delete``: some policy's predicate holds on *target_row*.
        - ``update``: some policy's predicate holds on *target_row* and the
          same policy's write check (if any) holds on *post_image*
          (defaults to *target_row*).
        - ``insert``: the new row is *post_image* (or *target_row*); some
          policy's predicate and its write check (if any) hold on it.

        Raises:
            AccessDenied: No policy permits the write (including no policy
                registered, predicate failures and cancellation).
            ValueError: *operation* is not a write, or a required row is
                missing.
        """
        if operation not in WRITE_OPERATIONS:
            raise ValueError(
                f"operation must be one of {sorted(WRITE_OPERATIONS)!r}, got {operation!r}"
            )
        if operation == "insert":
            subject_row = post_image if post_image is not None else target_row
            after = subject_row
        else:
            subject_row = target_row
            after = post_image if post_image is not None else target_row
        if subject_row is None or after is None:
            raise ValueError(f"{operation} authorization needs a row")

        policies = self._registry.snapshot().policies_for(table, operation)
        lookup = self._lookup(identity, cancel)
        diagnostics: list[PredicateEvaluationError] = []
        granted: Policy | None = None

        try:
            lookup.check_cancelled()
            for p in policies:
                if not evaluate(
                    p, identity, subject_row, lookup, diagnostics=diagnostics, config=self._config
                ):
                    continue
                if operation != "delete" and not evaluate_write_check(
                    p,
                    identity,
                    after,
                    lookup=lookup,
                    diagnostics=diagnostics,
                    config=self._config,
                ):
                    continue
                lookup.check_cancelled()
                granted = p
                break
        except EvaluationCancelled:
            logger.info("Write decision on %s cancelled; denying", table)
            granted = None

        if self._config.log_policy_decisions:
            log_policy_evaluation(
                table=table,
                operation=operation,
                identity=identity,
                policies=policies,
                considered=1,
                granted=int(granted is not None),
            )

        if granted is None:
            log_write_denied(table=table, operation=operation, identity=identity)
            raise AccessDenied(subject_id=identity.subject_id, operation=operation, table=table)

        return Permit(
            table=table,
            operation=operation,
            subject_id=identity.subject_id,
            row_id=after.id,
            granted_by=granted.name,
        )
