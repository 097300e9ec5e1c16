"""Tests for explain_access() and visibility_matrix()."""

from __future__ import annotations

import pytest

from rowauthz.config import AuthzConfig
from rowauthz.engine import DecisionEngine
from rowauthz.explain import explain_access, visibility_matrix
from rowauthz.policy import PolicyRegistry, is_owner
from rowauthz.relationships import RelationshipIndex
from tests.conftest import ALICE, BOB, CAROL, friends_read, profile, self_read


class TestExplainAccess:
    def test_deny_by_default(self, engine: DecisionEngine) -> None:
        result = explain_access(engine, ALICE, "profiles", "select", profile("alice"))
        assert result.allowed is False
        assert result.deny_by_default is True
        assert result.policies == []
        assert "DENY BY DEFAULT" in str(result)

    def test_evaluates_every_policy(
        self, engine: DecisionEngine, registry: PolicyRegistry, index: RelationshipIndex
    ) -> None:
        registry.define("profiles", "select", self_read, name="own", description="Own row.")
        registry.define("profiles", "select", friends_read, name="friends")
        index.add("friendships", "alice", "alice")
        result = explain_access(engine, ALICE, "profiles", "select", profile("alice"))
        assert result.allowed is True
        assert [(p.name, p.matched) for p in result.policies] == [
            ("own", True),
            ("friends", True),
        ]

    def test_no_match(self, engine: DecisionEngine, registry: PolicyRegistry) -> None:
        registry.define("profiles", "select", self_read, name="own")
        result = explain_access(engine, ALICE, "profiles", "select", profile("bob"))
        assert result.allowed is False
        assert result.deny_by_default is False
        assert "NO MATCH" in str(result)

    def test_write_check_failure_reported(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define("profiles", "update", is_owner(), write_check=is_owner(), name="own")
        row = profile("alice")
        result = explain_access(engine, ALICE, "profiles", "update", row, row.with_changes(id="z"))
        (evaluation,) = result.policies
        assert evaluation.matched is True
        assert evaluation.write_check_passed is False
        assert evaluation.granted is False
        assert result.allowed is False
        assert "write check failed" in str(result)

    def test_insert_judged_on_new_row_like_engine(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define("profiles", "insert", is_owner(), name="own_insert")
        stale, new = profile("bob"), profile("alice")
        permit = engine.authorize_write(ALICE, "profiles", "insert", stale, new)
        result = explain_access(engine, ALICE, "profiles", "insert", stale, new)
        assert result.allowed is True
        assert result.row_id == permit.row_id == "alice"

    def test_uses_engine_config(self, registry: PolicyRegistry) -> None:
        def broken(identity, row, lookup) -> bool:
            raise LookupError("no such relation")

        registry.define("profiles", "select", broken, name="broken")
        engine = DecisionEngine(registry, config=AuthzConfig(on_predicate_error="warn"))
        with pytest.warns(RuntimeWarning, match="broken"):
            explain_access(engine, ALICE, "profiles", "select", profile("alice"))

    def test_error_reported(self, engine: DecisionEngine, registry: PolicyRegistry) -> None:
        def broken(identity, row, lookup) -> bool:
            raise LookupError("no such relation")

        registry.define("profiles", "select", broken, name="broken")
        result = explain_access(engine, ALICE, "profiles", "select", profile("alice"))
        assert result.policies[0].error == "no such relation"
        assert "error: no such relation" in str(result)

    def test_to_dict(self, engine: DecisionEngine, registry: PolicyRegistry) -> None:
        registry.define("profiles", "select", self_read, name="own", description="Own row.")
        data = explain_access(engine, ALICE, "profiles", "select", profile("alice")).to_dict()
        assert data["allowed"] is True
        assert data["subject_id"] == "alice"
        assert data["policies"] == [
            {
                "name": "own",
                "description": "Own row.",
                "matched": True,
                "write_check_passed": None,
                "error": None,
            }
        ]

    def test_agrees_with_engine(
        self, engine: DecisionEngine, registry: PolicyRegistry, index: RelationshipIndex
    ) -> None:
        registry.define("profiles", "select", self_read, name="own")
        registry.define("profiles", "select", friends_read, name="friends")
        index.add("friendships", "alice", "bob")
        rows = [profile("alice"), profile("bob"), profile("carol")]
        for identity in (ALICE, BOB, CAROL):
            visible = {r.id for r in engine.filter_for_read(identity, "profiles", rows)}
            for row in rows:
                result = explain_access(engine, identity, "profiles", "select", row)
                assert result.allowed is (row.id in visible)


class TestVisibilityMatrix:
    def test_matrix(
        self, engine: DecisionEngine, registry: PolicyRegistry, index: RelationshipIndex
    ) -> None:
        registry.define("profiles", "select", self_read, name="own")
        registry.define("profiles", "select", friends_read, name="friends")
        index.add("friendships", "alice", "bob")
        rows = [profile("alice"), profile("bob"), profile("carol")]
        matrix = visibility_matrix(engine, [ALICE, BOB, CAROL], "profiles", rows)
        assert matrix.sees("alice", "bob")
        assert matrix.sees("bob", "alice")
        assert not matrix.sees("carol", "alice")
        assert matrix.visible["carol"] == ["carol"]
        assert matrix.to_dict()["row_ids"] == ["alice", "bob", "carol"]

    def test_str(self, engine: DecisionEngine, registry: PolicyRegistry) -> None:
        registry.define("profiles", "select", self_read, name="own")
        rows = [profile("alice"), profile("bob")]
        text = str(visibility_matrix(engine, [ALICE, BOB], "profiles", rows))
        assert text.splitlines()[0] == "Visibility on profiles"
        assert "alice" in text
