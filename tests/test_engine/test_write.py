"""Tests for DecisionEngine.authorize_write."""

from __future__ import annotations

import logging

import pytest

from rowauthz.engine import CancellationToken, DecisionEngine, Permit
from rowauthz.exceptions import AccessDenied
from rowauthz.policy import PolicyRegistry, always_allow, is_owner, participant_of
from tests.conftest import ALICE, BOB, friendship, profile


class TestArguments:
    def test_rejects_select(self, engine: DecisionEngine) -> None:
        with pytest.raises(ValueError, match="operation must be one of"):
            engine.authorize_write(ALICE, "profiles", "select", profile("alice"))

    def test_requires_a_row(self, engine: DecisionEngine) -> None:
        with pytest.raises(ValueError, match="needs a row"):
            engine.authorize_write(ALICE, "profiles", "delete")


class TestDenyByDefault:
    @pytest.mark.parametrize("operation", ["insert", "update", "delete"])
    def test_no_policy_denies(self, engine: DecisionEngine, operation: str) -> None:
        with pytest.raises(AccessDenied) as exc_info:
            engine.authorize_write(ALICE, "profiles", operation, profile("alice"))
        assert exc_info.value.operation == operation
        assert exc_info.value.subject_id == "alice"

    def test_select_policy_does_not_grant_writes(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define("profiles", "select", always_allow, name="read_all")
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "delete", profile("alice"))


class TestUpdate:
    @pytest.fixture(autouse=True)
    def _own_update(self, registry: PolicyRegistry) -> None:
        registry.define(
            "profiles",
            "update",
            is_owner(),
            write_check=is_owner(),
            name="users_update_own_profile",
        )

    def test_update_own_row(self, engine: DecisionEngine) -> None:
        row = profile("alice")
        after = row.with_changes(bio="hi")
        permit = engine.authorize_write(ALICE, "profiles", "update", row, after)
        assert permit == Permit("profiles", "update", "alice", "alice", "users_update_own_profile")

    def test_update_other_row_denied(self, engine: DecisionEngine) -> None:
        row = profile("bob")
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "update", row, row.with_changes(bio="x"))

    def test_post_image_must_satisfy_write_check(self, engine: DecisionEngine) -> None:
        row = profile("alice")
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "update", row, row.with_changes(id="bob"))

    def test_post_image_defaults_to_target(self, engine: DecisionEngine) -> None:
        permit = engine.authorize_write(ALICE, "profiles", "update", profile("alice"))
        assert permit.row_id == "alice"

    def test_denial_message_names_no_policy(self, engine: DecisionEngine) -> None:
        with pytest.raises(AccessDenied) as exc_info:
            engine.authorize_write(BOB, "profiles", "update", profile("alice"))
        assert "users_update_own_profile" not in str(exc_info.value)


class TestWriteCheckBelongsToMatchingPolicy:
    def test_other_policys_check_does_not_apply(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        # Admin-style policy without a check, owner policy with a strict check.
        registry.define(
            "profiles", "update", is_owner(), write_check=lambda i, r: False, name="strict"
        )
        registry.define("profiles", "update", always_allow, name="lenient")
        permit = engine.authorize_write(ALICE, "profiles", "update", profile("alice"))
        assert permit.granted_by == "lenient"

    def test_check_of_unmatched_policy_cannot_grant(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define(
            "profiles", "update", is_owner(), write_check=lambda i, r: True, name="owner"
        )
        with pytest.raises(AccessDenied):
            engine.authorize_write(BOB, "profiles", "update", profile("alice"))


class TestInsert:
    @pytest.fixture(autouse=True)
    def _friendship_insert(self, registry: PolicyRegistry) -> None:
        registry.define(
            "friendships",
            "insert",
            always_allow,
            write_check=participant_of("user_a_id", "user_b_id"),
            name="users_can_create_friendship",
        )

    def test_participant_can_insert(self, engine: DecisionEngine) -> None:
        permit = engine.authorize_write(
            ALICE, "friendships", "insert", post_image=friendship(7, "alice", "bob")
        )
        assert permit.row_id == 7
        assert permit.operation == "insert"

    def test_either_endpoint_can_insert(self, engine: DecisionEngine) -> None:
        new_row = friendship(7, "alice", "bob")
        engine.authorize_write(BOB, "friendships", "insert", post_image=new_row)

    def test_outsider_cannot_insert(self, engine: DecisionEngine) -> None:
        with pytest.raises(AccessDenied):
            engine.authorize_write(
                ALICE, "friendships", "insert", post_image=friendship(8, "bob", "carol")
            )

    def test_target_row_accepted_as_new_row(self, engine: DecisionEngine) -> None:
        new_row = friendship(9, "bob", "alice")
        permit = engine.authorize_write(ALICE, "friendships", "insert", new_row)
        assert permit.row_id == 9


class TestDelete:
    def test_delete_own(self, engine: DecisionEngine, registry: PolicyRegistry) -> None:
        registry.define("profiles", "delete", is_owner(), name="delete_own")
        permit = engine.authorize_write(ALICE, "profiles", "delete", profile("alice"))
        assert permit.row_id == "alice"
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "delete", profile("bob"))


class TestFailClosed:
    def test_raising_predicate_denies(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define("profiles", "delete", lambda i, r, l: 1 / 0, name="broken")
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "delete", profile("alice"))

    def test_raising_write_check_denies(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define(
            "profiles", "update", always_allow, write_check=lambda i, r: r["missing"], name="p"
        )
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "update", profile("alice"))

    def test_cancelled_write_denies(
        self, engine: DecisionEngine, registry: PolicyRegistry
    ) -> None:
        registry.define("profiles", "delete", always_allow, name="anyone")
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AccessDenied):
            engine.authorize_write(ALICE, "profiles", "delete", profile("alice"), cancel=token)

    def test_denial_logged(
        self, engine: DecisionEngine, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="rowauthz.denied"):
            with pytest.raises(AccessDenied):
                engine.authorize_write(ALICE, "profiles", "delete", profile("alice"))
        assert "DENIED delete on profiles" in caplog.text
