"""Tests for _types.py — Identity, Row, RelationshipEdge, parse_role."""

from __future__ import annotations

import pytest

from rowauthz._types import Identity, RelationshipEdge, Row, RowSource, parse_role
from rowauthz.storage._memory import InMemoryRowSource


class TestParseRole:
    @pytest.mark.parametrize("role", ["user", "verified", "moderator", "admin"])
    def test_known_roles_pass_through(self, role: str) -> None:
        assert parse_role(role) == role

    @pytest.mark.parametrize("value", [None, "", "authenticated", "ADMIN", 1, ["admin"]])
    def test_unknown_roles_default_to_user(self, value: object) -> None:
        assert parse_role(value) == "user"


class TestIdentity:
    def test_defaults(self) -> None:
        identity = Identity(subject_id="alice")
        assert identity.role == "user"
        assert dict(identity.claims) == {}

    def test_is_frozen(self) -> None:
        identity = Identity(subject_id="alice")
        with pytest.raises(AttributeError):
            identity.role = "admin"  # type: ignore[misc]

    def test_claims_are_read_only_copy(self) -> None:
        claims = {"email": "a@example.com"}
        identity = Identity(subject_id="alice", claims=claims)
        claims["email"] = "changed"
        assert identity.claims["email"] == "a@example.com"
        with pytest.raises(TypeError):
            identity.claims["email"] = "x"  # type: ignore[index]

    def test_rejects_unknown_role(self) -> None:
        with pytest.raises(ValueError, match="role must be one of"):
            Identity(subject_id="alice", role="root")  # type: ignore[arg-type]


class TestRow:
    def test_field_access(self) -> None:
        row = Row("profiles", "alice", {"id": "alice", "bio": None})
        assert row["id"] == "alice"
        assert row.get("bio") is None
        assert row.get("missing", "x") == "x"
        with pytest.raises(KeyError):
            row["missing"]

    def test_fields_are_read_only(self) -> None:
        row = Row("profiles", "alice", {"id": "alice"})
        with pytest.raises(TypeError):
            row.fields["id"] = "bob"  # type: ignore[index]

    def test_with_changes_builds_post_image(self) -> None:
        row = Row("profiles", "alice", {"id": "alice", "bio": "old"})
        after = row.with_changes(bio="new")
        assert after["bio"] == "new"
        assert row["bio"] == "old"
        assert after.id == "alice"
        assert after.table == "profiles"

    def test_with_changes_follows_id(self) -> None:
        row = Row("profiles", "alice", {"id": "alice"})
        assert row.with_changes(id="bob").id == "bob"

    def test_equality_by_value(self) -> None:
        assert Row("t", 1, {"a": 1}) == Row("t", 1, {"a": 1})
        assert Row("t", 1, {"a": 1}) != Row("t", 1, {"a": 2})


class TestRelationshipEdge:
    def test_connects_both_directions(self) -> None:
        edge = RelationshipEdge("friendships", "alice", "bob")
        assert edge.connects("alice", "bob")
        assert edge.connects("bob", "alice")
        assert not edge.connects("alice", "carol")

    def test_touches(self) -> None:
        edge = RelationshipEdge("friendships", "alice", "bob")
        assert edge.touches("bob")
        assert not edge.touches("carol")


class TestRowSourceProtocol:
    def test_in_memory_source_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryRowSource(), RowSource)

    def test_plain_object_does_not(self) -> None:
        assert not isinstance(object(), RowSource)
