"""Shared test fixtures for row-authz tests."""

from __future__ import annotations

import pytest

from rowauthz._types import Identity, Row
from rowauthz.config._config import AuthzConfig
from rowauthz.engine._decision import DecisionEngine
from rowauthz.policy._registry import PolicyRegistry
from rowauthz.relationships._index import RelationshipIndex
from rowauthz.storage._memory import InMemoryRowSource

SECRET = "rowauthz-test-secret-key-with-32-bytes!"

# ---------------------------------------------------------------------------
# Sample identities and rows (profiles + friendships schema)
# ---------------------------------------------------------------------------

ALICE = Identity(subject_id="alice", role="user")
BOB = Identity(subject_id="bob", role="user")
CAROL = Identity(subject_id="carol", role="user")


def profile(id: str, role: str = "user", **fields: object) -> Row:
    """Build a profiles row."""
    return Row("profiles", id, {"id": id, "username": id, "role": role, **fields})


def friendship(id: int, a: str, b: str) -> Row:
    """Build a friendships row."""
    return Row("friendships", id, {"id": id, "user_a_id": a, "user_b_id": b})


def self_read(identity: Identity, row: Row, lookup: object) -> bool:
    """auth.uid() = id"""
    return row.id == identity.subject_id


def friends_read(identity: Identity, row: Row, lookup) -> bool:
    """A friendship edge links caller and row."""
    return lookup.related("friendships", identity.subject_id, row.id)


def admin_read(identity: Identity, row: Row, lookup) -> bool:
    """The caller's own profile says admin."""
    own = lookup.read_own_row("profiles")
    return own is not None and own["role"] == "admin"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> PolicyRegistry:
    """Fresh registry per test to avoid cross-test pollution."""
    return PolicyRegistry()


@pytest.fixture()
def index() -> RelationshipIndex:
    return RelationshipIndex()


@pytest.fixture()
def rows() -> dict[str, Row]:
    return {"alice": profile("alice"), "bob": profile("bob"), "carol": profile("carol")}


@pytest.fixture()
def source(rows: dict[str, Row]) -> InMemoryRowSource:
    """Row source holding the alice/bob/carol profiles."""
    return InMemoryRowSource(rows.values())


@pytest.fixture()
def engine(
    registry: PolicyRegistry, index: RelationshipIndex, source: InMemoryRowSource
) -> DecisionEngine:
    """Sequential engine wired to the registry, index and source fixtures."""
    return DecisionEngine(registry, relationships=index, row_source=source)


@pytest.fixture()
def config() -> AuthzConfig:
    return AuthzConfig(verification_key=SECRET)
