"""row-authz testing utilities — identity factories, assertions, and fixtures.

- **Factories**: ``make_identity``, ``make_user``, ``make_admin``, ``make_row``.
- **Assertion helpers**: ``assert_visible``, ``assert_hidden``,
  ``assert_write_permitted``, ``assert_write_denied``.
- **Fixtures**: ``authz_registry``, ``authz_config``, ``relationship_index``,
  ``row_source``.

Example::

    from rowauthz.testing import assert_visible, make_row, make_user

    def test_self_read(engine):
        rows = [make_row("profiles", "alice"), make_row("profiles", "bob")]
        assert_visible(engine, make_user("alice"), "profiles", rows, expected_ids=["alice"])
"""

from rowauthz.testing._actors import make_admin, make_identity, make_row, make_user
from rowauthz.testing._assertions import (
    assert_hidden,
    assert_visible,
    assert_write_denied,
    assert_write_permitted,
)
from rowauthz.testing._fixtures import (
    authz_config,
    authz_registry,
    relationship_index,
    row_source,
)

__all__ = [
    "assert_hidden",
    "assert_visible",
    "assert_write_denied",
    "assert_write_permitted",
    "authz_config",
    "authz_registry",
    "make_admin",
    "make_identity",
    "make_row",
    "make_user",
    "relationship_index",
    "row_source",
]
