"""Ready-made policy set for a profiles + friendships schema.

The schema has a ``profiles`` table keyed by the user's id (with ``role``
and optionally ``is_public`` columns) and an undirected ``friendships``
table with ``user_a_id`` / ``user_b_id`` columns.

Policies registered (all OR'd per operation):

``profiles``
    - ``users_read_own_profile`` (select): ``auth.uid() = id``
    - ``friends_can_read_profile`` (select): a friendship edge links caller and row
    - ``admins_read_all_profiles`` (select): the caller's own profile has ``role = 'admin'``
    - ``verified_read_verified_profiles`` (select, tiers): verified callers see verified users
    - ``moderators_read_public_profiles`` (select, tiers): moderators see public profiles
    - ``gold_key_sees_all`` (select, optional): the caller's own profile has
      ``avatar_color = 'gold'``
    - ``users_update_own_profile`` (update): ``USING (auth.uid() = id) WITH CHECK
      (auth.uid() = id)``, and the protected fields (``role``, plus
      ``avatar_color`` with the gold key) must keep their stored values

``friendships``
    - ``friendship_participants_can_read`` (select): caller is either endpoint
    - ``users_can_create_friendship`` (insert): ``WITH CHECK`` caller is either endpoint
"""

from __future__ import annotations

from collections.abc import Sequence

from rowauthz._types import Identity, Row
from rowauthz.evaluator._lookup import RelationLookup
from rowauthz.policy._base import Policy
from rowauthz.policy._predicate import (
    Predicate,
    always_allow,
    is_owner,
    keeps_own_fields,
    own_row_matches,
    participant_of,
    related_via,
)
from rowauthz.policy._registry import PolicyRegistry

__all__ = ["profile_policies", "register_profile_policies"]


def _row_field_equals(column: str, value: object) -> Predicate:
    def _equals(identity: Identity, row: Row, lookup: RelationLookup | None) -> bool:
        return row.get(column) == value

    return Predicate(_equals, name=f"{column}={value!r}")


def profile_policies(
    *,
    profiles: str = "profiles",
    friendships: str = "friendships",
    include_tiers: bool = True,
    include_gold_key: bool = False,
    protected_fields: Sequence[str] = ("role",),
) -> list[Policy]:
    """Build the profiles/friendships policy set without registering it.

    Useful with :meth:`PolicyRegistry.reload`.

    Args:
        profiles: Name of the profiles table.
        friendships: Name of the friendships table.
        include_tiers: Add the verified and moderator read policies.
        include_gold_key: Add ``gold_key_sees_all``, which grants every
            profile to callers whose own ``avatar_color`` is ``'gold'``.
            ``avatar_color`` then becomes a protected field too.
        protected_fields: Columns a user may not change on their own
            profile, since read policies depend on them.
    """
    protected = list(protected_fields)
    if include_gold_key and "avatar_color" not in protected:
        protected.append("avatar_color")
    update_check = is_owner()
    if protected:
        update_check = update_check & keeps_own_fields(profiles, *protected)
    participants = participant_of("user_a_id", "user_b_id")
    policies = [
        Policy(
            "users_read_own_profile",
            profiles,
            "select",
            is_owner(),
            description="Users can read their own profile.",
        ),
        Policy(
            "friends_can_read_profile",
            profiles,
            "select",
            related_via(friendships),
            description="Friends can read each other's profiles.",
        ),
        Policy(
            "admins_read_all_profiles",
            profiles,
            "select",
            own_row_matches(profiles, role="admin"),
            description="Admins can read all profiles.",
        ),
    ]
    if include_tiers:
        policies += [
            Policy(
                "verified_read_verified_profiles",
                profiles,
                "select",
                own_row_matches(profiles, role="verified") & _row_field_equals("role", "verified"),
                description="Verified users can read other verified users.",
            ),
            Policy(
                "moderators_read_public_profiles",
                profiles,
                "select",
                own_row_matches(profiles, role="moderator") & _row_field_equals("is_public", True),
                description="Moderators can read all public profiles.",
            ),
        ]
    if include_gold_key:
        policies.append(
            Policy(
                "gold_key_sees_all",
                profiles,
                "select",
                own_row_matches(profiles, avatar_color="gold"),
                description="Gold key holders can read all profiles.",
            )
        )
    policies += [
        Policy(
            "users_update_own_profile",
            profiles,
            "update",
            is_owner(),
            write_check=update_check,
            description=(
                "Users can update their own profile, must keep it theirs and "
                "cannot change protected fields."
            ),
        ),
        Policy(
            "friendship_participants_can_read",
            friendships,
            "select",
            participants,
            description="Each user can see friendships they are part of.",
        ),
        Policy(
            "users_can_create_friendship",
            friendships,
            "insert",
            always_allow,
            write_check=participants,
            description="Either user can create a friendship.",
        ),
    ]
    return policies


def register_profile_policies(
    registry: PolicyRegistry,
    *,
    profiles: str = "profiles",
    friendships: str = "friendships",
    include_tiers: bool = True,
    include_gold_key: bool = False,
    protected_fields: Sequence[str] = ("role",),
) -> list[Policy]:
    """Register the profiles/friendships policy set into *registry*.

    Takes the same options as :func:`profile_policies`.

    Raises:
        DuplicatePolicy: One of the policies is already registered.

    Example::

        registry = PolicyRegistry()
        register_profile_policies(registry)
        engine = DecisionEngine(registry, relationships=index, row_source=source)
    """
    policies = profile_policies(
        profiles=profiles,
        friendships=friendships,
        include_tiers=include_tiers,
        include_gold_key=include_gold_key,
        protected_fields=protected_fields,
    )
    for p in policies:
        registry.register(p)
    return policies
