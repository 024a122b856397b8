"""
ArenaGuard - Permission Resolver Tests
======================================

Pure resolution over in-memory roles and channels.
"""

from arenaguard.core.models import (
    ALL_PERMISSIONS,
    Channel,
    ChannelType,
    Permission as P,
    PermissionOverwrite,
    Role,
    SubjectType,
)
from arenaguard.services.permissions.resolver import (
    held_roles,
    is_staff,
    required_for_mention,
    resolve,
)


def make_role(role_id, permissions, position, users=(), is_default=False):
    return Role(
        id=role_id,
        community_id="c1",
        name=role_id,
        color="#FFFFFF",
        permissions=frozenset(permissions),
        position=position,
        is_default=is_default,
        assigned_users=set(users),
    )


def make_channel(*overwrites):
    return Channel(id="ch1", community_id="c1", name="general", type=ChannelType.TEXT,
                   overwrites=tuple(overwrites))


def role_ow(role_id, allow=(), deny=()):
    return PermissionOverwrite(role_id, SubjectType.ROLE, frozenset(allow), frozenset(deny))


def member_ow(user_id, allow=(), deny=()):
    return PermissionOverwrite(user_id, SubjectType.MEMBER, frozenset(allow), frozenset(deny))


EVERYONE = make_role("everyone", {P.VIEW_CHANNELS, P.SEND_MESSAGES}, 0, is_default=True)


class TestBasePermissions:
    """Tests for role unions without a channel."""

    def test_user_without_roles_gets_default_role(self):
        """A user with no assignments still holds the default role."""
        assert resolve("nobody", [EVERYONE]) == {P.VIEW_CHANNELS, P.SEND_MESSAGES}

    def test_union_of_held_roles(self):
        """Permissions of every held role are combined."""
        mod = make_role("mod", {P.KICK_USERS}, 1, users={"alice"})
        other = make_role("other", {P.BAN_USERS}, 2, users={"bob"})
        perms = resolve("alice", [EVERYONE, mod, other])
        assert P.KICK_USERS in perms
        assert P.BAN_USERS not in perms

    def test_held_roles_picks_default_and_assigned(self):
        """held_roles returns the default role plus explicit assignments."""
        mod = make_role("mod", {P.KICK_USERS}, 1, users={"alice"})
        assert [r.id for r in held_roles("alice", [EVERYONE, mod])] == ["everyone", "mod"]
        assert [r.id for r in held_roles("bob", [EVERYONE, mod])] == ["everyone"]


class TestAdministrator:
    """Tests for the administrator short-circuit."""

    def test_administrator_returns_full_set(self):
        """administrator expands to every permission."""
        admin = make_role("admin", {P.ADMINISTRATOR}, 5, users={"root"})
        assert resolve("root", [EVERYONE, admin]) == ALL_PERMISSIONS

    def test_overwrites_cannot_reduce_administrator(self):
        """Neither role nor member denies apply to an administrator."""
        admin = make_role("admin", {P.ADMINISTRATOR}, 5, users={"root"})
        channel = make_channel(
            role_ow("admin", deny={P.SEND_MESSAGES}),
            member_ow("root", deny={P.VIEW_CHANNELS}),
        )
        assert resolve("root", [EVERYONE, admin], channel) == ALL_PERMISSIONS


class TestOverwrites:
    """Tests for channel overwrite layering."""

    def test_role_deny_removes_permission(self):
        """A deny on the default role removes it for everyone."""
        channel = make_channel(role_ow("everyone", deny={P.SEND_MESSAGES}))
        assert P.SEND_MESSAGES not in resolve("alice", [EVERYONE], channel)

    def test_higher_position_role_overwrite_applies_later(self):
        """Role overwrites apply in ascending position; the later one wins."""
        muted = make_role("muted", set(), 1, users={"alice"})
        speaker = make_role("speaker", set(), 2, users={"alice"})
        channel = make_channel(
            role_ow("speaker", allow={P.SEND_MESSAGES}),
            role_ow("muted", deny={P.SEND_MESSAGES}),
        )
        assert P.SEND_MESSAGES in resolve("alice", [EVERYONE, muted, speaker], channel)

        muted.position, speaker.position = 2, 1
        assert P.SEND_MESSAGES not in resolve("alice", [EVERYONE, muted, speaker], channel)

    def test_member_overwrite_beats_role_overwrite(self):
        """Member overwrites are applied after every role overwrite."""
        channel = make_channel(
            member_ow("alice", allow={P.SEND_MESSAGES}),
            role_ow("everyone", deny={P.SEND_MESSAGES}),
        )
        assert P.SEND_MESSAGES in resolve("alice", [EVERYONE], channel)
        assert P.SEND_MESSAGES not in resolve("bob", [EVERYONE], channel)

    def test_overwrites_of_unheld_roles_ignored(self):
        """Overwrites for roles the user does not hold have no effect."""
        mod = make_role("mod", set(), 1, users={"bob"})
        channel = make_channel(role_ow("mod", allow={P.MANAGE_MESSAGES}))
        assert P.MANAGE_MESSAGES not in resolve("alice", [EVERYONE, mod], channel)

    def test_overlapping_allow_and_deny_does_not_crash(self):
        """An overwrite naming a permission in both sets resolves deterministically (allow last)."""
        channel = make_channel(role_ow("everyone", allow={P.ATTACH_FILES}, deny={P.ATTACH_FILES}))
        assert P.ATTACH_FILES in resolve("alice", [EVERYONE], channel)

    def test_no_channel_ignores_overwrites(self):
        """Community-level resolution uses base permissions only."""
        assert resolve("alice", [EVERYONE], None) == {P.VIEW_CHANNELS, P.SEND_MESSAGES}


class TestPolicyHelpers:
    """Tests for is_staff and the mention policy hook."""

    def test_is_staff(self):
        """Any moderation permission or administrator counts as staff."""
        assert is_staff(frozenset({P.MUTE_MEMBERS}))
        assert is_staff(frozenset({P.ADMINISTRATOR}))
        assert not is_staff(frozenset({P.SEND_MESSAGES, P.VIEW_AUDIT_LOG}))

    def test_broadcast_requires_mention_everyone(self):
        """@everyone without mention_everyone names the missing permission."""
        assert required_for_mention(frozenset(), True, 3, 500) == P.MENTION_EVERYONE
        assert required_for_mention(frozenset({P.MENTION_EVERYONE}), True, 3, 500) is None

    def test_large_fanout_requires_administrator(self):
        """Fan-out above the threshold needs administrator."""
        perms = frozenset({P.MENTION_EVERYONE})
        assert required_for_mention(perms, True, 501, 500) == P.ADMINISTRATOR
        assert required_for_mention(perms, True, 500, 500) is None
        assert required_for_mention(ALL_PERMISSIONS, True, 10_000, 500) is None
