"""
ArenaGuard - Mention Targeting Tests
====================================

Parsing, pure expansion and the authorized MentionService path.
"""

import pytest

from arenaguard.core.errors import Unauthorized
from arenaguard.core.models import MentionSet, ModerationActionInput, ModerationActionType, Role
from arenaguard.services.notifications.targeting import parse_mentions, resolve_recipients

OWNER = "owner"


def role(role_id, users=(), is_default=False):
    return Role(id=role_id, community_id="c1", name=role_id, color="#000000",
                is_default=is_default, assigned_users=set(users))


MEMBERS = ["a", "b", "c", "d"]


class TestParse:
    """Tests for parse_mentions."""

    def test_tokens(self):
        """All four mention kinds are extracted."""
        mentions = parse_mentions("@everyone hi <@&role_1> and <@alice> <@!bob> @here")
        assert mentions.everyone and mentions.here
        assert mentions.roles == {"role_1"}
        assert mentions.users == {"alice", "bob"}

    def test_email_is_not_a_mention(self):
        """@everyone inside a word does not count."""
        assert not parse_mentions("mail me@everyone.com").everyone
        assert parse_mentions("plain text").is_empty


class TestResolveRecipients:
    """Tests for the pure expansion."""

    def test_everyone(self):
        """everyone expands to every member."""
        assert resolve_recipients(MentionSet(everyone=True), MEMBERS, []) == set(MEMBERS)

    def test_here_intersects_online(self):
        """here keeps online members only; online non-members are ignored."""
        result = resolve_recipients(MentionSet(here=True), MEMBERS, ["b", "d", "outsider"])
        assert result == {"b", "d"}

    def test_roles_expand(self):
        """A role expands to its assignees; the default role to everyone."""
        roles = [role("mods", users={"c"}), role("everyone", is_default=True)]
        assert resolve_recipients(MentionSet(roles=frozenset({"mods"})), MEMBERS, [], roles) == {"c"}
        assert resolve_recipients(MentionSet(roles=frozenset({"everyone"})), MEMBERS, [], roles) == set(MEMBERS)
        assert resolve_recipients(MentionSet(roles=frozenset({"nope"})), MEMBERS, [], roles) == set()

    def test_role_assignees_outside_members_dropped(self):
        """Role holders that are not members are not recipients."""
        roles = [role("mods", users={"c", "gone"})]
        assert resolve_recipients(MentionSet(roles=frozenset({"mods"})), MEMBERS, [], roles) == {"c"}

    def test_union_collapses_duplicates(self):
        """Users pass through verbatim and duplicates collapse."""
        mentions = MentionSet(here=True, users=frozenset({"a", "zed"}))
        assert resolve_recipients(mentions, MEMBERS, ["a"]) == {"a", "zed"}


class TestMentionService:
    """Tests for authorized resolution."""

    @pytest.mark.asyncio
    async def test_member_cannot_broadcast(self, services, arena):
        """@everyone without mention_everyone is rejected."""
        community = await arena(members=["alice"])
        with pytest.raises(Unauthorized) as exc_info:
            await services.mentions.resolve_for_sender(community.id, "alice", MentionSet(everyone=True))
        assert exc_info.value.permission == "mention_everyone"

    @pytest.mark.asyncio
    async def test_moderator_broadcast_excludes_banned(self, services, arena, make_moderator):
        """Broadcasts reach members except banned ones."""
        community = await arena(members=["alice", "bob", "mod"])
        await make_moderator(community.id, "mod")
        await services.moderation.execute(
            ModerationActionInput(community.id, ModerationActionType.BAN, "bob", "spam"), OWNER,
        )

        recipients = await services.mentions.resolve_for_sender(community.id, "mod", MentionSet(everyone=True))

        assert recipients == {OWNER, "alice", "mod"}

    @pytest.mark.asyncio
    async def test_large_fanout_needs_administrator(self, services, arena, make_moderator):
        """Above the threshold only administrators may broadcast."""
        services.config.large_community_threshold = 2
        community = await arena(members=["alice", "mod"])
        await make_moderator(community.id, "mod")

        with pytest.raises(Unauthorized) as exc_info:
            await services.mentions.resolve_for_sender(community.id, "mod", MentionSet(everyone=True))
        assert exc_info.value.permission == "administrator"

        recipients = await services.mentions.resolve_for_sender(community.id, OWNER, MentionSet(everyone=True))
        assert len(recipients) == 3

    @pytest.mark.asyncio
    async def test_non_mentionable_role(self, services, arena, role_named):
        """Mentioning a locked role needs mention_everyone; mentionable roles do not."""
        community = await arena(members=["alice", "bob"])
        spectator = await role_named(community.id, "Spectator")
        await services.registry.assign_role(spectator.id, "bob", OWNER)

        recipients = await services.mentions.resolve_for_sender(
            community.id, "alice", MentionSet(roles=frozenset({spectator.id})),
        )
        assert recipients == {"bob"}

        await services.registry.update_role(spectator.id, OWNER, mentionable=False)
        with pytest.raises(Unauthorized):
            await services.mentions.resolve_for_sender(
                community.id, "alice", MentionSet(roles=frozenset({spectator.id})),
            )

    @pytest.mark.asyncio
    async def test_role_mention_skips_banned_holder(self, services, arena, role_named):
        """A banned role holder is not reached through the role or by name."""
        community = await arena(members=["alice", "bob", "carol"])
        participant = await role_named(community.id, "Participant")
        await services.registry.assign_role(participant.id, "bob", OWNER)
        await services.registry.assign_role(participant.id, "carol", OWNER)
        await services.moderation.execute(
            ModerationActionInput(community.id, ModerationActionType.BAN, "bob", "smurfing"), OWNER,
        )

        recipients = await services.mentions.resolve_for_sender(
            community.id, "alice", MentionSet(roles=frozenset({participant.id}), users=frozenset({"bob"})),
        )

        assert recipients == {"carol"}
