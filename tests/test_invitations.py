"""
ArenaGuard - Invitation Tests
=============================

Creation, redemption checks, concurrent redemption and retirement.
"""

import asyncio
import time

import pytest

from arenaguard.core.constants import COLLECTION_PARTICIPANTS
from arenaguard.core.errors import (
    InvitationExhausted,
    InvitationExpired,
    InvitationInactive,
    InvitationInvalid,
    NotFound,
    Timeout,
    Unauthorized,
    ValidationError,
)
from arenaguard.core.models import (
    InvitationType,
    ModerationActionInput,
    ModerationActionType,
    Permission as P,
    participant_key,
)
from arenaguard.services.invitations import service as invitation_service
from arenaguard.services.invitations.codes import build_invite_link, generate_code
from arenaguard.utils.async_utils import gather_with_logging
from arenaguard.utils.deadline import Deadline

OWNER = "owner"


class TestCodes:
    """Tests for code generation."""

    def test_code_format(self):
        """Codes are 8 upper-case alphanumerics."""
        code = generate_code()
        assert len(code) == 8
        assert code.isalnum() and code == code.upper()

    def test_link(self):
        """Links use the app://join/ scheme."""
        assert build_invite_link("ABCD1234") == "app://join/ABCD1234"


class TestCreate:
    """Tests for InvitationService.create."""

    @pytest.mark.asyncio
    async def test_single_use_defaults(self, services, arena, role_named):
        """A single invitation allows one use and targets Participant."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)
        participant = await role_named(community.id, "Participant")

        assert invite.max_uses == 1
        assert invite.current_uses == 0
        assert invite.is_active
        assert invite.target_role == participant.id
        assert invite.expires_at - invite.created_at == pytest.approx(24 * 3600)

    @pytest.mark.asyncio
    async def test_unlimited_and_multiple(self, services, arena):
        """unlimited stores -1; multiple requires max_uses."""
        community = await arena()
        unlimited = await services.invitations.create(community.id, OWNER, InvitationType.UNLIMITED)
        multiple = await services.invitations.create(community.id, OWNER, "multiple", max_uses=5)
        assert unlimited.max_uses == -1
        assert multiple.max_uses == 5

        with pytest.raises(ValidationError):
            await services.invitations.create(community.id, OWNER, "multiple")
        with pytest.raises(ValidationError):
            await services.invitations.create(community.id, OWNER, "forever")

    @pytest.mark.asyncio
    async def test_requires_manage_tournament(self, services, arena):
        """Plain members cannot create invitations."""
        community = await arena(members=["alice"])
        with pytest.raises(Unauthorized) as exc_info:
            await services.invitations.create(community.id, "alice")
        assert exc_info.value.permission == P.MANAGE_TOURNAMENT.value

    @pytest.mark.asyncio
    async def test_moderator_can_create(self, services, arena, make_moderator):
        """The Moderator template carries manage_tournament."""
        community = await arena(members=["mod"])
        await make_moderator(community.id, "mod")
        invite = await services.invitations.create(community.id, "mod", ttl_seconds=60)
        assert invite.created_by == "mod"


class TestRedeem:
    """Tests for InvitationService.redeem."""

    @pytest.mark.asyncio
    async def test_redeem_joins_with_target_role(self, services, arena):
        """Redemption creates the member, assigns the role and records a usage."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)

        result = await services.invitations.redeem(invite.code, "newbie")

        assert result.joined is True
        assert result.granted_role == invite.target_role
        perms = await services.registry.effective_permissions(community.id, "newbie")
        assert P.ATTACH_FILES in perms
        stored = await services.invitations.get_invitation(invite.code)
        assert stored.current_uses == 1
        usages = await services.invitations.list_usages(invite.code, OWNER)
        assert [u.user_id for u in usages] == ["newbie"]

    @pytest.mark.asyncio
    async def test_code_and_link_forms(self, services, arena):
        """Lower-case codes and app:// links resolve to the same invitation."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER, "unlimited")
        await services.invitations.redeem(invite.code.lower(), "a")
        await services.invitations.redeem(build_invite_link(invite.code), "b")
        stored = await services.invitations.get_invitation(invite.code)
        assert stored.current_uses == 2

    @pytest.mark.asyncio
    async def test_unknown_and_malformed(self, services, arena):
        """Unknown or malformed codes are InvitationInvalid."""
        await arena()
        with pytest.raises(InvitationInvalid):
            await services.invitations.redeem("ZZZZ9999", "a")
        with pytest.raises(InvitationInvalid):
            await services.invitations.redeem("bad!", "a")

    @pytest.mark.asyncio
    async def test_exhausted(self, services, arena):
        """A single-use code fails for the second user."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)
        await services.invitations.redeem(invite.code, "a")
        with pytest.raises(InvitationExhausted):
            await services.invitations.redeem(invite.code, "b")

    @pytest.mark.asyncio
    async def test_expired(self, services, arena):
        """Redemption after expires_at fails."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER, ttl_seconds=0.05)
        await asyncio.sleep(0.1)
        with pytest.raises(InvitationExpired):
            await services.invitations.redeem(invite.code, "a")

    @pytest.mark.asyncio
    async def test_inactive_checked_before_expiry(self, services, arena):
        """A deactivated and expired code reports InvitationInactive."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER, ttl_seconds=0.05)
        await services.invitations.deactivate(invite.code, OWNER)
        await asyncio.sleep(0.1)
        with pytest.raises(InvitationInactive):
            await services.invitations.redeem(invite.code, "a")

    @pytest.mark.asyncio
    async def test_repeat_redemption_counts(self, services, arena):
        """The same user redeeming twice uses two slots but joins once."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER, "multiple", max_uses=5)
        first = await services.invitations.redeem(invite.code, "a")
        second = await services.invitations.redeem(invite.code, "a")
        assert first.joined and not second.joined
        assert (await services.invitations.get_invitation(invite.code)).current_uses == 2

    @pytest.mark.asyncio
    async def test_banned_user_cannot_redeem(self, services, arena):
        """A banned participant is refused and no use is consumed."""
        community = await arena(members=["troll"])
        await services.moderation.execute(
            ModerationActionInput(community.id, ModerationActionType.BAN, "troll", "spam"), OWNER,
        )
        invite = await services.invitations.create(community.id, OWNER)

        with pytest.raises(Unauthorized):
            await services.invitations.redeem(invite.code, "troll")

        assert (await services.invitations.get_invitation(invite.code)).current_uses == 0

    @pytest.mark.asyncio
    async def test_deadline_expiring_inside_commit_writes_nothing(self, services, arena, monkeypatch):
        """A redemption that runs out of time mid-commit consumes no use and joins no one."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)
        ensure_participant = invitation_service.ensure_participant

        def slow_ensure(*args, **kwargs):
            time.sleep(0.3)
            return ensure_participant(*args, **kwargs)

        monkeypatch.setattr(invitation_service, "ensure_participant", slow_ensure)

        with pytest.raises(Timeout):
            await services.invitations.redeem(invite.code, "newbie", deadline=Deadline.after(0.2))

        assert (await services.invitations.get_invitation(invite.code)).current_uses == 0
        assert await services.invitations.list_usages(invite.code, OWNER) == []
        assert services.db.get(COLLECTION_PARTICIPANTS, participant_key(community.id, "newbie")) is None

    @pytest.mark.asyncio
    async def test_expired_deadline_redeems_nothing(self, services, arena):
        """An already expired deadline fails before any read or write."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)
        with pytest.raises(Timeout):
            await services.invitations.redeem(invite.code, "newbie", deadline=Deadline.after(-1))
        assert (await services.invitations.get_invitation(invite.code)).current_uses == 0

    @pytest.mark.asyncio
    async def test_concurrent_redemptions_never_exceed_max_uses(self, services, arena):
        """30 concurrent redeemers against 10 uses: 10 succeed, 20 see InvitationExhausted."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER, "multiple", max_uses=10)

        results = await gather_with_logging(
            *((f"redeem user{i}", services.invitations.redeem(invite.code, f"user{i}")) for i in range(30)),
            context="concurrent redeem",
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 10
        assert len(failures) == 20
        assert all(isinstance(f, InvitationExhausted) for f in failures)
        stored = await services.invitations.get_invitation(invite.code)
        assert stored.current_uses == 10
        assert len(await services.invitations.list_usages(invite.code, OWNER)) == 10


class TestRetire:
    """Tests for deactivate, delete and purge."""

    @pytest.mark.asyncio
    async def test_deactivate_is_idempotent(self, services, arena):
        """Deactivating twice is not an error."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)
        first = await services.invitations.deactivate(invite.code, OWNER)
        second = await services.invitations.deactivate(invite.code, OWNER)
        assert not first.is_active and not second.is_active
        assert second.version == first.version

    @pytest.mark.asyncio
    async def test_deactivate_requires_permission(self, services, arena):
        """Members cannot retire codes."""
        community = await arena(members=["alice"])
        invite = await services.invitations.create(community.id, OWNER)
        with pytest.raises(Unauthorized):
            await services.invitations.deactivate(invite.code, "alice")

    @pytest.mark.asyncio
    async def test_delete_keeps_usages(self, services, arena):
        """Hard delete removes the invitation; usage records stay."""
        community = await arena()
        invite = await services.invitations.create(community.id, OWNER)
        await services.invitations.redeem(invite.code, "a")

        await services.invitations.delete(invite.code, OWNER)

        with pytest.raises(InvitationInvalid):
            await services.invitations.get_invitation(invite.code)
        usages = services.db.query("invitation_usages", {"invitation_id": invite.code})
        assert len(usages) == 1

    @pytest.mark.asyncio
    async def test_delete_unknown(self, services, arena):
        """Deleting an unknown code is NotFound."""
        await arena()
        with pytest.raises(NotFound):
            await services.invitations.delete("ZZZZ9999", OWNER)

    @pytest.mark.asyncio
    async def test_listing_and_purge(self, services, arena):
        """Inert invitations are hidden by default and removed by purge."""
        community = await arena()
        live = await services.invitations.create(community.id, OWNER, "unlimited")
        spent = await services.invitations.create(community.id, OWNER)
        await services.invitations.redeem(spent.code, "a")
        retired = await services.invitations.create(community.id, OWNER)
        await services.invitations.deactivate(retired.code, OWNER)

        active = await services.invitations.list_invitations(community.id, OWNER)
        everything = await services.invitations.list_invitations(community.id, OWNER, include_inactive=True)
        assert [i.code for i in active] == [live.code]
        assert len(everything) == 3

        assert await services.invitations.purge_inert(community.id, OWNER) == 2
        remaining = await services.invitations.list_invitations(community.id, OWNER, include_inactive=True)
        assert [i.code for i in remaining] == [live.code]
