"""
ArenaGuard - API Tests
======================

End-to-end tests through the FastAPI app: authentication, error mapping
and the main flows.
"""

import pytest

from arenaguard.api.app import API_PREFIX
from arenaguard.api.errors import ERROR_STATUS_CODES, ErrorCode, code_for
from arenaguard.core.errors import InvitationExpired, RedeemConflict, Timeout


def url(path: str) -> str:
    return f"{API_PREFIX}{path}"


@pytest.fixture
def community(client, auth_headers):
    """Community owned by "owner" with member "alice"."""
    response = client.post(url("/communities"), json={"name": "Spring Cup"}, headers=auth_headers("owner"))
    assert response.status_code == 201
    data = response.json()["data"]
    client.post(url(f"/communities/{data['id']}/members"), json={"user_id": "alice"},
                headers=auth_headers("owner"))
    return data


class TestErrorMapping:
    """Tests for service error to HTTP status mapping."""

    def test_invitation_states(self):
        """Dead invitations map to 410, conflicts to 409, deadlines to 504."""
        assert ERROR_STATUS_CODES[code_for(InvitationExpired("ABCD1234"))] == 410
        assert ERROR_STATUS_CODES[code_for(RedeemConflict("x"))] == 409
        assert ERROR_STATUS_CODES[code_for(Timeout("x"))] == 504

    def test_every_code_has_status(self):
        """No ErrorCode is left without a status."""
        assert set(ERROR_STATUS_CODES) == set(ErrorCode)


class TestHealthAndAuth:
    """Tests for unauthenticated and identity endpoints."""

    def test_health(self, client):
        """Health reports the database as reachable."""
        response = client.get(url("/health"))
        assert response.status_code == 200
        assert response.json()["data"]["database"] is True
        assert client.get("/health").json() == {"status": "healthy"}

    def test_missing_token(self, client):
        """Protected endpoints reject requests without a token."""
        response = client.get(url("/auth/me"))
        assert response.status_code == 401
        assert response.json()["detail"]["error_code"] == "AUTH_MISSING_TOKEN"

    def test_invalid_token(self, client):
        """Garbage tokens are rejected."""
        response = client.get(url("/auth/me"), headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"]["error_code"] == "AUTH_INVALID_TOKEN"

    def test_who_am_i(self, client, auth_headers):
        """The token subject is the caller id."""
        response = client.get(url("/auth/me"), headers=auth_headers("alice"))
        assert response.status_code == 200
        assert response.json()["data"]["user_id"] == "alice"


class TestCommunitiesAPI:
    """Tests for community, role and channel endpoints."""

    def test_create_and_read(self, client, auth_headers, community):
        """Members can read the community; outsiders cannot."""
        cid = community["id"]
        assert client.get(url(f"/communities/{cid}"), headers=auth_headers("alice")).status_code == 200
        response = client.get(url(f"/communities/{cid}"), headers=auth_headers("stranger"))
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_roles_listing(self, client, auth_headers, community):
        """Template roles are listed lowest position first."""
        response = client.get(url(f"/communities/{community['id']}/roles"), headers=auth_headers("owner"))
        names = [r["name"] for r in response.json()["data"]]
        assert names == ["@everyone", "Spectator", "Participant", "Moderator", "Organizer"]

    def test_unauthorized_is_403(self, client, auth_headers, community):
        """Missing permissions map to 403 with the permission in details."""
        response = client.post(
            url(f"/communities/{community['id']}/roles"),
            json={"name": "Hackers"},
            headers=auth_headers("alice"),
        )
        assert response.status_code == 403
        body = response.json()
        assert body["error_code"] == "UNAUTHORIZED"
        assert body["details"] == {"permission": "manage_roles"}

    def test_channel_overwrite_and_permissions(self, client, auth_headers, community):
        """A member overwrite shows up in the effective permission lookup."""
        cid = community["id"]
        channels = client.get(url(f"/communities/{cid}/channels"), headers=auth_headers("owner")).json()["data"]
        rules = next(c for c in channels if c["name"] == "rules")

        response = client.put(
            url(f"/communities/{cid}/channels/{rules['id']}/overwrites/member/alice"),
            json={"allow": ["send_messages"], "deny": []},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 200

        perms = client.get(
            url(f"/communities/{cid}/permissions"),
            params={"channel_id": rules["id"]},
            headers=auth_headers("alice"),
        ).json()["data"]["permissions"]
        assert "send_messages" in perms

    def test_overlapping_overwrite_is_400(self, client, auth_headers, community):
        """allow/deny overlap is a validation error."""
        cid = community["id"]
        channels = client.get(url(f"/communities/{cid}/channels"), headers=auth_headers("owner")).json()["data"]
        response = client.put(
            url(f"/communities/{cid}/channels/{channels[0]['id']}/overwrites/role/{community['default_role_id']}"),
            json={"allow": ["speak"], "deny": ["speak"]},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_other_member_permissions_need_staff(self, client, auth_headers, community):
        """Looking up someone else's permissions is staff-only."""
        response = client.get(
            url(f"/communities/{community['id']}/permissions"),
            params={"member_id": "owner"},
            headers=auth_headers("alice"),
        )
        assert response.status_code == 403


class TestInvitationsAPI:
    """Tests for invitation endpoints."""

    def test_create_redeem_exhaust(self, client, auth_headers, community):
        """Redeem via link, then the single use is gone (410)."""
        response = client.post(
            url(f"/communities/{community['id']}/invitations"),
            json={"type": "single"},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 201
        invite = response.json()["data"]
        assert invite["link"] == f"app://join/{invite['code']}"
        assert invite["state"] == "active"

        redeemed = client.post(url("/invitations/redeem"), json={"link": invite["link"]},
                               headers=auth_headers("newbie"))
        assert redeemed.status_code == 200
        assert redeemed.json()["data"]["joined"] is True

        again = client.post(url(f"/invitations/{invite['code']}/redeem"), headers=auth_headers("latecomer"))
        assert again.status_code == 410
        assert again.json()["error_code"] == "INVITATION_EXHAUSTED"

    def test_unknown_code_is_400(self, client, auth_headers, community):
        """Unknown codes are INVITATION_INVALID."""
        response = client.post(url("/invitations/ZZZZ9999/redeem"), headers=auth_headers("alice"))
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVITATION_INVALID"

    def test_bad_type_is_400(self, client, auth_headers, community):
        """Unknown invitation types are validation errors, not server errors."""
        response = client.post(
            url(f"/communities/{community['id']}/invitations"),
            json={"type": "forever"},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 400


class TestTicketsAndModerationAPI:
    """Tests for ticket and moderation endpoints."""

    def test_ticket_flow(self, client, auth_headers, community):
        """Open, close, then a reply is rejected with 409 TICKET_CLOSED."""
        created = client.post(
            url(f"/communities/{community['id']}/tickets"),
            json={"title": "Lag", "description": "Ping spikes"},
            headers=auth_headers("alice"),
        )
        assert created.status_code == 201
        ticket_id = created.json()["data"]["id"]

        closed = client.put(url(f"/tickets/{ticket_id}/status"), json={"status": "closed"},
                            headers=auth_headers("owner"))
        assert closed.json()["data"]["status"] == "closed"

        reply = client.post(url(f"/tickets/{ticket_id}/messages"), json={"content": "hello?"},
                            headers=auth_headers("alice"))
        assert reply.status_code == 409
        assert reply.json()["error_code"] == "TICKET_CLOSED"

    def test_moderation_and_audit(self, client, auth_headers, community):
        """A ban is recorded and the chain verifies."""
        cid = community["id"]
        response = client.post(
            url(f"/communities/{cid}/moderation/actions"),
            json={"type": "ban", "target_user_id": "alice", "reason": "cheating"},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 201
        assert response.json()["data"]["sequence"] == 1

        history = client.get(url(f"/communities/{cid}/moderation/history"), headers=auth_headers("owner"))
        assert [r["type"] for r in history.json()["data"]] == ["ban"]

        report = client.get(url(f"/communities/{cid}/moderation/verify"), headers=auth_headers("owner"))
        assert report.json()["data"]["valid"] is True

    def test_empty_reason_is_400(self, client, auth_headers, community):
        """Blank reasons never reach the audit log."""
        response = client.post(
            url(f"/communities/{community['id']}/moderation/actions"),
            json={"type": "warn", "target_user_id": "alice", "reason": " "},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 400

    def test_mentions(self, client, auth_headers, community):
        """Mention tokens in content are expanded; members cannot broadcast."""
        cid = community["id"]
        response = client.post(
            url(f"/communities/{cid}/mentions/resolve"),
            json={"content": "@everyone tournament starts"},
            headers=auth_headers("owner"),
        )
        assert response.status_code == 200
        assert set(response.json()["data"]["recipients"]) == {"owner", "alice"}

        denied = client.post(
            url(f"/communities/{cid}/mentions/resolve"),
            json={"everyone": True},
            headers=auth_headers("alice"),
        )
        assert denied.status_code == 403
