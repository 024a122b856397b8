"""
ArenaGuard - Test Fixtures
==========================

Shared fixtures for all tests.
"""

import os
from types import SimpleNamespace

import pytest

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ.setdefault("ARENAGUARD_JWT_SECRET", "test-secret-with-enough-length-for-hs256")

from arenaguard.core.config import Config, reset_config
from arenaguard.core.database import DatabaseManager, reset_db
from arenaguard.core.models import Role
from arenaguard.services import (
    ChannelOverwriteStore,
    CommunityService,
    InvitationService,
    MentionService,
    ModerationEngine,
    RoleRegistry,
    TicketWorkflow,
)
from arenaguard.services.moderation import AuditLog


OWNER = "owner"


# =============================================================================
# Database & Config
# =============================================================================

@pytest.fixture
def test_db(tmp_path):
    """Create a fresh database for each test."""
    reset_db()
    db = DatabaseManager(tmp_path / "test.db")
    yield db
    reset_db()


@pytest.fixture
def config(tmp_path):
    """Config with small retry budgets so contention tests stay fast."""
    reset_config()
    yield Config(data_dir=tmp_path, db_name="test.db")
    reset_config()


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def services(test_db, config):
    """Every service wired to the same registry, database and config."""
    registry = RoleRegistry(test_db, config)
    return SimpleNamespace(
        db=test_db,
        config=config,
        registry=registry,
        channels=ChannelOverwriteStore(registry, test_db, config),
        communities=CommunityService(registry, test_db, config),
        invitations=InvitationService(registry, test_db, config),
        tickets=TicketWorkflow(registry, test_db, config),
        moderation=ModerationEngine(registry, test_db, config),
        audit=AuditLog(registry, test_db, config),
        mentions=MentionService(registry, test_db, config),
    )


@pytest.fixture
def arena(services):
    """
    Factory for a provisioned community.

    Usage:
        community = await arena(members=["alice", "bob"])
    """

    async def _create(owner: str = OWNER, name: str = "Spring Cup", members=()):
        community = await services.communities.create_community(owner, name)
        for member in members:
            await services.communities.add_member(community.id, member, owner)
        return community

    return _create


@pytest.fixture
def role_named(services):
    """Look up a template role by name."""

    async def _find(community_id: str, name: str) -> Role:
        roles = await services.registry.list_roles(community_id)
        return next(r for r in roles if r.name == name)

    return _find


@pytest.fixture
def channel_named(services):
    """Look up a channel by name."""

    async def _find(community_id: str, name: str):
        channels = await services.channels.list_channels(community_id)
        return next(c for c in channels if c.name == name)

    return _find


@pytest.fixture
def make_moderator(services, role_named):
    """Give a member the template Moderator role."""

    async def _promote(community_id: str, user_id: str) -> None:
        moderator = await role_named(community_id, "Moderator")
        await services.registry.assign_role(moderator.id, user_id, OWNER)

    return _promote


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def client(test_db):
    """TestClient over a freshly built app."""
    from fastapi.testclient import TestClient

    from arenaguard.api.app import create_app
    from arenaguard.api.config import reset_api_config
    from arenaguard.api.services.auth import reset_auth_service

    reset_config()
    reset_api_config()
    reset_auth_service()
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_auth_service()
    reset_api_config()
    reset_config()


@pytest.fixture
def auth_headers(client):
    """Build bearer headers for a user id."""
    from arenaguard.api.services.auth import get_auth_service

    def _headers(user_id: str):
        token, _ = get_auth_service().issue_token(user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
