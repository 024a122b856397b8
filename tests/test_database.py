"""
ArenaGuard - Database Tests
===========================

Tests for the document repository: conditional writes, transactions,
append-only collections and the change feed.
"""

import asyncio

import pytest

from arenaguard.core.constants import COLLECTION_MODERATION_ACTIONS
from arenaguard.core.errors import Timeout, ValidationError, VersionConflict
from arenaguard.core.database import OP_DELETE, OP_INSERT, OP_UPDATE
from arenaguard.utils.deadline import Deadline


class TestConditionalWrites:
    """Tests for put/append/delete version checks."""

    def test_insert_starts_at_version_one(self, test_db):
        """A new document gets version 1."""
        record = test_db.put("tickets", "t1", {"title": "Lag"}, "c1")
        assert record.version == 1
        assert test_db.get("tickets", "t1").data == {"title": "Lag"}

    def test_put_with_matching_version(self, test_db):
        """A write with the current version lands and bumps it."""
        test_db.put("tickets", "t1", {"n": 1}, "c1")
        record = test_db.put("tickets", "t1", {"n": 2}, "c1", expected_version=1)
        assert record.version == 2

    def test_put_with_stale_version_conflicts(self, test_db):
        """A stale version raises VersionConflict and writes nothing."""
        test_db.put("tickets", "t1", {"n": 1}, "c1")
        test_db.put("tickets", "t1", {"n": 2}, "c1", expected_version=1)

        with pytest.raises(VersionConflict) as exc_info:
            test_db.put("tickets", "t1", {"n": 3}, "c1", expected_version=1)

        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2
        assert test_db.get("tickets", "t1").data == {"n": 2}

    def test_append_rejects_existing_id(self, test_db):
        """append() is insert-only."""
        test_db.append("invitations", "ABCD1234", {"code": "ABCD1234"}, "c1")
        with pytest.raises(VersionConflict):
            test_db.append("invitations", "ABCD1234", {"code": "ABCD1234"}, "c1")

    def test_delete_with_version(self, test_db):
        """delete() honours expected_version and reports missing documents."""
        test_db.put("channels", "ch1", {"name": "general"}, "c1")
        with pytest.raises(VersionConflict):
            test_db.delete("channels", "ch1", expected_version=5)
        assert test_db.delete("channels", "ch1", expected_version=1) is True
        assert test_db.get("channels", "ch1") is None
        assert test_db.delete("channels", "ch1") is False

    def test_recreated_document_continues_version(self, test_db):
        """A deleted id inserted again continues past its deleted version."""
        test_db.put("channels", "ch1", {"name": "a"}, "c1")
        test_db.put("channels", "ch1", {"name": "b"}, "c1")
        test_db.delete("channels", "ch1")
        assert test_db.append("channels", "ch1", {"name": "c"}, "c1").version == 4

    def test_stale_version_fails_after_recreate(self, test_db):
        """A version read before a delete never matches the re-created document."""
        test_db.put("participants", "c1:bob", {"status": "active"}, "c1")
        stale = test_db.get("participants", "c1:bob").version
        test_db.delete("participants", "c1:bob")
        test_db.put("participants", "c1:bob", {"status": "active"}, "c1", expected_version=0)

        with pytest.raises(VersionConflict):
            test_db.put("participants", "c1:bob", {"status": "banned"}, "c1", expected_version=stale)
        assert test_db.get("participants", "c1:bob").data == {"status": "active"}

    def test_rolled_back_delete_keeps_no_tombstone(self, test_db):
        """A delete that rolls back leaves versions as they were."""
        test_db.put("channels", "ch1", {"name": "a"}, "c1")
        with pytest.raises(VersionConflict):
            with test_db.transaction() as tx:
                tx.delete("channels", "ch1")
                tx.put("channels", "ch2", {}, "c1", expected_version=3)
        assert test_db.get("channels", "ch1").version == 1
        assert test_db.put("channels", "fresh", {}, "c1").version == 1


class TestAppendOnly:
    """Tests for append-only collections."""

    def test_update_rejected(self, test_db):
        """Audit records cannot be overwritten."""
        test_db.append(COLLECTION_MODERATION_ACTIONS, "m1", {"sequence": 1}, "c1")
        with pytest.raises(ValidationError):
            test_db.put(COLLECTION_MODERATION_ACTIONS, "m1", {"sequence": 99}, "c1", expected_version=1)

    def test_delete_rejected(self, test_db):
        """Audit records cannot be deleted."""
        test_db.append(COLLECTION_MODERATION_ACTIONS, "m1", {"sequence": 1}, "c1")
        with pytest.raises(ValidationError):
            test_db.delete(COLLECTION_MODERATION_ACTIONS, "m1")
        assert test_db.get(COLLECTION_MODERATION_ACTIONS, "m1") is not None


class TestQuery:
    """Tests for filtered queries."""

    def test_filters_order_and_limit(self, test_db):
        """Equality filters, ordering and limit combine."""
        for i, status in enumerate(["open", "closed", "open", "open"]):
            test_db.put("tickets", f"t{i}", {"status": status, "created_at": i}, "c1")
        test_db.put("tickets", "other", {"status": "open", "created_at": 9}, "c2")

        records = test_db.query("tickets", {"status": "open"}, community_id="c1",
                                order_by="created_at", descending=True, limit=2)

        assert [r.id for r in records] == ["t3", "t2"]

    def test_list_filter_matches_any(self, test_db):
        """A list value matches any member."""
        test_db.put("tickets", "a", {"status": "open"}, "c1")
        test_db.put("tickets", "b", {"status": "resolved"}, "c1")
        test_db.put("tickets", "c", {"status": "closed"}, "c1")
        records = test_db.query("tickets", {"status": ["open", "closed"]})
        assert {r.id for r in records} == {"a", "c"}

    def test_invalid_field_rejected(self, test_db):
        """Filter field names must be plain identifiers."""
        with pytest.raises(ValidationError):
            test_db.query("tickets", {"status') OR 1=1 --": "x"})


class TestTransactions:
    """Tests for multi-document transactions."""

    def test_commit_writes_all(self, test_db):
        """Both writes are visible after the block."""
        with test_db.transaction() as tx:
            tx.put("participants", "c1:a", {"status": "banned"}, "c1")
            tx.append(COLLECTION_MODERATION_ACTIONS, "m1", {"sequence": 1}, "c1")
        assert test_db.get("participants", "c1:a") is not None
        assert test_db.get(COLLECTION_MODERATION_ACTIONS, "m1") is not None

    def test_conflict_rolls_back_everything(self, test_db):
        """A failing conditional write undoes earlier writes of the transaction."""
        test_db.put("participants", "c1:a", {"status": "active"}, "c1")

        with pytest.raises(VersionConflict):
            with test_db.transaction() as tx:
                tx.append(COLLECTION_MODERATION_ACTIONS, "m1", {"sequence": 1}, "c1")
                tx.put("participants", "c1:a", {"status": "banned"}, "c1", expected_version=7)

        assert test_db.get(COLLECTION_MODERATION_ACTIONS, "m1") is None
        assert test_db.get("participants", "c1:a").data["status"] == "active"

    def test_expired_deadline_rolls_back(self, test_db):
        """A transaction whose deadline passes before commit writes nothing."""
        deadline = Deadline.after(0.05)
        with pytest.raises(Timeout):
            with test_db.transaction(deadline) as tx:
                tx.put("tickets", "t1", {"title": "late"}, "c1")
                while not deadline.expired:
                    pass
        assert test_db.get("tickets", "t1") is None

    def test_expired_deadline_before_start(self, test_db):
        """An already expired deadline never takes the lock."""
        with pytest.raises(Timeout):
            test_db.put("tickets", "t1", {}, "c1", deadline=Deadline.after(-1))


class TestChangeFeed:
    """Tests for changes_since and subscribe."""

    def test_changes_record_each_write(self, test_db):
        """Insert, update and delete each append a change."""
        start = test_db.latest_seq()
        test_db.put("channels", "ch1", {"name": "a"}, "c1")
        test_db.put("channels", "ch1", {"name": "b"}, "c1", expected_version=1)
        test_db.delete("channels", "ch1")

        changes = test_db.changes_since(start, "channels")

        assert [c.op for c in changes] == [OP_INSERT, OP_UPDATE, OP_DELETE]
        assert changes[-1].data == {"name": "b"}

    def test_rolled_back_writes_not_in_feed(self, test_db):
        """Only committed writes produce changes."""
        start = test_db.latest_seq()
        with pytest.raises(VersionConflict):
            with test_db.transaction() as tx:
                tx.put("tickets", "t1", {}, "c1")
                tx.put("tickets", "t1", {}, "c1", expected_version=9)
        assert test_db.changes_since(start) == []

    @pytest.mark.asyncio
    async def test_subscribe_delivers_matching_changes(self, test_db):
        """A stream sees writes made after subscribe(), filtered by body."""
        stream = test_db.subscribe("tickets", {"status": "open"}, community_id="c1", poll_interval=0.01)
        test_db.put("tickets", "t1", {"status": "closed"}, "c1")
        test_db.put("tickets", "t2", {"status": "open"}, "c1")
        test_db.put("tickets", "t3", {"status": "open"}, "c2")

        change = await asyncio.wait_for(stream.__anext__(), timeout=2)
        stream.close()

        assert change.doc_id == "t2"
        assert change.op == OP_INSERT

    def test_prune_changes(self, test_db):
        """Pruning drops old changes and leaves documents and later changes alone."""
        test_db.put("tickets", "t1", {"n": 1}, "c1")
        test_db.put("tickets", "t1", {"n": 2}, "c1")
        cut = test_db.latest_seq()
        test_db.put("tickets", "t1", {"n": 3}, "c1")

        assert test_db.prune_changes(cut) == 1
        assert [c.data for c in test_db.changes_since(0)] == [{"n": 2}, {"n": 3}]
        assert test_db.get("tickets", "t1").data == {"n": 3}
        assert test_db.prune_changes(cut) == 0

    @pytest.mark.asyncio
    async def test_stream_survives_prune(self, test_db):
        """A stream positioned before the cut resumes at the oldest kept change."""
        stream = test_db.subscribe("tickets", poll_interval=0.01, since=0)
        test_db.put("tickets", "t1", {}, "c1")
        test_db.put("tickets", "t2", {}, "c1")
        test_db.prune_changes(test_db.latest_seq())

        change = await asyncio.wait_for(stream.__anext__(), timeout=2)
        stream.close()

        assert change.doc_id == "t2"
