"""Tests for the in-memory datastore and the shared media document helpers."""

import asyncio
from datetime import UTC, datetime

import pytest

from app.db.datastore import MediaUpdate, apply_media_update, snapshot_from_document
from app.db.datastore_memory import InMemoryDatastore
from app.db.seed import seed_config_documents
from app.domain.plan_config import BILLING_DOC, PLANS_PUBLIC_DOC
from app.domain.upload_paths import MediaKind

pytestmark = pytest.mark.unit

AT = datetime(2030, 1, 1, tzinfo=UTC)


class TestApplyMediaUpdate:
    def test_image_added_once(self):
        media = {"images": ["a"]}

        once = apply_media_update(media, MediaUpdate(MediaKind.IMAGE, "b", AT))
        twice = apply_media_update(once, MediaUpdate(MediaKind.IMAGE, "b", AT))

        assert twice["images"] == ["a", "b"]
        assert media == {"images": ["a"]}

    def test_avatar_set(self):
        result = apply_media_update(None, MediaUpdate(MediaKind.AVATAR, "me", AT))

        assert result == {"avatarUrl": "me", "updatedAt": AT.isoformat()}

    def test_malformed_video_list_is_replaced(self):
        result = apply_media_update({"videos": "oops"}, MediaUpdate(MediaKind.VIDEO, "v", AT))

        assert result["videos"] == ["v"]


class TestSnapshotFromDocument:
    def test_reads_loose_document(self):
        snapshot = snapshot_from_document(
            "alice",
            {
                "uid": " u1 ",
                "published": "yes",
                "templateId": "",
                "theme": "dark",
                "content": None,
                "media": {"images": ["a", None, " "], "videos": None, "updatedAt": "2030-01-01T00:00:00Z"},
            },
        )

        assert snapshot.uid == "u1"
        assert snapshot.published is False
        assert snapshot.template_id is None
        assert snapshot.theme is None
        assert snapshot.content == {}
        assert snapshot.media.images == ["a"]
        assert snapshot.media.videos == []
        assert snapshot.media.updated_at == AT

    def test_missing_media(self):
        snapshot = snapshot_from_document("alice", {"uid": "u1"})

        assert snapshot.media.avatar_url is None
        assert snapshot.media.images == []


class TestInMemoryDatastore:
    async def test_transaction_commits_pending_write(self):
        datastore = InMemoryDatastore(profiles={"alice": {"uid": "u1"}})

        async def add_image(txn):
            assert (await txn.read()).uid == "u1"
            txn.write(MediaUpdate(MediaKind.IMAGE, "https://cdn/a.png", AT))
            return "ok"

        assert await datastore.run_profile_transaction("alice", add_image) == "ok"
        assert datastore.profiles["alice"]["media"]["images"] == ["https://cdn/a.png"]

    async def test_raising_callback_leaves_state_unchanged(self):
        datastore = InMemoryDatastore(profiles={"alice": {"uid": "u1", "media": {"images": []}}})

        async def write_then_fail(txn):
            txn.write(MediaUpdate(MediaKind.IMAGE, "https://cdn/a.png", AT))
            raise ValueError("rejected")

        with pytest.raises(ValueError):
            await datastore.run_profile_transaction("alice", write_then_fail)

        assert datastore.profiles["alice"]["media"]["images"] == []

    async def test_second_write_in_one_transaction_is_refused(self):
        datastore = InMemoryDatastore(profiles={"alice": {"uid": "u1"}})

        async def write_twice(txn):
            txn.write(MediaUpdate(MediaKind.IMAGE, "a", AT))
            txn.write(MediaUpdate(MediaKind.IMAGE, "b", AT))

        with pytest.raises(RuntimeError):
            await datastore.run_profile_transaction("alice", write_twice)

        assert "media" not in datastore.profiles["alice"]

    async def test_transactions_on_one_profile_serialise(self):
        datastore = InMemoryDatastore(profiles={"alice": {"uid": "u1"}})
        active = 0
        overlapped = False

        async def slow(txn):
            nonlocal active, overlapped
            active += 1
            overlapped = overlapped or active > 1
            await asyncio.sleep(0.01)
            active -= 1

        await asyncio.gather(*(datastore.run_profile_transaction("alice", slow) for _ in range(3)))

        assert overlapped is False

    async def test_reads_are_copies(self):
        datastore = InMemoryDatastore(users={"u1": {"plan": "pro"}})

        record = await datastore.get_subscription("u1")
        record["plan"] = "business"

        assert datastore.users["u1"]["plan"] == "pro"


class TestSeedConfigDocuments:
    async def test_seeds_both_documents(self):
        datastore = InMemoryDatastore()

        await seed_config_documents(datastore)

        assert datastore.config_documents[PLANS_PUBLIC_DOC]["plans"]["pro"]["limits"]["images"] == 20
        assert datastore.config_documents[BILLING_DOC]["plans"]["business"]["amount"] == 7900

    async def test_existing_documents_are_kept(self):
        datastore = InMemoryDatastore(config_documents={PLANS_PUBLIC_DOC: {"custom": True}})

        await seed_config_documents(datastore)

        assert datastore.config_documents[PLANS_PUBLIC_DOC] == {"custom": True}
        assert BILLING_DOC in datastore.config_documents

    async def test_overwrite_resets_to_defaults(self):
        datastore = InMemoryDatastore(config_documents={PLANS_PUBLIC_DOC: {"custom": True}})

        await seed_config_documents(datastore, overwrite=True)

        assert "plans" in datastore.config_documents[PLANS_PUBLIC_DOC]
