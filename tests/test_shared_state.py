"""
Tests for the shared photo collection, blob URLs, preferences and result types.
"""

import asyncio

import pytest

from booth_transitions.blobs import BlobStore, is_blob_url
from booth_transitions.errors import AudioResolutionError, ImageLoadError
from booth_transitions.models import BatchSummary
from booth_transitions.notifications import RecordingNotifier
from booth_transitions.photos import PhotoCollection
from booth_transitions.preferences import (
    SEEN_TRANSITION_TIP,
    USED_MOTION_EMOJI,
    InMemoryPreferenceStore,
    RedisPreferenceStore,
)
from booth_transitions.result import Err, Ok
from fakes import make_photo


class FakeRedis:
    """Subset of the redis client used by the preference store."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class TestPhotoCollection:
    """Updates replace the frozen item and notify listeners."""

    def test_update_patches_fields(self):
        photos = PhotoCollection([make_photo("a")])
        updated = photos.update("a", generating_video=True, status_text="50%")

        assert updated.generating_video is True
        assert photos.get("a").status_text == "50%"
        assert photos.get("a").images == ("https://photos.example/a.png",)

    def test_update_missing_photo_is_ignored(self):
        photos = PhotoCollection([make_photo("a")])
        assert photos.update("gone", video_url="x") is None
        assert len(photos) == 1

    def test_listeners(self):
        photos = PhotoCollection()
        seen = []
        unsubscribe = photos.subscribe(lambda photo: seen.append(photo.id))

        photos.add(make_photo("a"))
        photos.update("a", hidden=True)
        unsubscribe()
        photos.update("a", hidden=False)

        assert seen == ["a", "a"]

    def test_duplicate_ids_rejected(self):
        photos = PhotoCollection([make_photo("a")])
        with pytest.raises(ValueError):
            photos.add(make_photo("a"))

    def test_remove_keeps_order(self):
        photos = PhotoCollection([make_photo("a"), make_photo("b"), make_photo("c")])
        photos.remove("b")
        photos.remove("missing")
        assert [p.id for p in photos.all()] == ["a", "c"]


class TestBlobStore:
    """Created URLs resolve until revoked."""

    def test_create_read_revoke(self):
        store = BlobStore()
        url = store.create(b"data", "video/mp4")

        assert is_blob_url(url)
        assert store.read(url) == (b"data", "video/mp4")
        store.revoke(url)
        store.revoke(url)
        assert store.read(url) is None

    def test_revoke_later_without_loop(self):
        store = BlobStore()
        url = store.create(b"data")
        store.revoke_later(url, 5)
        assert store.live_count == 0

    def test_revoke_later_on_loop(self):
        store = BlobStore()

        async def go():
            url = store.create(b"data")
            store.revoke_later(url, 0.01)
            alive = store.live_count
            await asyncio.sleep(0.05)
            return alive

        assert asyncio.run(go()) == 1
        assert store.live_count == 0

    def test_revoke_all(self):
        store = BlobStore()
        store.create(b"a")
        store.create(b"b")
        store.revoke_all()
        assert store.live_count == 0


class TestPreferences:
    """Flags in memory and in Redis."""

    def test_in_memory(self):
        prefs = InMemoryPreferenceStore({USED_MOTION_EMOJI: True})
        assert prefs.get_flag(USED_MOTION_EMOJI)
        assert not prefs.get_flag(SEEN_TRANSITION_TIP)

        prefs.set_flag(SEEN_TRANSITION_TIP)
        prefs.clear(USED_MOTION_EMOJI)
        assert prefs.get_flag(SEEN_TRANSITION_TIP)
        assert not prefs.get_flag(USED_MOTION_EMOJI)

    def test_redis_keys_are_prefixed(self):
        connection = FakeRedis()
        prefs = RedisPreferenceStore(connection, prefix="booth:prefs")

        prefs.set_flag(SEEN_TRANSITION_TIP)
        assert connection.data == {"booth:prefs:seen_transition_tip": "1"}
        assert prefs.get_flag(SEEN_TRANSITION_TIP)

        prefs.set_flag(SEEN_TRANSITION_TIP, False)
        assert not prefs.get_flag(SEEN_TRANSITION_TIP)

        prefs.clear(SEEN_TRANSITION_TIP)
        assert connection.data == {}


class TestSummaryAndResults:
    """Small value types."""

    def test_summary_dict(self):
        summary = BatchSummary(total=4, success_count=2, error_count=1, skipped_count=1)
        assert summary.resolved == 4
        assert summary.to_dict() == {
            "total": 4,
            "successCount": 2,
            "errorCount": 1,
            "skippedCount": 1,
            "outcome": "PARTIAL",
        }

    def test_result_values(self):
        assert Ok("url").ok
        assert not Err(ImageLoadError("u", "bad")).ok

    def test_error_messages(self):
        error = AudioResolutionError("song.mp3", "Failed to transcode audio", "ffmpeg exited 1")
        assert str(error) == "Failed to transcode audio (song.mp3): ffmpeg exited 1"
        assert "data:image/png;base64,AAAA" in str(ImageLoadError("data:image/png;base64,AAAA", "bad"))


class TestRecordingNotifier:
    """Toasts are kept in order."""

    def test_records(self):
        notifier = RecordingNotifier()
        notifier.info("one")
        notifier.error("two")
        assert notifier.messages == [("info", "one"), ("error", "two")]
        assert notifier.levels() == ["info", "error"]
