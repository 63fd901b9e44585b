"""
Tests for music selection, offset handling and resolution at stitch time.
"""

import asyncio

import httpx
import pytest

from booth_transitions.audio.controller import AudioTrackController
from booth_transitions.audio.presets import find_preset, parse_duration, presets_by_category
from booth_transitions.blobs import BlobStore
from booth_transitions.errors import AudioResolutionError
from booth_transitions.models import MusicPreset, UploadedAudio
from fakes import FakeTranscoder, constant_decoder


def broken_decoder(data, suffix):
    raise RuntimeError("corrupt stream")


def make_controller(handler=None, transcoder=None, decoder=constant_decoder, **kwargs):
    handler = handler or (lambda request: httpx.Response(200, content=b"preset-bytes"))
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    blob_store = BlobStore()
    controller = AudioTrackController(
        client,
        transcoder or FakeTranscoder(),
        blob_store,
        decoder=decoder,
        **kwargs,
    )
    return controller, blob_store


class TestUploads:
    """Uploads are transcoded when MP3 and decoded for a waveform."""

    def test_mp3_is_transcoded(self):
        transcoder = FakeTranscoder()
        controller, _ = make_controller(transcoder=transcoder)

        upload = asyncio.run(controller.select_upload("song.mp3", b"mp3-bytes", "audio/mpeg"))

        assert transcoder.calls == ["song.mp3"]
        assert upload.filename == "song.m4a"
        assert upload.data == b"m4a:mp3-bytes"
        assert controller.audio_duration == 40.0
        assert len(controller.waveform) == 200

    def test_m4a_is_used_directly(self):
        transcoder = FakeTranscoder()
        controller, _ = make_controller(transcoder=transcoder)

        upload = asyncio.run(controller.select_upload("song.m4a", b"m4a-bytes"))

        assert transcoder.calls == []
        assert upload.data == b"m4a-bytes"

    def test_unsupported_format(self):
        controller, _ = make_controller()
        with pytest.raises(AudioResolutionError):
            asyncio.run(controller.select_upload("song.wav", b"riff"))
        assert not controller.has_music

    def test_too_large(self):
        controller, _ = make_controller(max_upload_bytes=4)
        with pytest.raises(AudioResolutionError):
            asyncio.run(controller.select_upload("song.m4a", b"12345"))

    def test_transcode_failure(self):
        transcoder = FakeTranscoder(AudioResolutionError("song.mp3", "Failed to transcode audio"))
        controller, _ = make_controller(transcoder=transcoder)
        with pytest.raises(AudioResolutionError):
            asyncio.run(controller.select_upload("song.mp3", b"mp3"))
        assert not controller.has_music

    def test_decode_failure(self):
        controller, _ = make_controller(decoder=broken_decoder)
        with pytest.raises(AudioResolutionError) as excinfo:
            asyncio.run(controller.select_upload("song.m4a", b"m4a"))
        assert "corrupt stream" in str(excinfo.value)


class TestPresets:
    """Presets only need a duration up front."""

    def test_known_duration_needs_no_network(self):
        controller, _ = make_controller(handler=lambda request: pytest.fail("network used"))
        preset = find_preset("winter-theme")

        asyncio.run(controller.select_preset(preset))

        assert controller.audio_duration == 204.0
        assert len(controller.waveform) == 200

    def test_unknown_duration_is_probed(self):
        controller, _ = make_controller()
        preset = MusicPreset(id="mystery", title="Mystery", source_url="https://cdn.example/mystery.m4a")

        asyncio.run(controller.select_preset(preset))
        assert controller.audio_duration == 40.0

    def test_catalogue(self):
        assert parse_duration("3:24") == 204.0
        assert parse_duration("bad") is None
        assert all(p.is_mp3 for p in presets_by_category("winter"))
        assert not any(p.is_mp3 for p in presets_by_category("samples"))


class TestOffsetWindow:
    """The offset is clamped against the stitched video length."""

    def test_clamped_after_batch_size_known(self):
        controller, _ = make_controller()
        asyncio.run(controller.select_upload("song.m4a", b"m4a"))

        controller.set_offset(38.0)
        assert controller.set_total_audible(3, 5.0) == 15.0
        assert controller.start_offset == 25.0

    def test_new_selection_resets_offset(self):
        controller, _ = make_controller()
        asyncio.run(controller.select_upload("song.m4a", b"m4a"))
        controller.set_offset(12.0)
        asyncio.run(controller.select_preset(find_preset("render-bash")))
        assert controller.start_offset == 0.0


class TestApplyAndResolve:
    """Applied music owns its blob URLs and resolves to M4A bytes."""

    def test_no_selection(self):
        controller, _ = make_controller()
        assert controller.snapshot() is None

    def test_upload_gets_blob_url(self):
        controller, blob_store = make_controller()
        asyncio.run(controller.select_upload("song.m4a", b"m4a"))

        applied = controller.apply(controller.snapshot())
        assert applied.playable_url.startswith("blob:")
        assert blob_store.read(applied.playable_url) == (b"m4a", "audio/mp4")

        second = controller.apply(controller.snapshot())
        assert blob_store.read(applied.playable_url) is None
        assert blob_store.live_count == 1

        controller.remove_music()
        assert blob_store.read(second.playable_url) is None
        assert blob_store.live_count == 0
        assert controller.snapshot() is None

    def test_preset_uses_hosted_url(self):
        controller, blob_store = make_controller()
        preset = find_preset("sample-o-fortuna")
        asyncio.run(controller.select_preset(preset))

        applied = controller.apply(controller.snapshot())
        assert applied.playable_url == preset.source_url
        assert blob_store.live_count == 0

    def test_resolve_upload(self):
        controller, _ = make_controller()
        asyncio.run(controller.select_upload("song.m4a", b"m4a"))
        data = asyncio.run(controller.resolve_bytes(controller.snapshot()))
        assert data == b"m4a"

    def test_resolve_mp3_preset_transcodes(self):
        transcoder = FakeTranscoder()
        controller, _ = make_controller(transcoder=transcoder)
        asyncio.run(controller.select_preset(find_preset("snowflow")))

        data = asyncio.run(controller.resolve_bytes(controller.snapshot()))
        assert data == b"m4a:preset-bytes"
        assert transcoder.calls == ["snowflow.mp3"]

    def test_resolve_m4a_preset(self):
        transcoder = FakeTranscoder()
        controller, _ = make_controller(transcoder=transcoder)
        asyncio.run(controller.select_preset(find_preset("sample-peter-axel-f")))

        data = asyncio.run(controller.resolve_bytes(controller.snapshot()))
        assert data == b"preset-bytes"
        assert transcoder.calls == []

    def test_resolve_fetch_failure(self):
        controller, _ = make_controller(handler=lambda request: httpx.Response(404))
        asyncio.run(controller.select_preset(find_preset("snowflow")))

        with pytest.raises(AudioResolutionError):
            asyncio.run(controller.resolve_bytes(controller.snapshot()))

    def test_snapshot_is_frozen(self):
        controller, _ = make_controller()
        asyncio.run(controller.select_upload("song.m4a", b"m4a"))
        controller.set_total_audible(2, 5.0)
        controller.set_offset(4.0)
        snapshot = controller.snapshot()

        controller.set_offset(8.0)
        assert snapshot.start_offset_seconds == 4.0
        assert isinstance(snapshot.source, UploadedAudio)
