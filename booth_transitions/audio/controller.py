"""
Music selection for a transition batch.

Presets are resolved lazily: only their duration is needed up front and the
bytes are fetched (and transcoded when MP3) at stitch time. Uploads are
transcoded immediately when MP3 and decoded for a real waveform. Every blob
URL the controller creates is revoked on music removal and on teardown.
"""

import asyncio
import os
from typing import Callable, List, Optional, Set, Tuple

import httpx
import numpy as np
import structlog

from booth_transitions.audio.offset import SNAP_STEP_SECONDS, OffsetSelector
from booth_transitions.audio.transcoder import Transcoder, is_m4a, is_mp3
from booth_transitions.audio.waveform import WAVEFORM_SAMPLES, compute_waveform, placeholder_waveform
from booth_transitions.blobs import BlobStore
from booth_transitions.errors import AudioResolutionError
from booth_transitions.models import (
    AppliedMusic,
    AudioSelection,
    AudioSource,
    MusicPreset,
    UploadedAudio,
)
from booth_transitions.utils.audio import decode_audio_bytes, get_audio_duration

logger = structlog.get_logger()

AudioDecoder = Callable[[bytes, str], Tuple[np.ndarray, int]]


class AudioTrackController:
    """Owns the current music source, its waveform and the offset window."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        transcoder: Transcoder,
        blob_store: BlobStore,
        buckets: int = WAVEFORM_SAMPLES,
        snap_step: float = SNAP_STEP_SECONDS,
        max_upload_bytes: int = 20 * 1024 * 1024,
        decoder: AudioDecoder = decode_audio_bytes,
    ):
        self.client = client
        self.transcoder = transcoder
        self.blob_store = blob_store
        self.buckets = buckets
        self.max_upload_bytes = max_upload_bytes
        self.decoder = decoder
        self.selector = OffsetSelector(snap_step=snap_step)

        self.source: Optional[AudioSource] = None
        self.waveform: Optional[List[float]] = None
        self.applied_music: Optional[AppliedMusic] = None
        self._owned_urls: Set[str] = set()

    # ------------------------------------------------------------------
    # Source selection
    # ------------------------------------------------------------------

    @property
    def has_music(self) -> bool:
        return self.source is not None

    @property
    def audio_duration(self) -> float:
        return self.selector.audio_duration

    @property
    def start_offset(self) -> float:
        return self.selector.offset

    async def select_preset(self, preset: MusicPreset) -> None:
        """Select a hosted preset. Only its duration is resolved now."""
        duration = preset.duration_seconds
        if duration is None:
            duration = await self._probe_preset_duration(preset)

        self.source = preset
        self.waveform = placeholder_waveform(preset.id, self.buckets)
        self.selector.configure(audio_duration=duration)
        self.selector.set_offset(0.0)
        logger.info("Preset selected", preset_id=preset.id, duration=duration)

    async def select_upload(self, filename: str, data: bytes, mime_type: str = "") -> UploadedAudio:
        """
        Select a user upload, transcoding MP3 to M4A right away.

        Args:
            filename: Original file name
            data: File bytes
            mime_type: Browser-reported mime type, if any

        Returns:
            The resolved M4A upload

        Raises:
            AudioResolutionError: unsupported format, oversize file, transcode
                or decode failure
        """
        if len(data) > self.max_upload_bytes:
            raise AudioResolutionError(filename, "Audio file is too large", f"{len(data)} bytes")

        if is_mp3(filename, mime_type):
            data = await self.transcoder.to_m4a(filename, data)
            filename = f"{os.path.splitext(filename)[0]}.m4a"
        elif not is_m4a(filename, mime_type):
            raise AudioResolutionError(filename, "Unsupported audio format", "Supported: MP3, M4A")

        upload = UploadedAudio(filename=filename, data=data, mime_type="audio/mp4")

        loop = asyncio.get_running_loop()
        try:
            samples, sample_rate = await loop.run_in_executor(None, self.decoder, data, ".m4a")
        except Exception as e:
            raise AudioResolutionError(filename, "Could not decode audio", str(e))

        duration = get_audio_duration(samples, sample_rate)
        self.source = upload
        self.waveform = compute_waveform(samples, self.buckets).tolist()
        self.selector.configure(audio_duration=duration)
        self.selector.set_offset(0.0)
        logger.info("Upload selected", filename=filename, duration=round(duration, 2))
        return upload

    async def _probe_preset_duration(self, preset: MusicPreset) -> float:
        data = await self._download(preset)
        loop = asyncio.get_running_loop()
        suffix = ".mp3" if preset.is_mp3 else ".m4a"
        try:
            samples, sample_rate = await loop.run_in_executor(None, self.decoder, data, suffix)
        except Exception as e:
            raise AudioResolutionError(preset.id, "Could not read preset duration", str(e))
        return get_audio_duration(samples, sample_rate)

    # ------------------------------------------------------------------
    # Offset window
    # ------------------------------------------------------------------

    def set_total_audible(self, photo_count: int, clip_seconds: float) -> float:
        """The window is as long as the stitched video; re-clamps the offset."""
        total = max(0, photo_count) * clip_seconds
        self.selector.configure(total_audible=total)
        return total

    def set_offset(self, offset: float) -> float:
        return self.selector.set_offset(offset)

    def preview_position(self, elapsed: float) -> float:
        return self.selector.preview_position(elapsed)

    # ------------------------------------------------------------------
    # Snapshot / apply / resolve
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[AudioSelection]:
        """Freeze the current selection, or None when no music is chosen."""
        if self.source is None:
            return None
        return AudioSelection(
            source=self.source,
            start_offset_seconds=self.selector.offset,
            audio_duration_seconds=self.selector.audio_duration,
            total_audible_seconds=self.selector.total_audible,
        )

    def apply(self, selection: AudioSelection) -> AppliedMusic:
        """Turn a frozen selection into applied music with a playable URL."""
        self._release_applied()
        if isinstance(selection.source, UploadedAudio):
            url = self.blob_store.create(selection.source.data, selection.source.mime_type)
            self._owned_urls.add(url)
        else:
            url = selection.source.source_url
        self.applied_music = AppliedMusic(selection=selection, playable_url=url)
        logger.info(
            "Music applied",
            source=selection.source_id,
            offset=selection.start_offset_seconds,
            audible=selection.total_audible_seconds,
        )
        return self.applied_music

    async def resolve_bytes(self, selection: AudioSelection) -> bytes:
        """
        Return M4A bytes for a selection.

        Raises:
            AudioResolutionError: fetch or transcode failure
        """
        source = selection.source
        if isinstance(source, UploadedAudio):
            return source.data

        data = await self._download(source)
        if source.is_mp3:
            data = await self.transcoder.to_m4a(f"{source.id}.mp3", data)
        return data

    async def _download(self, preset: MusicPreset) -> bytes:
        try:
            response = await self.client.get(preset.source_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AudioResolutionError(preset.id, "Could not fetch preset audio", str(e))
        return response.content

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _release_applied(self) -> None:
        if self.applied_music is not None:
            url = self.applied_music.playable_url
            if url in self._owned_urls:
                self.blob_store.revoke(url)
                self._owned_urls.discard(url)
            self.applied_music = None

    def clear_applied(self) -> None:
        """Drop applied music (new batch) but keep the current selection."""
        self._release_applied()

    def remove_music(self) -> None:
        """Forget the selection, the applied music and every owned URL."""
        self._release_applied()
        for url in self._owned_urls:
            self.blob_store.revoke(url)
        self._owned_urls.clear()
        self.source = None
        self.waveform = None
        self.selector.configure(audio_duration=0.0)
        logger.info("Music removed")

    def teardown(self) -> None:
        self.remove_music()
