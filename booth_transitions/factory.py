"""
Wiring of a TransitionPipeline from settings
"""

from typing import Any, Dict, Iterable, Optional

import httpx

from booth_transitions.audio.controller import AudioTrackController
from booth_transitions.audio.transcoder import HttpTranscoder
from booth_transitions.blobs import BlobStore
from booth_transitions.config import Settings
from booth_transitions.generation.job_service import HttpJobService
from booth_transitions.generation.orchestrator import TransitionPipeline
from booth_transitions.generation.retry import RetryPolicy
from booth_transitions.generation.worker import TransitionJobSettings
from booth_transitions.loading.image_loader import ImageBufferLoader
from booth_transitions.models import PhotoItem
from booth_transitions.notifications import LoggingNotifier, Notifier
from booth_transitions.photos import PhotoCollection
from booth_transitions.preferences import PreferenceStore
from booth_transitions.stitching.concat import FfmpegConcatenator
from booth_transitions.stitching.coordinator import StitchCoordinator
from booth_transitions.stitching.delivery import DeliveryManager, FileDownloader, Platform, ShareSheet


def photo_from_payload(data: Dict[str, Any]) -> PhotoItem:
    """Build a PhotoItem from a camelCase JSON payload."""
    return PhotoItem(
        id=str(data["id"]),
        images=tuple(data.get("images", ())),
        video_url=data.get("videoUrl"),
        loading=bool(data.get("loading", False)),
        generating=bool(data.get("generating", False)),
        generating_video=bool(data.get("generatingVideo", False)),
        error=data.get("error"),
        hidden=bool(data.get("hidden", False)),
        is_reference=bool(data.get("isReference", False)),
    )


def create_pipeline(
    settings: Settings,
    client: httpx.AsyncClient,
    photos: Iterable[PhotoItem],
    notifier: Optional[Notifier] = None,
    preferences: Optional[PreferenceStore] = None,
    platform: Platform = Platform(),
    share_sheet: Optional[ShareSheet] = None,
    blob_store: Optional[BlobStore] = None,
) -> TransitionPipeline:
    """
    Assemble a pipeline backed by the HTTP services named in settings.

    Args:
        settings: Application settings
        client: Shared async HTTP client
        photos: Initial photo collection
        notifier: Toast sink (defaults to logging)
        preferences: Flag store (defaults to in-memory)
        platform: Delivery platform
        share_sheet: Native share implementation for mobile platforms
        blob_store: Object-URL registry to share with the caller

    Returns:
        Ready-to-run TransitionPipeline
    """
    blob_store = blob_store or BlobStore()
    notifier = notifier or LoggingNotifier()
    collection = photos if isinstance(photos, PhotoCollection) else PhotoCollection(photos)

    loader = ImageBufferLoader.default(
        blob_store, client, settings.app_origin, settings.image_export_format
    )
    job_service = HttpJobService(
        client,
        settings.generation_api_url,
        poll_interval_seconds=settings.job_poll_interval_seconds,
        timeout_seconds=settings.job_timeout_seconds,
    )
    audio_controller = AudioTrackController(
        client,
        HttpTranscoder(client, settings.transcode_api_url),
        blob_store,
        buckets=settings.waveform_buckets,
        snap_step=settings.offset_snap_seconds,
        max_upload_bytes=settings.max_upload_bytes,
    )
    delivery = DeliveryManager(
        platform,
        FileDownloader(blob_store, settings.download_dir, settings.blob_revoke_delay_seconds),
        share_sheet,
    )
    stitcher = StitchCoordinator(
        collection,
        FfmpegConcatenator(client, blob_store),
        audio_controller,
        delivery,
        notifier,
        filename_prefix=settings.output_filename_prefix,
    )
    pipeline = TransitionPipeline(
        collection,
        job_service,
        loader,
        audio_controller,
        stitcher,
        notifier=notifier,
        preferences=preferences,
        job_settings=TransitionJobSettings.from_settings(settings),
        retry_policy=RetryPolicy(
            max_attempts=settings.max_generation_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
        ),
        max_in_flight=settings.max_in_flight_jobs,
    )
    return pipeline
