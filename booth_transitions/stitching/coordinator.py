"""
Stitching of a resolved batch into one video.

Clips are ordered by the batch's transition queue, never by completion
order. A music failure downgrades the result to a silent video; a
concatenation failure is reported and left for the user to retry.
"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

import structlog

from booth_transitions.audio.controller import AudioTrackController
from booth_transitions.errors import AudioResolutionError, StitchError
from booth_transitions.models import AppliedMusic, AudioOptions, MediaBlob, StitchRequest, TransitionQueue
from booth_transitions.notifications import Notifier
from booth_transitions.photos import PhotoCollection
from booth_transitions.stitching.concat import Concatenator, ProgressCallback
from booth_transitions.stitching.delivery import DeliveryManager

logger = structlog.get_logger()


class StitchCoordinator:
    """Builds the stitch request, runs concatenation and hands off delivery."""

    def __init__(
        self,
        photos: PhotoCollection,
        concatenator: Concatenator,
        audio_controller: AudioTrackController,
        delivery: DeliveryManager,
        notifier: Notifier,
        filename_prefix: str = "photobooth-transition",
    ):
        self.photos = photos
        self.concatenator = concatenator
        self.audio_controller = audio_controller
        self.delivery = delivery
        self.notifier = notifier
        self.filename_prefix = filename_prefix

    def build_request(
        self,
        queue: TransitionQueue,
        audio: Optional[AudioOptions] = None,
        return_blob: bool = False,
    ) -> StitchRequest:
        """
        Collect clip URLs in queue order.

        Raises:
            StitchError: when no photo in the queue has a clip
        """
        clip_urls = []
        for photo_id in queue:
            photo = self.photos.get(photo_id)
            if photo is not None and photo.video_url:
                clip_urls.append(photo.video_url)

        if not clip_urls:
            raise StitchError("No transition videos are available to stitch")
        return StitchRequest(clip_urls=tuple(clip_urls), audio=audio, return_blob=return_blob)

    async def resolve_audio(self, applied_music: Optional[AppliedMusic]) -> Optional[AudioOptions]:
        if applied_music is None:
            return None
        selection = applied_music.selection
        try:
            data = await self.audio_controller.resolve_bytes(selection)
        except AudioResolutionError as e:
            logger.warning("Music unavailable, stitching without it", error=str(e))
            self.notifier.warning("Music could not be loaded, so the video was stitched without it.")
            return None
        return AudioOptions(data=data, start_offset_seconds=selection.start_offset_seconds)

    async def stitch(
        self,
        queue: TransitionQueue,
        applied_music: Optional[AppliedMusic] = None,
        return_blob: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[MediaBlob]:
        """
        Stitch the batch and deliver it.

        Args:
            queue: Batch queue defining clip order
            applied_music: Music frozen when the batch resolved
            return_blob: Only return the video, without download or share
            on_progress: Callback (current, total, message)

        Returns:
            The stitched MediaBlob

        Raises:
            StitchError: when there is nothing to stitch or concatenation fails
        """
        try:
            request = self.build_request(queue, return_blob=return_blob)
        except StitchError as e:
            self.notifier.error(str(e))
            raise

        request = replace(request, audio=await self.resolve_audio(applied_music))

        logger.info(
            "Stitching transition videos",
            clips=len(request.clip_urls),
            with_music=request.audio is not None,
            return_blob=return_blob,
        )
        try:
            media = await self.concatenator.concatenate(request.clip_urls, on_progress, request.audio)
        except StitchError as e:
            logger.error("Stitching failed", error=str(e))
            self.notifier.error("Failed to stitch the transition videos. Please try again.")
            raise
        except Exception as e:
            logger.error("Stitching failed", error=str(e))
            self.notifier.error("Failed to stitch the transition videos. Please try again.")
            raise StitchError(str(e)) from e

        media = MediaBlob(data=media.data, mime_type=media.mime_type, filename=self._filename())

        if return_blob:
            return media

        self.delivery.deliver(media)
        return media

    def _filename(self) -> str:
        return f"{self.filename_prefix}-{datetime.now().strftime('%Y%m%d-%H%M%S')}.mp4"
