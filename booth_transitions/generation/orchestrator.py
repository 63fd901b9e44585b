"""
Transition batch orchestrator.

Builds the circular queue, dispatches one worker per position, waits for the
aggregator to resolve the batch and keeps what the batch produced (applied
music, pending download) until the next batch or a reset.
"""

from typing import Callable, List, Optional

import structlog

from booth_transitions.audio.controller import AudioTrackController
from booth_transitions.generation.aggregator import CompletionAggregator
from booth_transitions.generation.job_service import JobService
from booth_transitions.generation.playback import PlaybackSynchronizer
from booth_transitions.generation.queue_builder import build_transition_queue
from booth_transitions.generation.retry import RetryPolicy
from booth_transitions.generation.scheduler import dispatch_all
from booth_transitions.generation.worker import GenerationAttemptWorker, TransitionJobSettings
from booth_transitions.loading.image_loader import ImageBufferLoader
from booth_transitions.models import AppliedMusic, BatchSummary, MediaBlob, TransitionQueue
from booth_transitions.notifications import LoggingNotifier, Notifier
from booth_transitions.photos import PhotoCollection
from booth_transitions.preferences import SEEN_TRANSITION_TIP, InMemoryPreferenceStore, PreferenceStore
from booth_transitions.stitching.concat import ProgressCallback
from booth_transitions.stitching.coordinator import StitchCoordinator
from booth_transitions.stitching.delivery import NOTHING_PENDING

logger = structlog.get_logger()


class TransitionPipeline:
    """End-to-end batch transition pipeline for one photo collection."""

    def __init__(
        self,
        photos: PhotoCollection,
        job_service: JobService,
        image_loader: ImageBufferLoader,
        audio_controller: AudioTrackController,
        stitcher: StitchCoordinator,
        notifier: Optional[Notifier] = None,
        preferences: Optional[PreferenceStore] = None,
        job_settings: Optional[TransitionJobSettings] = None,
        retry_policy: Optional[RetryPolicy] = None,
        max_in_flight: int = 0,
        on_out_of_credits: Optional[Callable[[], None]] = None,
    ):
        self.photos = photos
        self.job_service = job_service
        self.image_loader = image_loader
        self.audio_controller = audio_controller
        self.stitcher = stitcher
        self.notifier = notifier or LoggingNotifier()
        self.preferences = preferences or InMemoryPreferenceStore()
        self.job_settings = job_settings or TransitionJobSettings()
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_in_flight = max_in_flight
        self.on_out_of_credits = on_out_of_credits

        self.synchronizer = PlaybackSynchronizer()
        self.queue: Optional[TransitionQueue] = None
        self.aggregator: Optional[CompletionAggregator] = None
        self.workers: List[GenerationAttemptWorker] = []
        self.applied_music: Optional[AppliedMusic] = None
        self.out_of_credits = False

    @property
    def all_resolved(self) -> bool:
        return self.aggregator is not None and self.aggregator.is_resolved

    async def start_batch(self) -> Optional[BatchSummary]:
        """
        Generate transition clips for every eligible photo.

        Returns:
            BatchSummary once every worker reached a terminal outcome, or None
            when no photo is eligible
        """
        self.reset()

        queue = build_transition_queue(self.photos.all())
        if len(queue) == 0:
            self.notifier.info("No photos are ready for transition videos yet.")
            return None

        self.queue = queue
        self.out_of_credits = False
        for photo_id in queue:
            self.photos.update(photo_id, video_url=None, video_error=None)
        self.preferences.set_flag(SEEN_TRANSITION_TIP)
        total_audible = self.audio_controller.set_total_audible(
            len(queue), self.job_settings.duration_seconds
        )

        self.aggregator = CompletionAggregator(
            queue.photo_ids,
            self.synchronizer,
            self.notifier,
            selection_provider=self.audio_controller.snapshot,
            apply_music=self.audio_controller.apply,
        )
        self.aggregator.on_finalize(self._on_finalize)

        self.workers = [
            GenerationAttemptWorker(
                index=i,
                queue=queue,
                photos=self.photos,
                loader=self.image_loader,
                job_service=self.job_service,
                synchronizer=self.synchronizer,
                aggregator=self.aggregator,
                job_settings=self.job_settings,
                retry_policy=self.retry_policy,
                on_out_of_credits=self._handle_out_of_credits,
            )
            for i in range(len(queue))
        ]

        logger.info(
            "Starting transition batch",
            photos=len(queue),
            total_audible=total_audible,
            max_in_flight=self.max_in_flight or None,
        )
        await dispatch_all([worker.run for worker in self.workers], self.max_in_flight)
        return await self.aggregator.wait()

    async def stitch(
        self,
        return_blob: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[MediaBlob]:
        """Stitch the current batch; see StitchCoordinator.stitch."""
        if self.queue is None:
            self.notifier.info("Generate transition videos before stitching.")
            return None
        return await self.stitcher.stitch(
            self.queue,
            applied_music=self.applied_music,
            return_blob=return_blob,
            on_progress=on_progress,
        )

    async def share_pending(self) -> str:
        """User-gesture entry point for the mobile share sheet."""
        if self.stitcher.delivery.pending_share is None:
            return NOTHING_PENDING
        return await self.stitcher.delivery.share_pending()

    def remove_music(self) -> None:
        self.audio_controller.remove_music()
        self.applied_music = None

    def reset(self) -> None:
        """Discard the current batch and release its resources ("New Batch")."""
        if self.queue is not None:
            logger.info("Resetting transition batch", photos=len(self.queue))
        self.audio_controller.clear_applied()
        self.applied_music = None
        self.synchronizer.clear()
        self.stitcher.delivery.reset()
        self.queue = None
        self.aggregator = None
        self.workers = []

    def teardown(self) -> None:
        self.reset()
        self.audio_controller.teardown()

    def _on_finalize(self, summary: BatchSummary, applied_music: Optional[AppliedMusic]) -> None:
        self.applied_music = applied_music
        if summary.success_count > 0:
            self.stitcher.delivery.mark_new_content()

    def _handle_out_of_credits(self) -> None:
        if not self.out_of_credits:
            self.out_of_credits = True
            self.notifier.error("You're out of credits. Top up to keep generating videos.")
        if self.on_out_of_credits is not None:
            self.on_out_of_credits()
