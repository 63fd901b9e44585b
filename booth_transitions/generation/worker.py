"""
Per-photo transition generation worker.

One worker owns one queue position i. Each attempt re-reads the live photo
collection, loads the frames of photo i and photo (i + 1) mod N, and submits
a job. A failed attempt is retried once after a fixed backoff; out-of-credits
is terminal immediately. Whatever happens, the worker reports exactly one
terminal outcome to the aggregator.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog

from booth_transitions.config import Settings, frames_for_duration
from booth_transitions.errors import GenerationError, ImageLoadError, OutOfCreditsError
from booth_transitions.generation.aggregator import CompletionAggregator
from booth_transitions.generation.job_service import JobService
from booth_transitions.generation.playback import PlaybackSynchronizer
from booth_transitions.generation.retry import RetryPolicy
from booth_transitions.loading.image_loader import ImageBufferLoader
from booth_transitions.models import (
    AttemptStatus,
    GenerationAttempt,
    PhotoItem,
    TransitionJobRequest,
    TransitionQueue,
)
from booth_transitions.photos import PhotoCollection
from booth_transitions.result import Err, Ok, Result

logger = structlog.get_logger()


@dataclass(frozen=True)
class TransitionJobSettings:
    """Clip parameters shared by every job in a batch."""
    duration_seconds: float = 5.0
    resolution: str = "480p"
    fps: int = 32
    positive_prompt: str = ""
    negative_prompt: str = ""

    @property
    def frames(self) -> int:
        return frames_for_duration(self.duration_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TransitionJobSettings":
        return cls(
            duration_seconds=settings.clip_duration_seconds,
            resolution=settings.video_resolution,
            fps=settings.video_fps,
            positive_prompt=settings.transition_positive_prompt,
            negative_prompt=settings.transition_negative_prompt,
        )


@dataclass(frozen=True)
class AttemptState:
    """Live view of the two photos an attempt bridges."""
    attempt_number: int
    current_id: str
    next_id: str
    current: Optional[PhotoItem]
    next: Optional[PhotoItem]


def skip_reason(state: AttemptState) -> Optional[str]:
    """
    Decide whether an attempt should be skipped rather than run.

    Returns:
        A short reason, or None if the attempt can proceed
    """
    current = state.current
    if current is None:
        return "photo removed"
    if current.loading or current.generating:
        return "photo is still loading"
    if state.attempt_number == 0 and current.generating_video:
        return "photo is already generating a video"
    if state.next is None:
        return "next photo removed"
    if current.primary_image is None or state.next.primary_image is None:
        return "missing image URL"
    return None


class GenerationAttemptWorker:
    """Drives the transition clip for one queue position to a terminal outcome."""

    def __init__(
        self,
        index: int,
        queue: TransitionQueue,
        photos: PhotoCollection,
        loader: ImageBufferLoader,
        job_service: JobService,
        synchronizer: PlaybackSynchronizer,
        aggregator: CompletionAggregator,
        job_settings: TransitionJobSettings,
        retry_policy: Optional[RetryPolicy] = None,
        on_out_of_credits: Optional[Callable[[], None]] = None,
    ):
        self.index = index
        self.queue = queue
        self.photos = photos
        self.loader = loader
        self.job_service = job_service
        self.synchronizer = synchronizer
        self.aggregator = aggregator
        self.job_settings = job_settings
        self.retry_policy = retry_policy or RetryPolicy()
        self.on_out_of_credits = on_out_of_credits
        self.attempts: List[GenerationAttempt] = []
        self.photo_id, self.next_photo_id = queue.pair(index)
        self.log = logger.bind(photo_id=self.photo_id, index=index)

    def resolve_state(self, attempt_number: int) -> AttemptState:
        """Read both photos from the live collection, never from a batch snapshot."""
        return AttemptState(
            attempt_number=attempt_number,
            current_id=self.photo_id,
            next_id=self.next_photo_id,
            current=self.photos.get(self.photo_id),
            next=self.photos.get(self.next_photo_id),
        )

    async def attempt(self, state: AttemptState) -> Result[str, Exception]:
        """Run one attempt: load both frames and submit the job."""
        try:
            start = await self.loader.load(state.current.primary_image)
            end = await self.loader.load(state.next.primary_image)
            request = TransitionJobRequest(
                start_frame=start.data,
                end_frame=end.data,
                duration_seconds=self.job_settings.duration_seconds,
                resolution=self.job_settings.resolution,
                fps=self.job_settings.fps,
                frames=self.job_settings.frames,
                positive_prompt=self.job_settings.positive_prompt,
                negative_prompt=self.job_settings.negative_prompt,
                width=start.width,
                height=start.height,
            )
            url = await self.job_service.submit(request, on_progress=self._on_progress)
        except (ImageLoadError, GenerationError) as e:
            return Err(e)
        return Ok(url)

    async def run(self) -> None:
        """Attempt generation until success, skip, or terminal failure."""
        try:
            await self._run()
        except Exception as e:
            # Unexpected bug inside an attempt; the batch must still resolve
            self.log.exception("Worker crashed", error=str(e))
            self.photos.update(self.photo_id, generating_video=False, video_error=str(e))
            self.aggregator.record_error(self.photo_id, e)

    async def _run(self) -> None:
        attempt_number = 0
        while True:
            state = self.resolve_state(attempt_number)
            reason = skip_reason(state)
            if reason is not None:
                self.log.info("Skipping transition", reason=reason, attempt=attempt_number)
                if attempt_number > 0:
                    self.photos.update(self.photo_id, generating_video=False)
                self.aggregator.record_skipped(self.photo_id)
                return

            record = GenerationAttempt(self.photo_id, attempt_number, AttemptStatus.IN_FLIGHT)
            self.attempts.append(record)
            self.photos.update(self.photo_id, generating_video=True, video_error=None, video_url=None)
            self.log.info("Generating transition", attempt=attempt_number, next_photo_id=self.next_photo_id)

            result = await self.attempt(state)

            if isinstance(result, Ok):
                record.status = AttemptStatus.SUCCESS
                self.photos.update(
                    self.photo_id,
                    video_url=result.value,
                    generating_video=False,
                    video_error=None,
                    status_text="",
                )
                self.synchronizer.mark_playing(self.photo_id, 0)
                self.aggregator.record_success(self.photo_id)
                return

            record.status = AttemptStatus.ERROR
            error = result.error

            if isinstance(error, OutOfCreditsError):
                self.log.warning("Out of credits", attempt=attempt_number)
                self._fail(error)
                if self.on_out_of_credits is not None:
                    self.on_out_of_credits()
                return

            if not self.retry_policy.should_retry(attempt_number, error):
                self._fail(error)
                return

            self.log.warning(
                "Transition attempt failed, retrying",
                attempt=attempt_number,
                error=str(error),
                backoff=self.retry_policy.backoff_seconds,
            )
            self.photos.update(self.photo_id, status_text="Retrying...")
            await self.retry_policy.wait(attempt_number)
            attempt_number += 1

    def _fail(self, error: Exception) -> None:
        self.photos.update(
            self.photo_id,
            generating_video=False,
            video_error=str(error),
            status_text="",
        )
        self.aggregator.record_error(self.photo_id, error)

    def _on_progress(self, progress: float) -> None:
        self.photos.update(self.photo_id, status_text=f"{int(progress * 100)}%")
