"""
Tests for the per-photo generation worker: retry bound, out-of-credits,
live-state reads and skip rules.
"""

import asyncio

import pytest

from booth_transitions.errors import GenerationError, OutOfCreditsError
from booth_transitions.generation.aggregator import CompletionAggregator
from booth_transitions.generation.playback import PlaybackSynchronizer
from booth_transitions.generation.queue_builder import build_transition_queue
from booth_transitions.generation.retry import RetryPolicy
from booth_transitions.generation.scheduler import dispatch_all
from booth_transitions.generation.worker import (
    AttemptState,
    GenerationAttemptWorker,
    TransitionJobSettings,
    skip_reason,
)
from booth_transitions.models import AttemptStatus, BatchOutcome
from booth_transitions.notifications import RecordingNotifier
from booth_transitions.photos import PhotoCollection
from fakes import FakeJobService, FakeLoader, make_photo, no_sleep

URL_A = "https://photos.example/a.png"
URL_B = "https://photos.example/b.png"
URL_C = "https://photos.example/c.png"


def run_workers(photos, job_service, loader=None, max_attempts=2, sleep=no_sleep, on_collection=None):
    """Run one worker per queue position and return what the batch produced."""

    async def go():
        collection = PhotoCollection(photos)
        if on_collection is not None:
            on_collection(collection)
        queue = build_transition_queue(collection.all())
        synchronizer = PlaybackSynchronizer()
        notifier = RecordingNotifier()
        aggregator = CompletionAggregator(queue.photo_ids, synchronizer, notifier)
        credits = []
        workers = [
            GenerationAttemptWorker(
                index=i,
                queue=queue,
                photos=collection,
                loader=loader or FakeLoader(),
                job_service=job_service,
                synchronizer=synchronizer,
                aggregator=aggregator,
                job_settings=TransitionJobSettings(),
                retry_policy=RetryPolicy(max_attempts=max_attempts, backoff_seconds=0, sleep=sleep),
                on_out_of_credits=lambda: credits.append(True),
            )
            for i in range(len(queue))
        ]
        await dispatch_all([worker.run for worker in workers])
        summary = await aggregator.wait()
        return collection, workers, summary, credits, synchronizer

    return asyncio.run(go())


@pytest.fixture
def three_photos():
    return [make_photo("a"), make_photo("b"), make_photo("c")]


class TestSuccessfulBatch:
    """Every worker bridges its photo into the next one."""

    def test_all_clips_assigned(self, three_photos):
        service = FakeJobService()
        collection, _, summary, _, synchronizer = run_workers(three_photos, service)

        assert summary.outcome is BatchOutcome.ALL_SUCCEEDED
        for photo in collection.all():
            assert photo.video_url == f"https://clips.example/{photo.id}.png.mp4"
            assert photo.generating_video is False
            assert photo.video_error is None
        assert synchronizer.sync_generation == 1

    def test_last_photo_wraps_to_first(self, three_photos):
        service = FakeJobService()
        run_workers(three_photos, service)

        pairs = {(r.start_frame.decode(), r.end_frame.decode()) for r in service.requests}
        assert pairs == {(URL_A, URL_B), (URL_B, URL_C), (URL_C, URL_A)}

    def test_job_parameters(self, three_photos):
        service = FakeJobService()
        run_workers(three_photos, service)

        request = service.requests[0]
        assert request.frames == 81
        assert request.resolution == "480p"
        assert (request.width, request.height) == (512, 768)


class TestRetry:
    """A failed attempt is retried exactly once."""

    def test_recovers_on_retry(self, three_photos):
        service = FakeJobService({URL_A: [GenerationError("temporary"), "ok"]})
        collection, workers, summary, _, _ = run_workers(three_photos, service)

        assert service.calls_for(URL_A) == 2
        assert collection.get("a").video_url is not None
        assert summary.success_count == 3
        assert [a.status for a in workers[0].attempts] == [AttemptStatus.ERROR, AttemptStatus.SUCCESS]

    def test_never_more_than_two_attempts(self, three_photos):
        service = FakeJobService({URL_A: [GenerationError("broken")]})
        collection, workers, summary, _, _ = run_workers(three_photos, service)

        assert service.calls_for(URL_A) == 2
        photo = collection.get("a")
        assert photo.video_error == "broken"
        assert photo.generating_video is False
        assert summary.outcome is BatchOutcome.PARTIAL
        assert summary.error_count == 1
        assert len(workers[0].attempts) == 2

    def test_image_load_failure_is_retried(self, three_photos):
        loader = FakeLoader(failing={URL_B})
        service = FakeJobService()
        collection, _, summary, _, _ = run_workers(three_photos, service, loader=loader)

        # a needs b as end frame, b needs it as start frame
        assert collection.get("a").video_error is not None
        assert collection.get("b").video_error is not None
        assert collection.get("c").video_url is not None
        assert loader.loaded.count(URL_B) == 4
        assert summary.success_count == 1
        assert summary.error_count == 2

    def test_single_attempt_policy(self, three_photos):
        service = FakeJobService({URL_A: [GenerationError("broken")]})
        run_workers(three_photos, service, max_attempts=1)
        assert service.calls_for(URL_A) == 1


class TestOutOfCredits:
    """Out-of-credits fails immediately and fires the hook."""

    def test_not_retried(self, three_photos):
        service = FakeJobService({URL_B: [OutOfCreditsError("Insufficient credits")]})
        collection, _, summary, credits, _ = run_workers(three_photos, service)

        assert service.calls_for(URL_B) == 1
        assert credits == [True]
        assert collection.get("b").video_error == "Insufficient credits"
        assert summary.error_count == 1


class TestLiveState:
    """Each attempt reads the photos as they are now."""

    def test_retry_uses_updated_next_image(self, three_photos):
        new_url = "https://photos.example/b-enhanced.png"
        holder = {}

        async def sleep_and_enhance(seconds):
            holder["collection"].update("b", images=(new_url,))

        service = FakeJobService({URL_A: [GenerationError("temporary"), "ok"]})
        run_workers(
            three_photos,
            service,
            sleep=sleep_and_enhance,
            on_collection=lambda c: holder.update(collection=c),
        )

        ends = [r.end_frame.decode() for r in service.requests if r.start_frame == URL_A.encode()]
        assert ends == [URL_B, new_url]

    def test_retry_skipped_when_next_photo_removed(self, three_photos):
        holder = {}

        async def sleep_and_remove(seconds):
            holder["collection"].remove("b")

        service = FakeJobService({URL_A: [GenerationError("temporary"), "ok"]})
        collection, _, summary, _, _ = run_workers(
            three_photos,
            service,
            sleep=sleep_and_remove,
            on_collection=lambda c: holder.update(collection=c),
        )

        assert service.calls_for(URL_A) == 1
        assert collection.get("a").generating_video is False
        assert summary.skipped_count >= 1
        assert summary.resolved == summary.total

    def test_photo_removed_mid_job_does_not_resurrect(self, three_photos):
        holder = {}
        service = FakeJobService()
        service.hooks[URL_C] = lambda: holder["collection"].remove("c")

        collection, _, summary, _, _ = run_workers(
            three_photos,
            service,
            on_collection=lambda c: holder.update(collection=c),
        )

        assert collection.get("c") is None
        assert "c" not in collection
        assert summary.resolved == 3

    def test_progress_updates_status_text(self, three_photos):
        seen = []
        service = FakeJobService()
        run_workers(
            three_photos,
            service,
            on_collection=lambda c: c.subscribe(lambda photo: seen.append(photo.status_text)),
        )
        assert "50%" in seen


class TestUnexpectedFailure:
    """A crash inside an attempt still resolves the worker."""

    def test_crash_counts_as_error(self, three_photos):
        service = FakeJobService({URL_A: [RuntimeError("bug")]})
        collection, _, summary, _, _ = run_workers(three_photos, service)

        assert summary.error_count == 1
        assert collection.get("a").video_error == "bug"
        assert collection.get("a").generating_video is False


class TestSkipReason:
    """Skip rules evaluated against the live photos."""

    def state(self, attempt_number=0, current=None, nxt=None):
        return AttemptState(
            attempt_number=attempt_number,
            current_id="a",
            next_id="b",
            current=current,
            next=nxt,
        )

    def test_missing_current(self):
        assert skip_reason(self.state(nxt=make_photo("b"))) == "photo removed"

    def test_loading_current(self):
        reason = skip_reason(self.state(current=make_photo("a", loading=True), nxt=make_photo("b")))
        assert reason == "photo is still loading"

    def test_generating_video_only_blocks_first_attempt(self):
        current = make_photo("a", generating_video=True)
        assert skip_reason(self.state(0, current, make_photo("b"))) is not None
        assert skip_reason(self.state(1, current, make_photo("b"))) is None

    def test_missing_next(self):
        assert skip_reason(self.state(current=make_photo("a"))) == "next photo removed"

    def test_missing_image(self):
        reason = skip_reason(self.state(current=make_photo("a"), nxt=make_photo("b", images=())))
        assert reason == "missing image URL"
