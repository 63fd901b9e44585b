"""
Completion aggregation for a transition batch.

Workers report terminal outcomes in any order. The aggregator is a small
state machine, PENDING -> RESOLVING -> RESOLVED, and the move into
RESOLVED happens exactly once no matter how callbacks interleave.
"""

import asyncio
from enum import Enum
from typing import Callable, List, Optional, Sequence

import structlog

from booth_transitions.generation.playback import PlaybackSynchronizer
from booth_transitions.models import AppliedMusic, AudioSelection, BatchOutcome, BatchSummary
from booth_transitions.notifications import Notifier

logger = structlog.get_logger()

SelectionProvider = Callable[[], Optional[AudioSelection]]
MusicApplier = Callable[[AudioSelection], AppliedMusic]
FinalizeListener = Callable[[BatchSummary, Optional[AppliedMusic]], None]


class AggregatorState(Enum):
    PENDING = "PENDING"
    RESOLVING = "RESOLVING"
    RESOLVED = "RESOLVED"


class IllegalTransition(RuntimeError):
    """Raised when the aggregator is asked to leave a terminal state."""


class CompletionAggregator:
    """Counts terminal worker outcomes and finalizes the batch once."""

    def __init__(
        self,
        photo_ids: Sequence[str],
        synchronizer: PlaybackSynchronizer,
        notifier: Notifier,
        selection_provider: SelectionProvider = lambda: None,
        apply_music: Optional[MusicApplier] = None,
    ):
        self.photo_ids = list(photo_ids)
        self.total = len(self.photo_ids)
        self.synchronizer = synchronizer
        self.notifier = notifier
        self.selection_provider = selection_provider
        self.apply_music = apply_music

        self.state = AggregatorState.PENDING
        self.success_count = 0
        self.error_count = 0
        self.skipped_count = 0
        self.finalize_count = 0
        self.summary: Optional[BatchSummary] = None
        self.applied_music: Optional[AppliedMusic] = None

        self._listeners: List[FinalizeListener] = []
        self._resolved = asyncio.Event()

    @property
    def resolved(self) -> int:
        return self.success_count + self.error_count + self.skipped_count

    @property
    def is_resolved(self) -> bool:
        return self.state is AggregatorState.RESOLVED

    def on_finalize(self, listener: FinalizeListener) -> None:
        self._listeners.append(listener)

    def record_success(self, photo_id: str) -> None:
        if not self._accepting(photo_id):
            return
        self.success_count += 1
        logger.info("Transition succeeded", photo_id=photo_id, resolved=self.resolved, total=self.total)
        self._check_complete()

    def record_error(self, photo_id: str, error: Optional[BaseException] = None) -> None:
        if not self._accepting(photo_id):
            return
        self.error_count += 1
        logger.warning(
            "Transition failed",
            photo_id=photo_id,
            error=str(error) if error else None,
            resolved=self.resolved,
            total=self.total,
        )
        self._check_complete()

    def record_skipped(self, photo_id: str) -> None:
        if not self._accepting(photo_id):
            return
        self.skipped_count += 1
        logger.info("Transition skipped", photo_id=photo_id, resolved=self.resolved, total=self.total)
        self._check_complete()

    async def wait(self) -> BatchSummary:
        """Wait until the batch is resolved and return its summary."""
        if self.total == 0:
            self._check_complete()
        await self._resolved.wait()
        return self.summary

    def _accepting(self, photo_id: str) -> bool:
        if self.state is not AggregatorState.PENDING:
            logger.warning("Outcome reported after batch resolved", photo_id=photo_id)
            return False
        return True

    def _check_complete(self) -> None:
        if self.resolved < self.total:
            return
        try:
            self._transition(AggregatorState.RESOLVING)
        except IllegalTransition:
            return
        self._finalize()

    def _transition(self, target: AggregatorState) -> None:
        legal = {
            AggregatorState.PENDING: AggregatorState.RESOLVING,
            AggregatorState.RESOLVING: AggregatorState.RESOLVED,
        }
        if legal.get(self.state) is not target:
            raise IllegalTransition(f"{self.state.value} -> {target.value}")
        self.state = target

    def _finalize(self) -> None:
        self.finalize_count += 1
        summary = BatchSummary(
            total=self.total,
            success_count=self.success_count,
            error_count=self.error_count,
            skipped_count=self.skipped_count,
        )

        # Snapshot the selection now, not when the batch started
        selection = self.selection_provider()

        self.synchronizer.reset(self.photo_ids)
        if summary.success_count > 0 and selection is not None and self.apply_music is not None:
            self.applied_music = self.apply_music(selection)

        self._notify_summary(summary)
        self.summary = summary
        self._transition(AggregatorState.RESOLVED)

        logger.info(
            "Transition batch resolved",
            outcome=summary.outcome.value,
            success=summary.success_count,
            errors=summary.error_count,
            skipped=summary.skipped_count,
            total=summary.total,
            music=selection.source_id if selection else None,
        )
        for listener in list(self._listeners):
            listener(summary, self.applied_music)
        self._resolved.set()

    def _notify_summary(self, summary: BatchSummary) -> None:
        outcome = summary.outcome
        if outcome is BatchOutcome.ALL_SUCCEEDED:
            self.notifier.success(
                f"All {summary.total} transition videos are ready"
            )
        elif outcome is BatchOutcome.PARTIAL:
            self.notifier.warning(
                f"{summary.success_count} of {summary.total} transition videos are ready; "
                f"{summary.total - summary.success_count} could not be generated"
            )
        else:
            self.notifier.error("Transition video generation failed. Please try again.")
