"""Transition generation module"""

from booth_transitions.generation.aggregator import AggregatorState, CompletionAggregator
from booth_transitions.generation.job_service import HttpJobService, JobService, submit_with_callbacks
from booth_transitions.generation.orchestrator import TransitionPipeline
from booth_transitions.generation.playback import ClipPlayhead, PlaybackSynchronizer
from booth_transitions.generation.queue_builder import build_transition_queue, is_eligible, pair_index
from booth_transitions.generation.retry import RetryPolicy
from booth_transitions.generation.scheduler import dispatch_all
from booth_transitions.generation.worker import GenerationAttemptWorker, TransitionJobSettings

__all__ = [
    "AggregatorState",
    "CompletionAggregator",
    "HttpJobService",
    "JobService",
    "submit_with_callbacks",
    "TransitionPipeline",
    "ClipPlayhead",
    "PlaybackSynchronizer",
    "build_transition_queue",
    "is_eligible",
    "pair_index",
    "RetryPolicy",
    "dispatch_all",
    "GenerationAttemptWorker",
    "TransitionJobSettings",
]
