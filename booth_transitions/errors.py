"""
Error taxonomy for the transition pipeline.

ImageLoadError and GenerationError never leave a generation worker: they
either trigger the single retry or become a terminal per-photo failure.
AudioResolutionError degrades stitching to a silent video. StitchError is
surfaced to the user, who may stitch again without regenerating clips.
"""

from typing import Optional


class TransitionPipelineError(Exception):
    """Base class for every pipeline error."""


class ImageLoadError(TransitionPipelineError):
    """A frame could not be turned into bytes (network, decode or cross-origin taint)."""

    def __init__(self, url: str, reason: str, tainted: bool = False):
        self.url = url
        self.reason = reason
        self.tainted = tainted
        super().__init__(f"Failed to load image {_short_url(url)}: {reason}")


class GenerationError(TransitionPipelineError):
    """The remote job service failed to produce a transition clip."""

    retryable = True

    def __init__(self, message: str, photo_id: Optional[str] = None):
        self.photo_id = photo_id
        self.message = message
        super().__init__(message)


class OutOfCreditsError(GenerationError):
    """The account has no credits left. Never retried."""

    retryable = False


class AudioResolutionError(TransitionPipelineError):
    """A preset or uploaded track could not be fetched or transcoded."""

    def __init__(self, source: str, message: str, details: Optional[str] = None):
        self.source = source
        self.message = message
        self.details = details
        text = f"{message} ({source})"
        if details:
            text = f"{text}: {details}"
        super().__init__(text)


class StitchError(TransitionPipelineError):
    """The concatenation primitive failed."""


class ShareCancelledError(TransitionPipelineError):
    """The user dismissed the native share sheet."""


def is_out_of_credits_message(message: str) -> bool:
    """
    Classify a job service error message as an out-of-credits signal.

    Args:
        message: Error text reported by the generation service

    Returns:
        True when the message reports insufficient funds or credits
    """
    text = message.lower()
    return "insufficient funds" in text or ("insufficient" in text and "credits" in text)


def _short_url(url: str) -> str:
    if url.startswith("data:"):
        return url[:32] + "..."
    return url
