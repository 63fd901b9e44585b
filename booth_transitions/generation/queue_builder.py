"""
Transition queue construction.

The queue is built once per batch from the photos that can be bridged and
is treated as circular: position i morphs into position (i + 1) mod N, so a
single photo morphs into itself.
"""

from typing import Iterable

import structlog

from booth_transitions.models import PhotoItem, TransitionQueue

logger = structlog.get_logger()


def is_eligible(photo: PhotoItem) -> bool:
    """A photo can join a batch when it is visible, settled and has an image."""
    return (
        not photo.hidden
        and not photo.loading
        and not photo.generating
        and not photo.generating_video
        and not photo.error
        and bool(photo.images)
        and not photo.is_reference
    )


def pair_index(index: int, length: int) -> int:
    """Queue position that `index` transitions into."""
    if length <= 0:
        raise ValueError("Cannot pair inside an empty queue")
    return (index + 1) % length


def build_transition_queue(photos: Iterable[PhotoItem]) -> TransitionQueue:
    """
    Build the circular transition queue from the current photo set.

    Args:
        photos: Photos in gallery order

    Returns:
        TransitionQueue of eligible photo ids, gallery order preserved
    """
    photos = list(photos)
    eligible = tuple(photo.id for photo in photos if is_eligible(photo))

    logger.info(
        "Built transition queue",
        eligible=len(eligible),
        excluded=len(photos) - len(eligible),
    )
    return TransitionQueue(photo_ids=eligible)
