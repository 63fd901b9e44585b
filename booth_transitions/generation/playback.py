"""
Playback synchronisation for looping transition clips.

When a batch resolves every clip is told to restart from zero at the same
moment, so the gallery plays like a stitched preview.
"""

from typing import Callable, Dict, Iterable, List

import structlog

logger = structlog.get_logger()

SyncListener = Callable[[int], None]


class PlaybackSynchronizer:
    """Tracks the playing clip per photo and a monotonic sync generation."""

    def __init__(self):
        self.play_index: Dict[str, int] = {}
        self.sync_generation = 0
        self._listeners: List[SyncListener] = []

    def mark_playing(self, photo_id: str, index: int = 0) -> None:
        self.play_index[photo_id] = index

    def current_index(self, photo_id: str) -> int:
        return self.play_index.get(photo_id, 0)

    def reset(self, photo_ids: Iterable[str]) -> int:
        """
        Restart every listed photo at clip 0 and bump the sync generation.

        Returns:
            The new sync generation
        """
        photo_ids = list(photo_ids)
        for photo_id in photo_ids:
            self.play_index[photo_id] = 0
        self.sync_generation += 1

        logger.info(
            "Playback synchronised",
            photos=len(photo_ids),
            sync_generation=self.sync_generation,
        )
        for listener in list(self._listeners):
            listener(self.sync_generation)
        return self.sync_generation

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        self.play_index.clear()


class ClipPlayhead:
    """
    Local play position of one looping clip. Forces itself back to zero the
    first time it sees a sync generation it has not seen before.
    """

    def __init__(self, synchronizer: PlaybackSynchronizer, photo_id: str):
        self.synchronizer = synchronizer
        self.photo_id = photo_id
        self.position = 0.0
        self._seen_generation = synchronizer.sync_generation

    def observe(self) -> bool:
        """Check the sync generation; returns True if the playhead was reset."""
        generation = self.synchronizer.sync_generation
        if generation != self._seen_generation:
            self._seen_generation = generation
            self.position = 0.0
            return True
        return False

    def advance(self, seconds: float, clip_duration: float) -> float:
        if not self.observe():
            self.position = (self.position + seconds) % clip_duration if clip_duration > 0 else 0.0
        return self.position
