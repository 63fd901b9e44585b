"""
Shared photo collection.

The collection is the only mutable state shared between generation workers.
Every change goes through update(), which swaps in a new frozen PhotoItem so
the last writer wins and readers never see a half-applied patch.
"""

import dataclasses
from typing import Callable, Dict, Iterable, List, Optional

import structlog

from booth_transitions.models import PhotoItem

logger = structlog.get_logger()

ChangeListener = Callable[[PhotoItem], None]


class PhotoCollection:
    """Ordered, id-addressable set of photos."""

    def __init__(self, photos: Iterable[PhotoItem] = ()):
        self._order: List[str] = []
        self._items: Dict[str, PhotoItem] = {}
        self._listeners: List[ChangeListener] = []
        for photo in photos:
            self.add(photo)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, photo_id: str) -> bool:
        return photo_id in self._items

    def get(self, photo_id: str) -> Optional[PhotoItem]:
        return self._items.get(photo_id)

    def all(self) -> List[PhotoItem]:
        return [self._items[photo_id] for photo_id in self._order]

    def add(self, photo: PhotoItem) -> None:
        if photo.id in self._items:
            raise ValueError(f"Duplicate photo id: {photo.id}")
        self._order.append(photo.id)
        self._items[photo.id] = photo
        self._notify(photo)

    def remove(self, photo_id: str) -> None:
        if self._items.pop(photo_id, None) is not None:
            self._order.remove(photo_id)

    def update(self, photo_id: str, **patch) -> Optional[PhotoItem]:
        """
        Apply a patch to one photo.

        Args:
            photo_id: Photo to patch
            **patch: PhotoItem fields to replace

        Returns:
            The new PhotoItem, or None if the photo no longer exists
        """
        current = self._items.get(photo_id)
        if current is None:
            logger.debug("Ignoring update for missing photo", photo_id=photo_id)
            return None
        if "images" in patch and patch["images"] is not None:
            patch["images"] = tuple(patch["images"])
        updated = dataclasses.replace(current, **patch)
        self._items[photo_id] = updated
        self._notify(updated)
        return updated

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, photo: PhotoItem) -> None:
        for listener in list(self._listeners):
            listener(photo)
