"""
Start-offset selection over a music track.

The selection window is [offset, offset + total_audible) where
total_audible is the length of the stitched video. Every interaction ends
with the offset snapped and clamped to [0, max(0, duration - total_audible)].
"""

from typing import Optional

import structlog

logger = structlog.get_logger()

SNAP_STEP_SECONDS = 0.25


def clamp_offset(offset: float, audio_duration: float, total_audible: float) -> float:
    max_offset = max(0.0, audio_duration - total_audible)
    return max(0.0, min(offset, max_offset))


class OffsetSelector:
    """Click-to-seek and drag-to-move handling for the selection window."""

    def __init__(
        self,
        audio_duration: float = 0.0,
        total_audible: float = 0.0,
        snap_step: float = SNAP_STEP_SECONDS,
    ):
        self.audio_duration = audio_duration
        self.total_audible = total_audible
        self.snap_step = snap_step
        self.offset = 0.0
        self._drag_origin: Optional[float] = None
        self._drag_start_offset = 0.0

    @property
    def max_offset(self) -> float:
        return max(0.0, self.audio_duration - self.total_audible)

    @property
    def window_end(self) -> float:
        return self.offset + self.total_audible

    @property
    def is_dragging(self) -> bool:
        return self._drag_origin is not None

    def contains(self, position: float) -> bool:
        return self.offset <= position < self.window_end

    def position_for_fraction(self, fraction: float) -> float:
        """Map an x-fraction of the waveform (0..1) to seconds."""
        return max(0.0, min(fraction, 1.0)) * self.audio_duration

    def set_offset(self, offset: float) -> float:
        self.offset = self._normalize(offset)
        return self.offset

    def configure(self, audio_duration: Optional[float] = None, total_audible: Optional[float] = None) -> float:
        """Change the track length or audible length and re-clamp."""
        if audio_duration is not None:
            self.audio_duration = audio_duration
        if total_audible is not None:
            self.total_audible = total_audible
        return self.set_offset(self.offset)

    def click(self, position: float) -> float:
        """
        Press at a position on the waveform.

        Inside the window this starts a drag; outside it moves the window to
        start at the press position.
        """
        if self.audio_duration <= 0:
            return self.offset
        if self.contains(position):
            self._drag_origin = position
            self._drag_start_offset = self.offset
            return self.offset
        self.set_offset(position)
        logger.debug("Offset jumped", position=position, offset=self.offset)
        return self.offset

    def drag_to(self, position: float) -> float:
        if self._drag_origin is None:
            return self.offset
        return self.set_offset(self._drag_start_offset + (position - self._drag_origin))

    def end_drag(self) -> float:
        self._drag_origin = None
        return self.offset

    def preview_position(self, elapsed: float) -> float:
        """Preview playhead after `elapsed` seconds, looping inside the window."""
        if self.total_audible <= 0:
            return self.offset
        return self.offset + (elapsed % self.total_audible)

    def _normalize(self, offset: float) -> float:
        clamped = clamp_offset(offset, self.audio_duration, self.total_audible)
        if self.snap_step > 0:
            clamped = round(clamped / self.snap_step) * self.snap_step
        # Snapping can overshoot a bound that is not a multiple of the step
        return clamp_offset(clamped, self.audio_duration, self.total_audible)
