"""
Data model for the transition pipeline
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class PhotoItem:
    """One accepted photo in the booth gallery."""
    id: str
    images: Tuple[str, ...] = ()
    video_url: Optional[str] = None
    generating_video: bool = False
    video_error: Optional[str] = None
    loading: bool = False
    generating: bool = False
    error: Optional[str] = None
    hidden: bool = False
    is_reference: bool = False  # reference-only photos never get a clip
    status_text: str = ""

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None


@dataclass(frozen=True)
class TransitionQueue:
    """Circular, batch-scoped order of photo ids. Index i bridges to (i + 1) mod N."""
    photo_ids: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.photo_ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.photo_ids)

    def __getitem__(self, index: int) -> str:
        return self.photo_ids[index]

    def next_index(self, index: int) -> int:
        return (index + 1) % len(self.photo_ids)

    def pair(self, index: int) -> Tuple[str, str]:
        """Return (current, next) photo ids for a queue position."""
        return self.photo_ids[index], self.photo_ids[self.next_index(index)]


class AttemptStatus(Enum):
    """Lifecycle of one generation attempt."""
    PENDING = "PENDING"
    IN_FLIGHT = "IN_FLIGHT"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass
class GenerationAttempt:
    """Ephemeral record of one (photo, attempt number) pair."""
    photo_id: str
    attempt_number: int
    status: AttemptStatus = AttemptStatus.PENDING


@dataclass(frozen=True)
class LoadedImage:
    """Raw frame bytes plus their pixel size."""
    data: bytes
    width: int
    height: int
    mime_type: str = "image/png"


@dataclass(frozen=True)
class TransitionJobRequest:
    """Payload submitted to the generation service for one clip."""
    start_frame: bytes
    end_frame: bytes
    duration_seconds: float
    resolution: str
    fps: int
    frames: int
    positive_prompt: str
    negative_prompt: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class MusicPreset:
    """A hosted music track offered in the music picker."""
    id: str
    title: str
    source_url: str
    duration_seconds: Optional[float] = None
    category: str = "samples"

    @property
    def is_mp3(self) -> bool:
        return self.source_url.lower().split("?")[0].endswith(".mp3")


@dataclass(frozen=True)
class UploadedAudio:
    """A user-supplied track. After resolution the bytes are always M4A."""
    filename: str
    data: bytes = field(repr=False)
    mime_type: str = "audio/mp4"


AudioSource = Union[MusicPreset, UploadedAudio]


@dataclass(frozen=True)
class AudioSelection:
    """The music picked for a batch together with its start offset."""
    source: AudioSource
    start_offset_seconds: float
    audio_duration_seconds: float
    total_audible_seconds: float

    @property
    def max_offset(self) -> float:
        return max(0.0, self.audio_duration_seconds - self.total_audible_seconds)

    @property
    def source_id(self) -> str:
        if isinstance(self.source, MusicPreset):
            return self.source.id
        return self.source.filename


@dataclass(frozen=True)
class AppliedMusic:
    """Selection frozen when a batch resolved, with a playable URL."""
    selection: AudioSelection
    playable_url: str


@dataclass(frozen=True)
class AudioOptions:
    """Audio to mux into the stitched video."""
    data: bytes = field(repr=False)
    start_offset_seconds: float = 0.0


@dataclass(frozen=True)
class StitchRequest:
    """Ordered clips plus optional music for the concatenation primitive."""
    clip_urls: Tuple[str, ...]
    audio: Optional[AudioOptions] = None
    return_blob: bool = False


@dataclass(frozen=True)
class MediaBlob:
    """In-memory media file."""
    data: bytes = field(repr=False)
    mime_type: str = "video/mp4"
    filename: str = "transition.mp4"

    @property
    def size(self) -> int:
        return len(self.data)


class BatchOutcome(Enum):
    """Summary category for a resolved batch."""
    ALL_SUCCEEDED = "ALL_SUCCEEDED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


@dataclass(frozen=True)
class BatchSummary:
    """Counts reported once a batch is fully resolved."""
    total: int
    success_count: int
    error_count: int
    skipped_count: int = 0

    @property
    def resolved(self) -> int:
        return self.success_count + self.error_count + self.skipped_count

    @property
    def outcome(self) -> BatchOutcome:
        if self.success_count == 0:
            return BatchOutcome.FAILED
        if self.success_count == self.total:
            return BatchOutcome.ALL_SUCCEEDED
        return BatchOutcome.PARTIAL

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "skippedCount": self.skipped_count,
            "outcome": self.outcome.value,
        }
