"""
Delivery of a stitched video: file download or native share sheet.

On share-capable mobile platforms the share call has to come from a user
gesture, so a finished video is parked as the pending share and the next
tap performs the share. Everything else downloads immediately.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import structlog

from booth_transitions.blobs import BlobStore
from booth_transitions.errors import ShareCancelledError
from booth_transitions.models import MediaBlob

logger = structlog.get_logger()

DOWNLOADED = "downloaded"
SHARE_PENDING = "share-pending"
SHARED = "shared"
CANCELLED = "cancelled"
NOTHING_PENDING = "nothing-pending"


@dataclass(frozen=True)
class Platform:
    is_mobile: bool = False
    supports_share: bool = False

    @property
    def uses_share_sheet(self) -> bool:
        return self.is_mobile and self.supports_share


class ShareSheet(Protocol):
    async def share(self, media: MediaBlob, title: str) -> None:
        """Open the share sheet. Raises ShareCancelledError if the user dismisses it."""
        ...


class FileDownloader:
    """Writes a blob to the download directory through a short-lived object URL."""

    def __init__(self, blob_store: BlobStore, download_dir: str, revoke_delay_seconds: float = 1.0):
        self.blob_store = blob_store
        self.download_dir = Path(download_dir)
        self.revoke_delay_seconds = revoke_delay_seconds

    def download(self, media: MediaBlob) -> Path:
        url = self.blob_store.create(media.data, media.mime_type)
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            target = self.download_dir / media.filename
            data, _ = self.blob_store.read(url)
            target.write_bytes(data)
        finally:
            self.blob_store.revoke_later(url, self.revoke_delay_seconds)
        logger.info("Video downloaded", path=str(target), size=media.size)
        return target


class DeliveryManager:
    """Chooses download or share and tracks the pending-download warning."""

    def __init__(
        self,
        platform: Platform,
        downloader: FileDownloader,
        share_sheet: Optional[ShareSheet] = None,
        share_title: str = "My photobooth transition video",
    ):
        self.platform = platform
        self.downloader = downloader
        self.share_sheet = share_sheet
        self.share_title = share_title
        self.pending_share: Optional[MediaBlob] = None
        self.pending_download_warning = False
        self.last_download_path: Optional[Path] = None

    def mark_new_content(self) -> None:
        """Flag that there is a new result the user has not saved yet."""
        self.pending_download_warning = True

    def reset(self) -> None:
        self.pending_share = None
        self.pending_download_warning = False

    def deliver(self, media: MediaBlob) -> str:
        if self.platform.uses_share_sheet and self.share_sheet is not None:
            self.pending_share = media
            logger.info("Share pending user gesture", filename=media.filename)
            return SHARE_PENDING
        return self._download(media)

    async def share_pending(self) -> str:
        """User-gesture handler: share the parked video."""
        media = self.pending_share
        if media is None:
            return NOTHING_PENDING

        self.pending_share = None
        try:
            await self.share_sheet.share(media, self.share_title)
        except ShareCancelledError:
            logger.info("Share cancelled", filename=media.filename)
            self.pending_download_warning = False
            return CANCELLED
        except Exception as e:
            logger.warning("Share failed, falling back to download", error=str(e))
            return self._download(media)

        self.pending_download_warning = False
        logger.info("Video shared", filename=media.filename)
        return SHARED

    def _download(self, media: MediaBlob) -> str:
        self.last_download_path = self.downloader.download(media)
        self.pending_download_warning = False
        return DOWNLOADED
