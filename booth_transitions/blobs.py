"""
Object-URL registry.

Generated media, uploaded music and stitched videos are addressed by
`blob:` URLs while they live in memory. Whoever creates a URL owns it and
must revoke it; a revoked URL no longer resolves.
"""

import asyncio
import uuid
from typing import Dict, Optional, Tuple

import structlog

logger = structlog.get_logger()

BLOB_SCHEME = "blob:"


def is_blob_url(url: str) -> bool:
    return url.startswith(BLOB_SCHEME)


class BlobStore:
    """In-memory store of bytes addressed by blob URLs."""

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str]] = {}

    @property
    def live_count(self) -> int:
        return len(self._blobs)

    def create(self, data: bytes, mime_type: str = "application/octet-stream") -> str:
        url = f"{BLOB_SCHEME}{uuid.uuid4()}"
        self._blobs[url] = (bytes(data), mime_type)
        logger.debug("Created blob URL", url=url, size=len(data), mime_type=mime_type)
        return url

    def read(self, url: str) -> Optional[Tuple[bytes, str]]:
        """Return (bytes, mime type) for a live URL, or None."""
        return self._blobs.get(url)

    def revoke(self, url: Optional[str]) -> None:
        if url and self._blobs.pop(url, None) is not None:
            logger.debug("Revoked blob URL", url=url)

    def revoke_later(self, url: str, delay_seconds: float) -> None:
        """Revoke a URL after a short delay on the running loop, or now if there is none."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.revoke(url)
            return
        loop.call_later(delay_seconds, self.revoke, url)

    def revoke_all(self) -> None:
        count = len(self._blobs)
        self._blobs.clear()
        if count:
            logger.info("Revoked all blob URLs", count=count)
