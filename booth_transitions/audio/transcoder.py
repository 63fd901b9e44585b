"""
Client for the server-side MP3 -> M4A transcoding endpoint
"""

from typing import Protocol

import httpx
import structlog

from booth_transitions.errors import AudioResolutionError

logger = structlog.get_logger()

TRANSCODE_PATH = "/api/audio/mp3-to-m4a"
MP3_MIME_TYPES = ("audio/mpeg", "audio/mp3")
M4A_MIME_TYPES = ("audio/mp4", "audio/x-m4a", "audio/m4a")


def is_mp3(filename: str, mime_type: str = "") -> bool:
    return filename.lower().endswith(".mp3") or mime_type.lower() in MP3_MIME_TYPES


def is_m4a(filename: str, mime_type: str = "") -> bool:
    return filename.lower().endswith(".m4a") or mime_type.lower() in M4A_MIME_TYPES


class Transcoder(Protocol):
    async def to_m4a(self, filename: str, data: bytes) -> bytes: ...


class HttpTranscoder:
    """POSTs audio as multipart field `audio` and returns M4A bytes."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def to_m4a(self, filename: str, data: bytes) -> bytes:
        """
        Transcode an MP3 track to M4A.

        Args:
            filename: Original file name (extension decides the input format)
            data: MP3 bytes

        Returns:
            M4A bytes

        Raises:
            AudioResolutionError: on network failure or a JSON error reply
        """
        logger.info("Transcoding audio", filename=filename, size=len(data))
        try:
            response = await self.client.post(
                f"{self.base_url}{TRANSCODE_PATH}",
                files={"audio": (filename, data, "audio/mpeg")},
            )
        except httpx.HTTPError as e:
            raise AudioResolutionError(filename, "Transcoding request failed", str(e))

        if response.is_error:
            error, details = "Failed to transcode audio", None
            try:
                payload = response.json()
                error = payload.get("error", error)
                details = payload.get("details")
            except ValueError:
                details = response.text[:200] or None
            raise AudioResolutionError(filename, error, details)

        logger.info(
            "Audio transcoded",
            filename=filename,
            transcoded=response.headers.get("x-transcoded"),
            size=len(response.content),
        )
        return response.content
