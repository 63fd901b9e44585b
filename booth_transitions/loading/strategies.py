"""
Fetch strategies for turning a displayed image URL into frame bytes.

Each strategy returns Ok(LoadedImage) or Err(ImageLoadError) and never
raises for expected failures, so the loader can try them in order.
"""

import base64
import binascii
import io
from typing import Optional, Tuple
from urllib.parse import urlsplit

import httpx
import structlog
from PIL import Image, ImageOps, UnidentifiedImageError

from booth_transitions.blobs import BlobStore, is_blob_url
from booth_transitions.errors import ImageLoadError
from booth_transitions.models import LoadedImage
from booth_transitions.result import Err, Ok, Result

logger = structlog.get_logger()

FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def is_local_url(url: str) -> bool:
    return is_blob_url(url) or is_data_url(url)


def is_http_url(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}".lower()


def is_cross_origin(url: str, app_origin: str) -> bool:
    return origin_of(url) != app_origin.rstrip("/").lower()


def decode_data_url(url: str) -> Tuple[bytes, str]:
    """
    Decode a base64 data URL.

    Args:
        url: data:<mime>;base64,<payload>

    Returns:
        Tuple of (bytes, mime type)
    """
    header, _, payload = url.partition(",")
    mime_type = header[len("data:"):].split(";")[0] or "image/jpeg"
    if ";base64" not in header:
        raise ImageLoadError(url, "only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True), mime_type
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError(url, f"invalid base64 payload: {e}")


def read_local(url: str, blob_store: BlobStore) -> Tuple[bytes, str]:
    """Read bytes behind a blob: or data: URL."""
    if is_data_url(url):
        return decode_data_url(url)
    entry = blob_store.read(url)
    if entry is None:
        raise ImageLoadError(url, "blob URL has been revoked or never existed")
    return entry


def export_image(data: bytes, url: str, export_format: str) -> LoadedImage:
    """
    Decode image bytes and re-encode them, the way drawing into a canvas and
    exporting it would.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            if export_format == "JPEG" and image.mode != "RGB":
                image = image.convert("RGB")
            elif image.mode not in ("RGB", "RGBA", "L"):
                image = image.convert("RGBA")
            buffer = io.BytesIO()
            image.save(buffer, export_format)
            width, height = image.size
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(url, f"could not decode image: {e}")

    return LoadedImage(
        data=buffer.getvalue(),
        width=width,
        height=height,
        mime_type=FORMAT_MIME_TYPES.get(export_format, "application/octet-stream"),
    )


class FetchStrategy:
    """Base class for loader strategies."""

    name = "strategy"

    def applies_to(self, url: str, previous_error: Optional[ImageLoadError]) -> bool:
        raise NotImplementedError

    async def fetch(self, url: str) -> Result[LoadedImage, ImageLoadError]:
        raise NotImplementedError


class LocalBlobStrategy(FetchStrategy):
    """Read blob:/data: URLs directly. Cheapest path, no cross-origin checks."""

    name = "local-blob"

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    def applies_to(self, url, previous_error):
        return previous_error is None and is_local_url(url)

    async def fetch(self, url):
        try:
            data, mime_type = read_local(url, self.blob_store)
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
        except ImageLoadError as e:
            return Err(e)
        except (UnidentifiedImageError, OSError) as e:
            return Err(ImageLoadError(url, f"could not read image header: {e}"))
        return Ok(LoadedImage(data=data, width=width, height=height, mime_type=mime_type))


class CanvasExportStrategy(FetchStrategy):
    """
    Fetch in cross-origin mode, decode and re-export.

    Remote images from another origin are only exportable when the response
    grants our origin through Access-Control-Allow-Origin; otherwise the
    "canvas" is tainted and the result is an Err with tainted=True.
    """

    name = "canvas-export"

    def __init__(
        self,
        client: httpx.AsyncClient,
        blob_store: BlobStore,
        app_origin: str,
        export_format: str = "PNG",
    ):
        self.client = client
        self.blob_store = blob_store
        self.app_origin = app_origin.rstrip("/")
        self.export_format = export_format.upper()

    def applies_to(self, url, previous_error):
        if previous_error is not None and previous_error.tainted:
            return False
        return is_local_url(url) or is_http_url(url)

    async def fetch(self, url):
        try:
            if is_local_url(url):
                data, _ = read_local(url, self.blob_store)
            else:
                data = await self._fetch_remote(url)
            return Ok(export_image(data, url, self.export_format))
        except ImageLoadError as e:
            return Err(e)

    async def _fetch_remote(self, url: str) -> bytes:
        try:
            response = await self.client.get(url, headers={"Origin": self.app_origin})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageLoadError(url, f"network error: {e}")

        if is_cross_origin(url, self.app_origin):
            allowed = response.headers.get("access-control-allow-origin")
            if allowed not in ("*", self.app_origin):
                raise ImageLoadError(
                    url, "canvas tainted by cross-origin data", tainted=True
                )
        return response.content


class OpaqueProbeStrategy(FetchStrategy):
    """
    Last resort after a tainted export: load the image without a request
    mode. The image may display, but its bytes cannot be exported, so this
    strategy always ends in a descriptive terminal error instead of a hang.
    """

    name = "opaque-probe"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def applies_to(self, url, previous_error):
        return previous_error is not None and previous_error.tainted and is_http_url(url)

    async def fetch(self, url):
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            return Err(ImageLoadError(url, f"network error without cross-origin mode: {e}"))

        try:
            with Image.open(io.BytesIO(response.content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError) as e:
            return Err(ImageLoadError(url, f"could not decode image: {e}"))

        return Err(
            ImageLoadError(
                url,
                "image is displayable but export is blocked by cross-origin policy",
                tainted=True,
            )
        )
