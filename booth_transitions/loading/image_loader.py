"""
Image buffer loader used to read the start and end frames of a transition.
"""

from typing import Optional, Sequence

import httpx
import structlog

from booth_transitions.blobs import BlobStore
from booth_transitions.errors import ImageLoadError
from booth_transitions.loading.strategies import (
    CanvasExportStrategy,
    FetchStrategy,
    LocalBlobStrategy,
    OpaqueProbeStrategy,
)
from booth_transitions.models import LoadedImage
from booth_transitions.result import Ok

logger = structlog.get_logger()


class ImageBufferLoader:
    """
    Load a displayed image as bytes by trying strategies in order.

    Nothing is cached: every call reflects the URL as it is right now.
    """

    def __init__(self, strategies: Sequence[FetchStrategy]):
        self.strategies = list(strategies)

    @classmethod
    def default(
        cls,
        blob_store: BlobStore,
        client: httpx.AsyncClient,
        app_origin: str,
        export_format: str = "PNG",
    ) -> "ImageBufferLoader":
        return cls([
            LocalBlobStrategy(blob_store),
            CanvasExportStrategy(client, blob_store, app_origin, export_format),
            OpaqueProbeStrategy(client),
        ])

    async def load(self, url: str) -> LoadedImage:
        """
        Load an image URL into bytes.

        Args:
            url: blob:, data: or http(s) URL of the displayed image

        Returns:
            LoadedImage with bytes and dimensions

        Raises:
            ImageLoadError: when every applicable strategy failed
        """
        if not url:
            raise ImageLoadError(url or "", "image URL is required")

        last_error: Optional[ImageLoadError] = None
        for strategy in self.strategies:
            if not strategy.applies_to(url, last_error):
                continue

            result = await strategy.fetch(url)
            if isinstance(result, Ok):
                logger.debug(
                    "Image loaded",
                    strategy=strategy.name,
                    width=result.value.width,
                    height=result.value.height,
                    size=len(result.value.data),
                )
                return result.value

            last_error = result.error
            logger.debug(
                "Image strategy failed",
                strategy=strategy.name,
                reason=last_error.reason,
                tainted=last_error.tainted,
            )

        if last_error is None:
            last_error = ImageLoadError(url, "no strategy can load this URL")
        logger.warning("Image load failed", reason=last_error.reason)
        raise last_error
