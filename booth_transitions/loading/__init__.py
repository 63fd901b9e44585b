"""Frame loading module"""

from booth_transitions.loading.image_loader import ImageBufferLoader
from booth_transitions.loading.strategies import (
    CanvasExportStrategy,
    FetchStrategy,
    LocalBlobStrategy,
    OpaqueProbeStrategy,
)

__all__ = [
    "ImageBufferLoader",
    "FetchStrategy",
    "LocalBlobStrategy",
    "CanvasExportStrategy",
    "OpaqueProbeStrategy",
]
