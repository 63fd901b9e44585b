"""Stitching and delivery module"""

from booth_transitions.stitching.concat import Concatenator, FfmpegConcatenator
from booth_transitions.stitching.coordinator import StitchCoordinator
from booth_transitions.stitching.delivery import DeliveryManager, FileDownloader, Platform, ShareSheet

__all__ = [
    "Concatenator",
    "FfmpegConcatenator",
    "StitchCoordinator",
    "DeliveryManager",
    "FileDownloader",
    "Platform",
    "ShareSheet",
]
