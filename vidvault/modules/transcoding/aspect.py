"""Aspect ratio classification.

Videos are partitioned in storage by a coarse geometry category. The
tolerance accepts near-16:9 and near-9:16 content, not only exact ratios.
"""

from enum import Enum

from vidvault.modules.transcoding.ffmpeg import InvalidDimensionsError, MediaToolkit

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
RATIO_TOLERANCE = 0.2


class AspectRatio(str, Enum):
    """Geometry category of a video."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"

    @property
    def prefix(self) -> str:
        """Storage key prefix for this category."""
        return f"{self.value}/"


def classify_dimensions(width: int, height: int) -> AspectRatio:
    """Map pixel dimensions to an aspect ratio category.

    Raises:
        InvalidDimensionsError: If either dimension is not positive
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(f"Invalid dimensions {width}x{height}")

    ratio = width / height
    if width >= height:
        if abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE:
            return AspectRatio.LANDSCAPE
    elif abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


def get_video_aspect_ratio(toolkit: MediaToolkit, path: str) -> AspectRatio:
    """Probe a local file and classify it.

    Raises:
        ProbeError: Propagated from the toolkit or classification
    """
    width, height = toolkit.probe_dimensions(path)
    return classify_dimensions(width, height)
