"""Media processing module: fast-start remux and geometry probing."""

from vidvault.modules.transcoding.aspect import (
    AspectRatio,
    classify_dimensions,
    get_video_aspect_ratio,
)
from vidvault.modules.transcoding.ffmpeg import (
    FFmpegToolkit,
    InvalidDimensionsError,
    MediaToolError,
    MediaToolkit,
    NoVideoStreamError,
    ProbeError,
    ProbeExecutionError,
    ProbeOutputError,
    TranscodeError,
    parse_probe_dimensions,
)

__all__ = [
    # Classification
    "AspectRatio",
    "classify_dimensions",
    "get_video_aspect_ratio",
    # Tools
    "MediaToolkit",
    "FFmpegToolkit",
    "parse_probe_dimensions",
    # Errors
    "MediaToolError",
    "TranscodeError",
    "ProbeError",
    "ProbeExecutionError",
    "ProbeOutputError",
    "NoVideoStreamError",
    "InvalidDimensionsError",
]
