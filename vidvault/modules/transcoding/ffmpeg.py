"""FFmpeg / ffprobe wrappers.

Implements the fast-start remux (container rewrite, streams copied
verbatim) and stream dimension probing used by the upload pipeline.
"""

import json
import logging
import os
import subprocess
import time
from abc import ABC, abstractmethod
from typing import Optional

from vidvault.core.metrics import MEDIA_TOOL_DURATION_SECONDS
from vidvault.core.tempfiles import remove_quietly

logger = logging.getLogger(__name__)

PROCESSING_SUFFIX = ".processing"
# Last bytes of tool stderr kept on errors
STDERR_TAIL = 2000


class MediaToolError(Exception):
    """Base exception for external media tool failures."""

    pass


class TranscodeError(MediaToolError):
    """Raised when the fast-start remux fails for any reason."""

    pass


class ProbeError(MediaToolError):
    """Base exception for dimension probing failures."""

    pass


class ProbeExecutionError(ProbeError):
    """ffprobe could not be run or exited non-zero."""

    pass


class ProbeOutputError(ProbeError):
    """ffprobe output was not the JSON document we asked for."""

    pass


class NoVideoStreamError(ProbeError):
    """The probed file reports no video stream."""

    pass


class InvalidDimensionsError(ProbeError):
    """A video stream reported a missing or non-positive dimension."""

    pass


class MediaToolkit(ABC):
    """Capability interface over the external media tools."""

    @abstractmethod
    def faststart(self, input_path: str, output_path: Optional[str] = None) -> str:
        """Rewrite input_path so playback metadata precedes media data.

        Returns:
            Path of the processed file

        Raises:
            TranscodeError: If no complete processed file was produced
        """

    @abstractmethod
    def probe_dimensions(self, input_path: str) -> tuple[int, int]:
        """Return (width, height) of the first video stream.

        Raises:
            ProbeError: On any failure
        """


class FFmpegToolkit(MediaToolkit):
    """MediaToolkit backed by the ffmpeg and ffprobe binaries."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        """Initialize toolkit.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            ffprobe_path: Path to ffprobe binary
        """
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path

    def build_faststart_command(self, input_path: str, output_path: str) -> list[str]:
        """Build the remux command. Streams are copied, never re-encoded."""
        return [
            self.ffmpeg_path,
            "-y",  # output path is owned by the caller
            "-v", "error",
            "-i", input_path,
            "-c", "copy",
            "-movflags", "+faststart",
            "-f", "mp4",
            output_path,
        ]

    def build_probe_command(self, input_path: str) -> list[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            input_path,
        ]

    def faststart(self, input_path: str, output_path: Optional[str] = None) -> str:
        output_path = output_path or input_path + PROCESSING_SUFFIX
        cmd = self.build_faststart_command(input_path, output_path)

        start = time.perf_counter()
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            self._observe("ffmpeg", "error", start)
            remove_quietly(output_path)
            raise TranscodeError(f"Could not run {self.ffmpeg_path}: {e}") from e

        if result.returncode != 0:
            self._observe("ffmpeg", "error", start)
            remove_quietly(output_path)
            stderr = (result.stderr or "")[-STDERR_TAIL:]
            logger.error(
                "ffmpeg faststart failed",
                extra={"input_path": input_path, "returncode": result.returncode, "stderr": stderr},
            )
            raise TranscodeError(
                f"ffmpeg faststart processing failed with exit code {result.returncode}"
            )

        if not os.path.exists(output_path):
            self._observe("ffmpeg", "error", start)
            raise TranscodeError(f"ffmpeg reported success but {output_path} is missing")

        self._observe("ffmpeg", "ok", start)
        return output_path

    def probe_dimensions(self, input_path: str) -> tuple[int, int]:
        cmd = self.build_probe_command(input_path)

        start = time.perf_counter()
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            self._observe("ffprobe", "error", start)
            raise ProbeExecutionError(f"ffprobe failed: {e}") from e
        self._observe("ffprobe", "ok", start)

        return parse_probe_dimensions(result.stdout)

    @staticmethod
    def _observe(tool: str, status: str, start: float) -> None:
        MEDIA_TOOL_DURATION_SECONDS.labels(tool=tool, status=status).observe(
            time.perf_counter() - start
        )


def parse_probe_dimensions(output: str) -> tuple[int, int]:
    """Extract (width, height) of the first video stream from ffprobe JSON.

    Args:
        output: stdout of `ffprobe -print_format json -show_streams`

    Returns:
        (width, height)

    Raises:
        ProbeOutputError: Output is not a JSON object with a streams list
        NoVideoStreamError: No stream has codec_type "video"
        InvalidDimensionsError: Width or height missing or not positive
    """
    try:
        parsed = json.loads(output)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProbeOutputError(f"Malformed ffprobe output: {e}") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("streams", []), list):
        raise ProbeOutputError("ffprobe output has no streams list")

    video_streams = [
        s for s in parsed.get("streams", [])
        if isinstance(s, dict) and s.get("codec_type") == "video"
    ]
    if not video_streams:
        raise NoVideoStreamError("No video streams found in ffprobe output")

    stream = video_streams[0]
    width = stream.get("width")
    height = stream.get("height")
    if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
        raise InvalidDimensionsError(f"Invalid dimensions {width}x{height}")

    return width, height
