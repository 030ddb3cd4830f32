"""Property-based tests for aspect ratio classification."""

import math

import pytest
from hypothesis import assume, given, settings, strategies as st

from vidvault.modules.transcoding.aspect import (
    AspectRatio,
    LANDSCAPE_RATIO,
    PORTRAIT_RATIO,
    RATIO_TOLERANCE,
    classify_dimensions,
    get_video_aspect_ratio,
)
from vidvault.modules.transcoding.ffmpeg import InvalidDimensionsError, ProbeExecutionError

from tests.fakes import FakeToolkit

dimension_strategy = st.integers(min_value=1, max_value=10_000)


@st.composite
def dimensions_near(draw, target: float) -> tuple[int, int]:
    """Draw (width, height) whose ratio lies strictly inside the tolerance band of target.

    Widths keep one pixel clear of each band edge so float rounding never
    decides the outcome.
    """
    height = draw(st.integers(min_value=10, max_value=10_000))
    low = math.ceil(height * (target - RATIO_TOLERANCE)) + 1
    high = math.floor(height * (target + RATIO_TOLERANCE)) - 1
    width = draw(st.integers(min_value=low, max_value=high))
    return width, height


class TestClassificationRule:
    """Property tests for the width/height classification rule."""

    @given(dims=dimensions_near(LANDSCAPE_RATIO))
    @settings(max_examples=300)
    def test_near_16_9_landscape_is_landscape(self, dims: tuple[int, int]) -> None:
        """For any width >= height within tolerance of 16:9, the result SHALL be landscape."""
        width, height = dims
        assert width >= height

        assert classify_dimensions(width, height) == AspectRatio.LANDSCAPE

    @given(dims=dimensions_near(PORTRAIT_RATIO))
    @settings(max_examples=300)
    def test_near_9_16_portrait_is_portrait(self, dims: tuple[int, int]) -> None:
        """For any height > width within tolerance of 9:16, the result SHALL be portrait."""
        width, height = dims
        assert height > width

        assert classify_dimensions(width, height) == AspectRatio.PORTRAIT

    @given(width=dimension_strategy, height=dimension_strategy)
    @settings(max_examples=300)
    def test_everything_else_is_other(self, width: int, height: int) -> None:
        """For any dimensions outside both tolerance bands, the result SHALL be other."""
        ratio = width / height
        landscape = width >= height and abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE
        portrait = height > width and abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE
        assume(not landscape and not portrait)

        assert classify_dimensions(width, height) == AspectRatio.OTHER

    @given(side=dimension_strategy)
    @settings(max_examples=100)
    def test_square_is_other(self, side: int) -> None:
        assert classify_dimensions(side, side) == AspectRatio.OTHER

    @pytest.mark.parametrize(
        "width,height,expected",
        [
            (1920, 1080, AspectRatio.LANDSCAPE),
            (1280, 720, AspectRatio.LANDSCAPE),
            (3840, 2160, AspectRatio.LANDSCAPE),
            (1080, 1920, AspectRatio.PORTRAIT),
            (720, 1280, AspectRatio.PORTRAIT),
            (1440, 1080, AspectRatio.OTHER),  # 4:3
            (2560, 1080, AspectRatio.OTHER),  # 21:9
            (1080, 1080, AspectRatio.OTHER),
            (1080, 1440, AspectRatio.PORTRAIT),  # 3:4 is within 0.2 of 9:16
            (1024, 1280, AspectRatio.OTHER),  # 4:5
            (1080, 1350, AspectRatio.OTHER),  # 4:5
        ],
    )
    def test_common_resolutions(self, width: int, height: int, expected: AspectRatio) -> None:
        assert classify_dimensions(width, height) == expected

    @pytest.mark.parametrize("width,height", [(0, 1080), (1920, 0), (0, 0), (-1, 10)])
    def test_non_positive_dimensions_rejected(self, width: int, height: int) -> None:
        with pytest.raises(InvalidDimensionsError):
            classify_dimensions(width, height)


class TestAspectRatioPrefix:

    def test_prefixes(self) -> None:
        assert AspectRatio.LANDSCAPE.prefix == "landscape/"
        assert AspectRatio.PORTRAIT.prefix == "portrait/"
        assert AspectRatio.OTHER.prefix == "other/"


class TestGetVideoAspectRatio:

    def test_probes_given_path(self) -> None:
        toolkit = FakeToolkit(dimensions=(1080, 1920))

        assert get_video_aspect_ratio(toolkit, "/tmp/clip.mp4") == AspectRatio.PORTRAIT
        assert toolkit.probe_calls == ["/tmp/clip.mp4"]

    def test_probe_errors_propagate(self) -> None:
        toolkit = FakeToolkit(probe_error=ProbeExecutionError("ffprobe not found"))

        with pytest.raises(ProbeExecutionError):
            get_video_aspect_ratio(toolkit, "/tmp/clip.mp4")
