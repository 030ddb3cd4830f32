"""Tests for the ffmpeg / ffprobe wrappers."""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vidvault.modules.transcoding.ffmpeg import (
    FFmpegToolkit,
    InvalidDimensionsError,
    NoVideoStreamError,
    ProbeExecutionError,
    ProbeOutputError,
    TranscodeError,
    parse_probe_dimensions,
)


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def probe_json(*streams: dict) -> str:
    return json.dumps({"streams": list(streams)})


class TestParseProbeDimensions:

    def test_first_video_stream_wins(self) -> None:
        output = probe_json(
            {"codec_type": "audio", "sample_rate": "48000"},
            {"codec_type": "video", "width": 1080, "height": 1920},
            {"codec_type": "video", "width": 320, "height": 240},
        )

        assert parse_probe_dimensions(output) == (1080, 1920)

    def test_malformed_json(self) -> None:
        with pytest.raises(ProbeOutputError):
            parse_probe_dimensions("ffprobe: not json")

    def test_non_object_output(self) -> None:
        with pytest.raises(ProbeOutputError):
            parse_probe_dimensions("[1, 2, 3]")

    def test_zero_streams(self) -> None:
        with pytest.raises(NoVideoStreamError):
            parse_probe_dimensions(probe_json())

    def test_audio_only(self) -> None:
        with pytest.raises(NoVideoStreamError):
            parse_probe_dimensions(probe_json({"codec_type": "audio"}))

    @pytest.mark.parametrize(
        "stream",
        [
            {"codec_type": "video", "width": 0, "height": 1080},
            {"codec_type": "video", "width": 1920, "height": 0},
            {"codec_type": "video"},
        ],
    )
    def test_invalid_dimensions(self, stream: dict) -> None:
        with pytest.raises(InvalidDimensionsError):
            parse_probe_dimensions(probe_json(stream))

    def test_probe_errors_share_a_base(self) -> None:
        from vidvault.modules.transcoding.ffmpeg import ProbeError

        for error in (ProbeExecutionError, ProbeOutputError, NoVideoStreamError, InvalidDimensionsError):
            assert issubclass(error, ProbeError)


class TestFaststart:

    def test_command_copies_streams_and_moves_moov(self) -> None:
        toolkit = FFmpegToolkit(ffmpeg_path="/opt/ffmpeg")
        cmd = toolkit.build_faststart_command("/tmp/in.mp4", "/tmp/in.mp4.processing")

        assert cmd[0] == "/opt/ffmpeg"
        assert cmd[cmd.index("-i") + 1] == "/tmp/in.mp4"
        assert cmd[cmd.index("-c") + 1] == "copy"
        assert cmd[cmd.index("-movflags") + 1] == "+faststart"
        assert cmd[cmd.index("-f") + 1] == "mp4"
        assert cmd[-1] == "/tmp/in.mp4.processing"
        assert "libx264" not in cmd

    def test_default_output_path(self, tmp_path: Path) -> None:
        source = tmp_path / "upload.mp4"
        source.write_bytes(b"mdat")

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"moov mdat")
            return completed()

        with patch("vidvault.modules.transcoding.ffmpeg.subprocess.run", side_effect=fake_run):
            output = FFmpegToolkit().faststart(str(source))

        assert output == str(source) + ".processing"
        assert Path(output).read_bytes() == b"moov mdat"

    def test_non_zero_exit_removes_partial_output(self, tmp_path: Path) -> None:
        source = tmp_path / "upload.mp4"
        source.write_bytes(b"garbage")
        output = tmp_path / "upload.mp4.processing"

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"partial")
            return completed(returncode=1, stderr="moov atom not found")

        with patch("vidvault.modules.transcoding.ffmpeg.subprocess.run", side_effect=fake_run):
            with pytest.raises(TranscodeError):
                FFmpegToolkit().faststart(str(source), str(output))

        assert not output.exists()

    def test_missing_binary(self, tmp_path: Path) -> None:
        source = tmp_path / "upload.mp4"
        source.write_bytes(b"mdat")

        with patch(
            "vidvault.modules.transcoding.ffmpeg.subprocess.run",
            side_effect=FileNotFoundError("ffmpeg"),
        ):
            with pytest.raises(TranscodeError):
                FFmpegToolkit().faststart(str(source))

    def test_success_without_output_is_failure(self, tmp_path: Path) -> None:
        source = tmp_path / "upload.mp4"
        source.write_bytes(b"mdat")

        with patch("vidvault.modules.transcoding.ffmpeg.subprocess.run", return_value=completed()):
            with pytest.raises(TranscodeError):
                FFmpegToolkit().faststart(str(source))


class TestProbeDimensions:

    def test_runs_ffprobe_with_json_output(self) -> None:
        run = MagicMock(return_value=completed(
            stdout=probe_json({"codec_type": "video", "width": 1920, "height": 1080}),
        ))

        with patch("vidvault.modules.transcoding.ffmpeg.subprocess.run", run):
            dims = FFmpegToolkit(ffprobe_path="/opt/ffprobe").probe_dimensions("/tmp/in.mp4")

        assert dims == (1920, 1080)
        cmd = run.call_args.args[0]
        assert cmd[0] == "/opt/ffprobe"
        assert cmd[cmd.index("-print_format") + 1] == "json"
        assert "-show_streams" in cmd
        assert cmd[-1] == "/tmp/in.mp4"

    def test_non_zero_exit(self) -> None:
        error = subprocess.CalledProcessError(1, ["ffprobe"], stderr="Invalid data")

        with patch("vidvault.modules.transcoding.ffmpeg.subprocess.run", side_effect=error):
            with pytest.raises(ProbeExecutionError):
                FFmpegToolkit().probe_dimensions("/tmp/in.mp4")

    def test_missing_binary(self) -> None:
        with patch(
            "vidvault.modules.transcoding.ffmpeg.subprocess.run",
            side_effect=FileNotFoundError("ffprobe"),
        ):
            with pytest.raises(ProbeExecutionError):
                FFmpegToolkit().probe_dimensions("/tmp/in.mp4")
