"""Pytest fixtures shared across test packages."""

from pathlib import Path

import pytest

from vidvault.core.config import UploadConfig


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def upload_config(staging_dir: Path) -> UploadConfig:
    return UploadConfig(
        temp_dir=str(staging_dir),
        max_video_size=1 << 20,
        max_thumbnail_size=64 * 1024,
    )
