"""In-memory fakes for the upload pipeline collaborators."""

import uuid
from pathlib import Path
from typing import BinaryIO, Optional

from sqlalchemy.exc import SQLAlchemyError

from vidvault.core.storage import StorageBackend, StorageResult
from vidvault.modules.transcoding.ffmpeg import PROCESSING_SUFFIX, MediaToolkit, TranscodeError
from vidvault.modules.video.models import Video

TEST_BUCKET = "test-bucket"
TEST_REGION = "us-east-1"


def make_video(owner_id: Optional[uuid.UUID] = None) -> Video:
    """Build an unsaved Video owned by owner_id."""
    return Video(
        id=uuid.uuid4(),
        user_id=owner_id or uuid.uuid4(),
        title="Harbour timelapse",
        description="A test video",
    )


class FakeVideoRepository:
    """In-memory stand-in for VideoRepository."""

    def __init__(self, videos: Optional[list[Video]] = None, fail_update: bool = False):
        self.videos = {v.id: v for v in videos or []}
        self.fail_update = fail_update
        self.get_calls = 0
        self.updates: list[Video] = []

    async def get_by_id(self, video_id: uuid.UUID) -> Optional[Video]:
        self.get_calls += 1
        return self.videos.get(video_id)

    async def update(self, video: Video) -> Video:
        if self.fail_update:
            raise SQLAlchemyError("database unavailable")
        self.updates.append(video)
        return video


class FakeToolkit(MediaToolkit):
    """Deterministic MediaToolkit that never spawns a process."""

    def __init__(
        self,
        dimensions: tuple[int, int] = (1920, 1080),
        probe_error: Optional[Exception] = None,
        transcode_error: bool = False,
    ):
        self.dimensions = dimensions
        self.probe_error = probe_error
        self.transcode_error = transcode_error
        self.faststart_calls: list[tuple[str, str]] = []
        self.probe_calls: list[str] = []

    def faststart(self, input_path: str, output_path: Optional[str] = None) -> str:
        output_path = output_path or input_path + PROCESSING_SUFFIX
        self.faststart_calls.append((input_path, output_path))
        # Simulates a tool that writes part of its output before dying
        Path(output_path).write_bytes(b"faststart:" + Path(input_path).read_bytes())
        if self.transcode_error:
            raise TranscodeError("ffmpeg faststart processing failed with exit code 1")
        return output_path

    def probe_dimensions(self, input_path: str) -> tuple[int, int]:
        self.probe_calls.append(input_path)
        if self.probe_error is not None:
            raise self.probe_error
        return self.dimensions


class FakeStorage(StorageBackend):
    """Records uploads in memory and builds S3-style URLs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects: dict[str, tuple[bytes, str]] = {}

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        if self.fail:
            return StorageResult(success=False, key=key, url="", error_message="AccessDenied")
        body = fileobj.read()
        self.objects[key] = (body, content_type)
        return StorageResult(success=True, key=key, url=self.get_url(key), file_size=len(body))

    def get_url(self, key: str) -> str:
        return f"https://{TEST_BUCKET}.s3.{TEST_REGION}.amazonaws.com/{key}"
