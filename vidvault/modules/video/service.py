"""Video upload service.

Drives the upload pipeline for a single request: validate, stage the body
to disk, remux for fast start, classify geometry, derive a storage key,
hand the processed file to object storage and attach the public URL to the
video record. Every local file created along the way is removed before the
call returns, whichever step failed.
"""

import asyncio
import logging
import uuid
from contextlib import ExitStack
from typing import BinaryIO, Optional

from sqlalchemy.exc import SQLAlchemyError

from vidvault.core.config import UploadConfig
from vidvault.core.logging import log_error, log_info, log_warning
from vidvault.core.metrics import ASPECT_RATIO_CLASSIFICATIONS_TOTAL, VIDEO_UPLOADS_TOTAL
from vidvault.core.storage import StorageBackend, generate_object_key
from vidvault.core.tempfiles import LimitedReader, SizeLimitExceeded, scoped_path, staged_upload
from vidvault.modules.transcoding.aspect import AspectRatio, get_video_aspect_ratio
from vidvault.modules.transcoding.ffmpeg import (
    PROCESSING_SUFFIX,
    MediaToolkit,
    ProbeError,
    TranscodeError,
)
from vidvault.modules.video.models import Video
from vidvault.modules.video.repository import VideoRepository
from vidvault.modules.video.schemas import (
    ALLOWED_VIDEO_CONTENT_TYPE,
    THUMBNAIL_EXTENSIONS,
    VIDEO_EXTENSION,
    parse_media_type,
)

logger = logging.getLogger(__name__)


class VideoServiceError(Exception):
    """Base exception for video service errors."""

    pass


class InvalidUploadError(VideoServiceError):
    """Raised when the uploaded payload is rejected as client input."""

    pass


class UnsupportedMediaTypeError(InvalidUploadError):
    """Raised when the declared content type is not accepted."""

    pass


class UploadTooLargeError(InvalidUploadError):
    """Raised when the uploaded stream crosses the size ceiling."""

    pass


class VideoNotFoundError(VideoServiceError):
    """Raised when video is not found."""

    pass


class VideoOwnershipError(VideoServiceError):
    """Raised when the caller does not own the video."""

    pass


class ProcessingError(VideoServiceError):
    """Raised when the uploaded media could not be processed."""

    pass


class StorageError(VideoServiceError):
    """Raised when the object store or the video record rejects a write."""

    pass


class VideoUploadService:
    """Service for video and thumbnail upload operations."""

    def __init__(
        self,
        video_repo: VideoRepository,
        config: UploadConfig,
        toolkit: MediaToolkit,
        storage: StorageBackend,
        assets: Optional[StorageBackend] = None,
    ):
        """Initialize service.

        Args:
            video_repo: Video record store
            config: Upload limits and temp directory
            toolkit: ffmpeg/ffprobe capability
            storage: Object store for processed videos
            assets: Local asset store for thumbnails
        """
        self.video_repo = video_repo
        self.config = config
        self.toolkit = toolkit
        self.storage = storage
        self.assets = assets

    async def upload_video(
        self,
        video_id: uuid.UUID,
        user_id: uuid.UUID,
        fileobj: BinaryIO,
        content_type: Optional[str],
    ) -> Video:
        """Process an uploaded mp4 and attach its public URL to the video.

        Args:
            video_id: Target video UUID
            user_id: Authenticated user UUID
            fileobj: Uploaded body, read once
            content_type: Declared content type of the uploaded part

        Returns:
            Video: Updated video record

        Raises:
            InvalidUploadError: Unsupported content type or oversized body
            VideoNotFoundError: Unknown video
            VideoOwnershipError: Video belongs to another user
            ProcessingError: Remux failed
            StorageError: Upload or record update failed
        """
        try:
            video = await self._upload_video(video_id, user_id, fileobj, content_type)
        except VideoServiceError as e:
            VIDEO_UPLOADS_TOTAL.labels(outcome=type(e).__name__).inc()
            raise
        VIDEO_UPLOADS_TOTAL.labels(outcome="success").inc()
        return video

    async def _upload_video(
        self,
        video_id: uuid.UUID,
        user_id: uuid.UUID,
        fileobj: BinaryIO,
        content_type: Optional[str],
    ) -> Video:
        media_type = parse_media_type(content_type)
        if media_type != ALLOWED_VIDEO_CONTENT_TYPE:
            raise UnsupportedMediaTypeError(f"Only {ALLOWED_VIDEO_CONTENT_TYPE} is supported")

        video = await self._get_owned_video(video_id, user_id)

        # Released in reverse order: processed handle, processed file, staged file
        with ExitStack() as stack:
            try:
                staged = await asyncio.to_thread(
                    stack.enter_context,
                    staged_upload(
                        fileobj,
                        self.config.max_video_size,
                        suffix=VIDEO_EXTENSION,
                        dir=self.config.temp_dir,
                    ),
                )
            except SizeLimitExceeded as e:
                raise UploadTooLargeError(
                    f"Video exceeds the {self.config.max_video_size} byte limit"
                ) from e
            except OSError as e:
                raise ProcessingError("Could not stage uploaded video") from e
            log_info(logger, "Staged video upload", video_id=str(video_id), path=staged.name)

            processed_path = stack.enter_context(scoped_path(staged.name + PROCESSING_SUFFIX))
            try:
                await asyncio.to_thread(self.toolkit.faststart, staged.name, processed_path)
            except TranscodeError as e:
                log_error(logger, "Video processing failed", e, video_id=str(video_id))
                raise ProcessingError("Video processing failed") from e

            # Classification reads the original upload, not the remuxed copy
            category = await self._classify(staged.name, video_id)
            key = generate_object_key(category.prefix, VIDEO_EXTENSION)

            try:
                processed = stack.enter_context(open(processed_path, "rb"))
            except OSError as e:
                raise ProcessingError("Failed to read processed video") from e

            result = await asyncio.to_thread(
                self.storage.upload_fileobj, processed, key, media_type
            )
            if not result.success:
                raise StorageError(f"Failed to upload video to storage: {result.error_message}")

            video.video_url = result.url
            try:
                video = await self.video_repo.update(video)
            except SQLAlchemyError as e:
                # The object stays in the bucket without a referencing record
                log_error(
                    logger,
                    "Video record update failed; uploaded object is orphaned",
                    e,
                    video_id=str(video_id),
                    orphaned_key=key,
                )
                raise StorageError("Failed to update video metadata") from e

            log_info(
                logger,
                "Video uploaded",
                video_id=str(video_id),
                key=key,
                aspect_ratio=category.value,
                file_size=result.file_size,
            )
            return video

    async def upload_thumbnail(
        self,
        video_id: uuid.UUID,
        user_id: uuid.UUID,
        fileobj: BinaryIO,
        content_type: Optional[str],
    ) -> Video:
        """Store a thumbnail image locally and attach its URL to the video.

        Raises:
            InvalidUploadError: Unsupported image type or oversized body
            VideoNotFoundError: Unknown video
            VideoOwnershipError: Video belongs to another user
            StorageError: Asset write or record update failed
        """
        if self.assets is None:
            raise StorageError("Thumbnail storage is not configured")

        media_type = parse_media_type(content_type)
        extension = THUMBNAIL_EXTENSIONS.get(media_type)
        if extension is None:
            raise UnsupportedMediaTypeError(
                f"Unsupported media type. Allowed: {', '.join(THUMBNAIL_EXTENSIONS)}"
            )

        video = await self._get_owned_video(video_id, user_id)

        key = generate_object_key("", extension)
        try:
            result = await asyncio.to_thread(
                self.assets.upload_fileobj,
                LimitedReader(fileobj, self.config.max_thumbnail_size),
                key,
                media_type,
            )
        except SizeLimitExceeded as e:
            raise UploadTooLargeError(
                f"Thumbnail exceeds the {self.config.max_thumbnail_size} byte limit"
            ) from e
        if not result.success:
            raise StorageError(f"Failed to save thumbnail: {result.error_message}")

        video.thumbnail_url = result.url
        try:
            video = await self.video_repo.update(video)
        except SQLAlchemyError as e:
            log_error(logger, "Thumbnail record update failed", e, video_id=str(video_id), key=key)
            raise StorageError("Failed to update video metadata") from e

        log_info(logger, "Thumbnail uploaded", video_id=str(video_id), key=key)
        return video

    async def _get_owned_video(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        video = await self.video_repo.get_by_id(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video {video_id} not found")
        if video.user_id != user_id:
            raise VideoOwnershipError("You do not own this video")
        return video

    async def _classify(self, path: str, video_id: uuid.UUID) -> AspectRatio:
        """Best effort: any probe failure falls back to AspectRatio.OTHER."""
        try:
            category = await asyncio.to_thread(get_video_aspect_ratio, self.toolkit, path)
        except ProbeError as e:
            log_warning(
                logger,
                "Failed to determine aspect ratio; defaulting to other",
                video_id=str(video_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            category = AspectRatio.OTHER
        ASPECT_RATIO_CLASSIFICATIONS_TOTAL.labels(category=category.value).inc()
        return category
