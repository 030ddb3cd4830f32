"""Video upload module."""

from vidvault.modules.video.models import Video
from vidvault.modules.video.repository import VideoRepository
from vidvault.modules.video.schemas import (
    ALLOWED_VIDEO_CONTENT_TYPE,
    THUMBNAIL_EXTENSIONS,
    VideoResponse,
    parse_media_type,
)
from vidvault.modules.video.service import (
    InvalidUploadError,
    ProcessingError,
    StorageError,
    UnsupportedMediaTypeError,
    UploadTooLargeError,
    VideoNotFoundError,
    VideoOwnershipError,
    VideoServiceError,
    VideoUploadService,
)

__all__ = [
    # Models
    "Video",
    "VideoRepository",
    # Schemas
    "VideoResponse",
    "ALLOWED_VIDEO_CONTENT_TYPE",
    "THUMBNAIL_EXTENSIONS",
    "parse_media_type",
    # Service
    "VideoUploadService",
    "VideoServiceError",
    "InvalidUploadError",
    "UnsupportedMediaTypeError",
    "UploadTooLargeError",
    "VideoNotFoundError",
    "VideoOwnershipError",
    "ProcessingError",
    "StorageError",
]
