"""Pydantic schemas and upload constants for the video module."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

ALLOWED_VIDEO_CONTENT_TYPE = "video/mp4"
VIDEO_EXTENSION = ".mp4"

# Accepted thumbnail types mapped to the extension they are stored with
THUMBNAIL_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


def parse_media_type(content_type: Optional[str]) -> str:
    """Lowercased media type of a Content-Type value, parameters dropped.

    >>> parse_media_type("video/MP4; codecs=avc1")
    'video/mp4'
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class VideoResponse(BaseModel):
    """Video record as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
