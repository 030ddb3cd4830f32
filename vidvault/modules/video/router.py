"""Video upload API router."""

import uuid
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from vidvault.core.config import UploadConfig, settings
from vidvault.core.database import get_db
from vidvault.core.storage import StorageBackend, StorageConfig, create_storage
from vidvault.modules.auth.jwt import get_current_user_id
from vidvault.modules.transcoding.ffmpeg import FFmpegToolkit, MediaToolkit
from vidvault.modules.video.repository import VideoRepository
from vidvault.modules.video.schemas import VideoResponse
from vidvault.modules.video.service import (
    InvalidUploadError,
    ProcessingError,
    StorageError,
    VideoNotFoundError,
    VideoOwnershipError,
    VideoServiceError,
    VideoUploadService,
)

router = APIRouter(tags=["videos"])


@lru_cache
def get_media_toolkit() -> MediaToolkit:
    return FFmpegToolkit(settings.FFMPEG_PATH, settings.FFPROBE_PATH)


@lru_cache
def get_video_storage() -> StorageBackend:
    return create_storage(StorageConfig.s3_from_settings(settings))


@lru_cache
def get_asset_storage() -> StorageBackend:
    return create_storage(StorageConfig.assets_from_settings(settings))


def get_upload_config() -> UploadConfig:
    return UploadConfig.from_settings(settings)


def get_upload_service(
    db: AsyncSession = Depends(get_db),
    config: UploadConfig = Depends(get_upload_config),
    toolkit: MediaToolkit = Depends(get_media_toolkit),
    storage: StorageBackend = Depends(get_video_storage),
    assets: StorageBackend = Depends(get_asset_storage),
) -> VideoUploadService:
    return VideoUploadService(VideoRepository(db), config, toolkit, storage, assets)


def _parse_video_id(video_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(video_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid video ID")


def _to_http_error(error: VideoServiceError) -> HTTPException:
    if isinstance(error, InvalidUploadError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, VideoNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    if isinstance(error, VideoOwnershipError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(error))
    if isinstance(error, (ProcessingError, StorageError)):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed")


@router.post("/video_upload/{video_id}", response_model=VideoResponse)
async def upload_video(
    video_id: str,
    video: Optional[UploadFile] = File(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
):
    """Upload an mp4 for a video the caller owns.

    The file is remuxed for fast start, classified by aspect ratio and
    stored under `<landscape|portrait|other>/<random>.mp4`.
    """
    parsed_id = _parse_video_id(video_id)
    if video is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not read video file",
        )

    try:
        return await service.upload_video(parsed_id, user_id, video.file, video.content_type)
    except VideoServiceError as e:
        raise _to_http_error(e)


@router.post("/thumbnail_upload/{video_id}", response_model=VideoResponse)
async def upload_thumbnail(
    video_id: str,
    thumbnail: Optional[UploadFile] = File(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
):
    """Upload a JPEG or PNG thumbnail for a video the caller owns."""
    parsed_id = _parse_video_id(video_id)
    if thumbnail is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not read thumbnail file",
        )

    try:
        return await service.upload_thumbnail(
            parsed_id, user_id, thumbnail.file, thumbnail.content_type
        )
    except VideoServiceError as e:
        raise _to_http_error(e)
