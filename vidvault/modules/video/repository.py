"""Video repository for database operations."""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidvault.modules.video.models import Video


class VideoRepository:
    """Repository for Video reads and updates."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, video_id: uuid.UUID) -> Optional[Video]:
        """Get video by ID.

        Args:
            video_id: Video UUID

        Returns:
            Optional[Video]: Video if found, None otherwise
        """
        result = await self.session.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    async def update(self, video: Video) -> Video:
        """Persist changes made to a video and commit.

        Args:
            video: Video instance with modified attributes

        Returns:
            Video: Refreshed video instance
        """
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return video
