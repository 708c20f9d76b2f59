from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repository import BaseRepository
from src.modules.moderation.models import ContentFlag
from src.modules.moderation.schemas import ContentFlagCreate


class ContentFlagRepository(BaseRepository[ContentFlag]):
    """Flag sink. Every call inserts a new row."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ContentFlag)

    async def insert(self, flag: ContentFlagCreate) -> ContentFlag:
        return await self.create(ContentFlag(**flag.model_dump()))
