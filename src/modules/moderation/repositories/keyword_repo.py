from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repository import BaseRepository
from src.modules.moderation.models import ModerationKeyword
from src.modules.moderation.schemas import ModerationRule


class ModerationKeywordRepository(BaseRepository[ModerationKeyword]):
    """Keyword rule source. Rules come back in declaration order."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ModerationKeyword)

    async def list_rules(self) -> list[ModerationRule]:
        rows = await self.get_all(self.model.created_at, self.model.id)
        return [
            ModerationRule(
                pattern=row.keyword,
                category=row.category,
                action=row.action,
                is_regex=row.is_regex,
            )
            for row in rows
        ]
