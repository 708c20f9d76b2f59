"""User repository for the auth gateway."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repository import BaseRepository
from src.modules.users.models import User


class UserRepository(BaseRepository[User]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, User)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address, compared case-insensitively."""
        statement = select(self.model).where(func.lower(self.model.email) == email.lower())
        return await self.db.scalar(statement)
