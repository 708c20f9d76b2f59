from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db: AsyncSession = db
        self.model = model

    async def get(self, id: Any) -> ModelType | None:
        return await self.db.get(self.model, id)

    async def get_all(self, *order_by: Any) -> Sequence[ModelType]:
        statement = select(self.model).order_by(*order_by)
        result = await self.db.scalars(statement)
        return result.all()

    async def create(self, obj_in: ModelType) -> ModelType:
        self.db.add(obj_in)
        await self.db.commit()
        await self.db.refresh(obj_in)
        return obj_in
