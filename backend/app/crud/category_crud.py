from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .base import BaseCRUD
from ..models.category import Category


class CategoryCRUD(BaseCRUD[Category, dict, dict]):
    async def get_by_name(self, db: AsyncSession, category_name: str) -> Optional[Category]:
        result = await db.execute(select(Category).where(Category.category_name == category_name))
        return result.scalars().first()


category_crud = CategoryCRUD(Category)
