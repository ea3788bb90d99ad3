from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .base import BaseCRUD
from ..models.skill import Skill, UserSkill


class SkillCRUD(BaseCRUD[Skill, dict, dict]):
    async def get_by_name(self, db: AsyncSession, skill_name: str) -> Optional[Skill]:
        result = await db.execute(select(Skill).where(Skill.skill_name == skill_name))
        return result.scalars().first()


class UserSkillCRUD(BaseCRUD[UserSkill, dict, dict]):
    async def get_by_user_id(self, db: AsyncSession, user_id: int) -> List[UserSkill]:
        result = await db.execute(
            select(UserSkill).where(UserSkill.user_id == user_id).order_by(UserSkill.id)
        )
        return result.scalars().all()

    async def get_skill_names(self, db: AsyncSession, user_id: int) -> List[str]:
        result = await db.execute(
            select(Skill.skill_name)
            .join(UserSkill, UserSkill.skill_id == Skill.id)
            .where(UserSkill.user_id == user_id)
            .order_by(UserSkill.id)
        )
        return list(result.scalars().all())


skill_crud = SkillCRUD(Skill)
user_skill_crud = UserSkillCRUD(UserSkill)
