from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, exists, and_

from .base import BaseCRUD
from ..models.user import User


class UserCRUD(BaseCRUD[User, dict, dict]):
    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """이메일로 사용자 조회 (탈퇴 회원 포함)"""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_active(self, db: AsyncSession, user_id: int) -> Optional[User]:
        """탈퇴하지 않은 사용자 조회"""
        result = await db.execute(
            select(User).where(and_(User.id == user_id, User.is_deleted == False))
        )
        return result.scalars().first()

    async def get_by_email_and_name(self, db: AsyncSession, email: str, name: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(
                and_(User.email == email, User.name == name, User.is_deleted == False)
            )
        )
        return result.scalars().first()

    async def exists_by_email(self, db: AsyncSession, email: str) -> bool:
        return await self._exists(db, User.email == email)

    async def exists_by_nickname(self, db: AsyncSession, nickname: str) -> bool:
        return await self._exists(db, User.nickname == nickname)

    async def exists_by_phone(self, db: AsyncSession, phone: str) -> bool:
        return await self._exists(db, User.phone == phone)

    async def _exists(self, db: AsyncSession, condition) -> bool:
        # 탈퇴 회원도 유니크 제약을 점유하므로 전체 기준으로 검사
        result = await db.execute(select(exists().where(condition)))
        return bool(result.scalar())


# 싱글톤 인스턴스
user_crud = UserCRUD(User)
