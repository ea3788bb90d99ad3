from typing import Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from .base import BaseCRUD
from ..models.like import Like


class LikeCRUD(BaseCRUD[Like, dict, dict]):

    async def get_by_user_and_post(self, db: AsyncSession, user_id: int, post_id: int) -> Optional[Like]:
        result = await db.execute(
            select(Like).where(and_(Like.user_id == user_id, Like.post_id == post_id))
        )
        return result.scalars().first()

    async def count_by_post(self, db: AsyncSession, post_id: int) -> int:
        result = await db.execute(select(func.count(Like.id)).where(Like.post_id == post_id))
        return result.scalar() or 0

    async def count_by_post_ids(self, db: AsyncSession, post_ids: List[int]) -> Dict[int, int]:
        if not post_ids:
            return {}
        result = await db.execute(
            select(Like.post_id, func.count(Like.id))
            .where(Like.post_id.in_(post_ids))
            .group_by(Like.post_id)
        )
        return {post_id: count for post_id, count in result.all()}

    async def liked_post_ids(self, db: AsyncSession, user_id: int, post_ids: List[int]) -> Set[int]:
        """주어진 게시글 중 사용자가 좋아요 누른 게시글 id"""
        if not post_ids:
            return set()
        result = await db.execute(
            select(Like.post_id).where(and_(Like.user_id == user_id, Like.post_id.in_(post_ids)))
        )
        return set(result.scalars().all())


like_crud = LikeCRUD(Like)
