from typing import Dict, List, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from .base import BaseCRUD
from ..models.reply import Reply


class ReplyCRUD(BaseCRUD[Reply, dict, dict]):

    async def create_reply(self, db: AsyncSession, user_id: int, post_id: int, content: str) -> Reply:
        return await self.create(db, {"user_id": user_id, "post_id": post_id, "content": content})

    async def count_by_post_ids(self, db: AsyncSession, post_ids: List[int]) -> Dict[int, int]:
        if not post_ids:
            return {}
        result = await db.execute(
            select(Reply.post_id, func.count(Reply.id))
            .where(and_(Reply.post_id.in_(post_ids), Reply.is_deleted == False))
            .group_by(Reply.post_id)
        )
        return {post_id: count for post_id, count in result.all()}

    async def replied_post_ids(self, db: AsyncSession, user_id: int, post_ids: List[int]) -> Set[int]:
        if not post_ids:
            return set()
        result = await db.execute(
            select(Reply.post_id).where(
                and_(
                    Reply.user_id == user_id,
                    Reply.post_id.in_(post_ids),
                    Reply.is_deleted == False
                )
            )
        )
        return set(result.scalars().all())


reply_crud = ReplyCRUD(Reply)
