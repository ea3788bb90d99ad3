import logging
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, desc, update, exists

from .base import BaseCRUD
from ..models.post import Post
from ..models.like import Like
from ..models.reply import Reply
from ..core.constants import SortStatus

logger = logging.getLogger(__name__)

class PostCRUD(BaseCRUD[Post, dict, dict]):

    async def create_post(
        self,
        db: AsyncSession,
        user_id: int,
        category_id: int,
        title: str,
        content: str
    ) -> Post:
        """새 게시글 작성"""
        db_post = Post(
            user_id=user_id,
            category_id=category_id,
            title=title,
            content=content,
            view=0,
            is_deleted=False
        )
        db.add(db_post)
        await db.flush()  # PK 확보, 트랜잭션은 상위에서 관리
        logger.info(f"게시글 생성: post_id={db_post.id}, user_id={user_id}, category_id={category_id}")
        return db_post

    async def get_active(self, db: AsyncSession, post_id: int, for_update: bool = False) -> Optional[Post]:
        """삭제되지 않은 게시글 조회 (삭제 필터는 쿼리 시점에 적용)"""
        stmt = select(Post).where(and_(Post.id == post_id, Post.is_deleted == False))
        if for_update:
            stmt = stmt.with_for_update(of=Post)
        result = await db.execute(stmt)
        return result.scalars().first()

    async def get_posts_by_category(
        self,
        db: AsyncSession,
        category_id: int,
        sort: SortStatus = SortStatus.DEFAULT,
        skip: int = 0,
        limit: int = 20
    ) -> List[Post]:
        """카테고리별 게시글 목록 (최신순 / 좋아요순)"""
        stmt = select(Post).where(
            and_(Post.category_id == category_id, Post.is_deleted == False)
        )

        if sort == SortStatus.LIKES:
            like_count = (
                select(func.count(Like.id))
                .where(Like.post_id == Post.id)
                .correlate(Post)
                .scalar_subquery()
            )
            stmt = stmt.order_by(desc(like_count), desc(Post.created_at), desc(Post.id))
        else:
            stmt = stmt.order_by(desc(Post.created_at), desc(Post.id))

        result = await db.execute(stmt.offset(skip).limit(limit))
        return result.scalars().all()

    async def count_posts_by_category(self, db: AsyncSession, category_id: int) -> int:
        result = await db.execute(
            select(func.count(Post.id)).where(
                and_(Post.category_id == category_id, Post.is_deleted == False)
            )
        )
        return result.scalar() or 0

    async def increase_view(self, db: AsyncSession, post_id: int) -> int:
        """조회수 +1. 읽은 값에 더하지 않고 DB에서 증가시킨다"""
        result = await db.execute(
            update(Post)
            .where(and_(Post.id == post_id, Post.is_deleted == False))
            .values(view=Post.view + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def get_posts_liked_by(
        self,
        db: AsyncSession,
        user_id: int,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Post], int]:
        """내가 좋아요 누른 게시글"""
        condition = and_(
            Post.is_deleted == False,
            exists().where(and_(Like.post_id == Post.id, Like.user_id == user_id))
        )
        return await self._paged(db, condition, skip, limit)

    async def get_posts_replied_by(
        self,
        db: AsyncSession,
        user_id: int,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Post], int]:
        """내가 댓글 단 게시글"""
        condition = and_(
            Post.is_deleted == False,
            exists().where(
                and_(
                    Reply.post_id == Post.id,
                    Reply.user_id == user_id,
                    Reply.is_deleted == False
                )
            )
        )
        return await self._paged(db, condition, skip, limit)

    async def get_posts_by_user_and_category(
        self,
        db: AsyncSession,
        user_id: int,
        category_id: int,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Post], int]:
        """카테고리 내 내가 참여(작성)한 게시글"""
        condition = and_(
            Post.is_deleted == False,
            Post.user_id == user_id,
            Post.category_id == category_id
        )
        return await self._paged(db, condition, skip, limit)

    async def _paged(self, db: AsyncSession, condition, skip: int, limit: int) -> Tuple[List[Post], int]:
        total = (await db.execute(select(func.count(Post.id)).where(condition))).scalar() or 0
        result = await db.execute(
            select(Post)
            .where(condition)
            .order_by(desc(Post.created_at), desc(Post.id))
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all(), total

# 싱글톤 인스턴스
post_crud = PostCRUD(Post)
