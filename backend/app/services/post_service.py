import asyncio
import logging
import weakref
from typing import List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.constants import LikeStatus, SortStatus
from ..core.exceptions import (
    CategoryNotFoundException,
    PostForbiddenException,
    PostNotFoundException,
    UserNotFoundException,
)
from ..crud.category_crud import category_crud
from ..crud.image_crud import image_post_crud
from ..crud.like_crud import like_crud
from ..crud.post_crud import post_crud
from ..crud.reply_crud import reply_crud
from ..crud.user_crud import user_crud
from ..models.like import Like
from ..models.post import Post
from ..schemas.common import Page
from ..schemas.post import (
    AuthorResponse,
    LikeResponse,
    PostResponse,
    PostSaveRequest,
    PostUpdateRequest,
)
from .image_service import ImageService, is_empty_file

logger = logging.getLogger(__name__)


class PostService:
    """게시글 생명주기와 첨부 이미지 처리"""

    def __init__(self, image_service: ImageService):
        self.image_service = image_service
        # (user_id, post_id) 단위 좋아요 토글 직렬화용. 사용 중인 락만 유지된다
        self._like_locks: "weakref.WeakValueDictionary[Tuple[int, int], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    async def get_post_list(
        self,
        db: AsyncSession,
        category_id: int,
        page: int,
        size: int,
        sort: SortStatus = SortStatus.DEFAULT,
        viewer_id: Optional[int] = None
    ) -> Page[PostResponse]:
        posts = await post_crud.get_posts_by_category(
            db, category_id, sort=sort, skip=page * size, limit=size
        )
        total = await post_crud.count_posts_by_category(db, category_id)
        return Page.of(await self._to_post_responses(db, posts, viewer_id), page, size, total)

    async def get_post_details(
        self,
        db: AsyncSession,
        post_id: int,
        current_user_id: Optional[int] = None
    ) -> PostResponse:
        post = await self._get_post(db, post_id)

        # 작성자 본인이 아닌 로그인 사용자가 볼 때만 조회수 증가
        if current_user_id is not None and not post.is_written_by(current_user_id):
            try:
                await post_crud.increase_view(db, post.id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            await db.refresh(post, attribute_names=["view"])

        responses = await self._to_post_responses(db, [post], current_user_id)
        return responses[0]

    async def save_post(
        self,
        db: AsyncSession,
        request: PostSaveRequest,
        files: Optional[List[UploadFile]],
        author_user_id: int
    ) -> int:
        user = await user_crud.get_active(db, author_user_id)
        if user is None:
            raise UserNotFoundException("존재하지 않는 회원입니다.")
        category = await category_crud.get(db, request.category_id)
        if category is None:
            raise CategoryNotFoundException()

        uploaded_keys: List[str] = []
        try:
            post = await post_crud.create_post(
                db,
                user_id=user.id,
                category_id=category.id,
                title=request.title,
                content=request.content
            )
            await self._attach_images(db, post, files, uploaded_keys)
            await db.commit()
        except Exception as e:
            logger.error(f"게시글 작성 중 오류, 롤백합니다: {type(e).__name__}: {e}")
            await db.rollback()
            await self.image_service.delete_blobs(uploaded_keys)
            raise

        logger.info(f"게시글 작성 완료: post_id={post.id}, image_count={len(uploaded_keys)}")
        return post.id

    async def update_post(
        self,
        db: AsyncSession,
        post_id: int,
        request: PostUpdateRequest,
        files: Optional[List[UploadFile]],
        user_id: int
    ) -> int:
        # 삭제된 게시글은 잠금 조회에서 제외되므로 되살아나지 않는다
        post = await self._get_post(db, post_id, for_update=True)
        self._check_writer(post, user_id)

        uploaded_keys: List[str] = []
        stale_keys: List[Optional[str]] = []
        try:
            post.update_post(request.title, request.content)

            new_files = [file for file in (files or []) if not is_empty_file(file)]
            if new_files:
                # 전체 교체: 기존 첨부와 이미지를 모두 지우고 새로 올린다
                image_posts = await image_post_crud.get_all_by_post_id(db, post.id)
                old_images = [image_post.image for image_post in image_posts]
                await image_post_crud.delete_all_by_post_id(db, post.id)
                for image in old_images:
                    stale_keys.append(await self.image_service.delete_image(db, image))
                await self._attach_images(db, post, new_files, uploaded_keys)

            await db.commit()
        except Exception as e:
            logger.error(f"게시글 수정 중 오류, 롤백합니다: post_id={post_id}, {type(e).__name__}: {e}")
            await db.rollback()
            await self.image_service.delete_blobs(uploaded_keys)
            raise

        await self.image_service.delete_blobs(stale_keys)
        logger.info(f"게시글 수정 완료: post_id={post.id}, replaced_images={bool(uploaded_keys)}")
        return post.id

    async def delete_post(self, db: AsyncSession, post_id: int, user_id: int) -> None:
        post = await self._get_post(db, post_id, for_update=True)
        self._check_writer(post, user_id)

        # 첨부는 남겨둔다. 목록/상세 조회에서 삭제 게시글이 걸러진다
        try:
            post.change_status()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"게시글 삭제(soft) 완료: post_id={post_id}")

    async def like_process(self, db: AsyncSession, post_id: int, user_id: int) -> LikeResponse:
        async with self._like_lock(user_id, post_id):
            for attempt in range(2):
                try:
                    return await self._toggle_like(db, post_id, user_id)
                except IntegrityError:
                    # 다른 프로세스가 같은 (user, post) 좋아요를 먼저 넣은 경우 한 번 재시도
                    await db.rollback()
                    if attempt:
                        raise
                    logger.warning(f"좋아요 토글 충돌, 재시도: post_id={post_id}, user_id={user_id}")
                except Exception:
                    await db.rollback()
                    raise

    async def save_reply(self, db: AsyncSession, post_id: int, user_id: int, content: str) -> int:
        post = await self._get_post(db, post_id)
        user = await user_crud.get_active(db, user_id)
        if user is None:
            raise UserNotFoundException()

        try:
            reply = await reply_crud.create_reply(db, user.id, post.id, content)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"댓글 작성 완료: post_id={post.id}, reply_id={reply.id}")
        return reply.id

    async def _toggle_like(self, db: AsyncSession, post_id: int, user_id: int) -> LikeResponse:
        # 게시글 행을 잠가 같은 게시글의 토글을 DB 수준에서도 직렬화
        post = await self._get_post(db, post_id, for_update=True)
        user = await user_crud.get_active(db, user_id)
        if user is None:
            raise UserNotFoundException()

        like = await like_crud.get_by_user_and_post(db, user.id, post.id)
        if like is not None:
            await db.delete(like)
            status = LikeStatus.UNLIKED
        else:
            db.add(Like(user_id=user.id, post_id=post.id))
            status = LikeStatus.LIKED
        await db.flush()

        like_count = await like_crud.count_by_post(db, post.id)
        await db.commit()

        logger.info(f"좋아요 토글: post_id={post.id}, user_id={user.id}, status={status.value}, count={like_count}")
        return LikeResponse(status=status, count=like_count)

    def _like_lock(self, user_id: int, post_id: int) -> asyncio.Lock:
        key = (user_id, post_id)
        lock = self._like_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._like_locks[key] = lock
        return lock

    async def _attach_images(
        self,
        db: AsyncSession,
        post: Post,
        files: Optional[List[UploadFile]],
        uploaded_keys: List[str]
    ) -> None:
        for file in files or []:
            if is_empty_file(file):
                continue
            image = await self.image_service.save_post_image(db, file)
            uploaded_keys.append(image.blob_key)
            await image_post_crud.create_image_post(db, image, post)

    async def _get_post(self, db: AsyncSession, post_id: int, for_update: bool = False) -> Post:
        post = await post_crud.get_active(db, post_id, for_update=for_update)
        if post is None:
            raise PostNotFoundException()
        return post

    @staticmethod
    def _check_writer(post: Post, user_id: int) -> None:
        if not post.is_written_by(user_id):
            raise PostForbiddenException()

    async def _to_post_responses(
        self,
        db: AsyncSession,
        posts: List[Post],
        viewer_id: Optional[int] = None
    ) -> List[PostResponse]:
        post_ids = [post.id for post in posts]
        images = await image_post_crud.get_images_by_post_ids(db, post_ids)
        like_counts = await like_crud.count_by_post_ids(db, post_ids)
        liked_ids = await like_crud.liked_post_ids(db, viewer_id, post_ids) if viewer_id else set()

        return [
            PostResponse(
                id=post.id,
                category_id=post.category_id,
                title=post.title,
                content=post.content,
                view=post.view,
                author=AuthorResponse(
                    id=post.user.id,
                    nickname=post.user.nickname,
                    profile_image_url=post.user.image.image_url if post.user.image else None
                ),
                images=[image.image_url for image in images.get(post.id, [])],
                like_count=like_counts.get(post.id, 0),
                is_liked=post.id in liked_ids,
                created_at=post.created_at,
                updated_at=post.updated_at
            )
            for post in posts
        ]
