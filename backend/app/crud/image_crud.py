from typing import Dict, List
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from .base import BaseCRUD
from ..models.image import Image
from ..models.post import ImagePost


class ImageCRUD(BaseCRUD[Image, dict, dict]):

    async def create_image(self, db: AsyncSession, image_url: str, blob_key: str) -> Image:
        return await self.create(db, {"image_url": image_url, "blob_key": blob_key})


class ImagePostCRUD(BaseCRUD[ImagePost, dict, dict]):

    async def create_image_post(self, db: AsyncSession, image: Image, post) -> ImagePost:
        image_post = ImagePost.create_image_post(image, post)
        db.add(image_post)
        await db.flush()
        return image_post

    async def get_all_by_post_id(self, db: AsyncSession, post_id: int) -> List[ImagePost]:
        result = await db.execute(
            select(ImagePost)
            .where(ImagePost.post_id == post_id)
            .order_by(ImagePost.id)
        )
        return result.scalars().all()

    async def get_images_by_post_ids(self, db: AsyncSession, post_ids: List[int]) -> Dict[int, List[Image]]:
        """게시글 id 목록에 대한 첨부 이미지를 한 번에 조회"""
        if not post_ids:
            return {}
        result = await db.execute(
            select(ImagePost.post_id, Image)
            .join(Image, Image.id == ImagePost.image_id)
            .where(ImagePost.post_id.in_(post_ids))
            .order_by(ImagePost.id)
        )
        images: Dict[int, List[Image]] = defaultdict(list)
        for post_id, image in result.all():
            images[post_id].append(image)
        return images

    async def delete_all_by_post_id(self, db: AsyncSession, post_id: int) -> int:
        result = await db.execute(delete(ImagePost).where(ImagePost.post_id == post_id))
        return result.rowcount or 0


# 싱글톤 인스턴스
image_crud = ImageCRUD(Image)
image_post_crud = ImagePostCRUD(ImagePost)
