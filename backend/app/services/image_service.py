import io
import logging
from typing import Iterable, Optional

from fastapi import UploadFile
from PIL import Image as PILImage, UnidentifiedImageError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.constants import DEFAULT_PROFILE_IMAGE_ID
from ..core.exceptions import (
    FailedImageConvertException,
    FailedImageUploadException,
    ImageNotFoundException,
)
from ..crud.image_crud import image_crud
from ..models.image import Image
from .storage_service import StorageService

logger = logging.getLogger(__name__)


def is_empty_file(file: Optional[UploadFile]) -> bool:
    """파일 파트가 없거나 비어있는지 확인"""
    if file is None:
        return True
    if not file.filename:
        return True
    return file.size == 0


class ImageService:
    """Image 레코드와 Blob 저장소 사이의 계약 관리"""

    def __init__(self, storage: StorageService):
        self.storage = storage

    async def get_default_image(self, db: AsyncSession) -> Image:
        image = await image_crud.get(db, DEFAULT_PROFILE_IMAGE_ID)
        if image is None:
            raise ImageNotFoundException()
        return image

    async def save_profile_image(self, db: AsyncSession, file: Optional[UploadFile]) -> Image:
        if is_empty_file(file):
            image = await image_crud.get(db, DEFAULT_PROFILE_IMAGE_ID)
            if image is None:
                raise FailedImageUploadException("기본 이미지를 찾지 못했습니다.")
            return image
        return await self._upload_and_save(db, file)

    async def save_post_image(self, db: AsyncSession, file: UploadFile) -> Image:
        return await self._upload_and_save(db, file)

    async def delete_image(self, db: AsyncSession, image: Image) -> Optional[str]:
        """
        Image 레코드를 삭제하고, 커밋 이후 지워야 할 blob 키를 반환한다.

        blob 삭제는 트랜잭션과 묶을 수 없으므로 호출한 서비스가 커밋 후
        delete_blobs()로 처리한다. 기본 프로필 이미지는 절대 삭제하지 않는다.
        """
        if image.id == DEFAULT_PROFILE_IMAGE_ID:
            logger.warning("기본 프로필 이미지 삭제 요청을 무시합니다")
            return None

        blob_key = image.blob_key
        await db.delete(image)
        await db.flush()
        logger.info(f"이미지 레코드 삭제: image_id={image.id}, blob_key={blob_key}")
        return blob_key

    async def delete_blobs(self, blob_keys: Iterable[Optional[str]]) -> None:
        """best-effort blob 삭제. 실패는 로그만 남긴다"""
        keys = [key for key in blob_keys if key]
        if not keys:
            return
        deleted_count, errors = await self.storage.delete_images_by_keys(keys)
        logger.info(f"Blob Storage에서 {deleted_count}개 이미지 삭제 완료")
        if errors:
            logger.warning(f"일부 이미지 삭제 실패: {errors}")

    async def _upload_and_save(self, db: AsyncSession, file: UploadFile) -> Image:
        content = await self._read_image(file)
        image_url, blob_key = await self.storage.upload_image(
            content,
            file.filename,
            file.content_type
        )
        try:
            return await image_crud.create_image(db, image_url=image_url, blob_key=blob_key)
        except Exception:
            # 레코드를 못 만들면 방금 올린 blob은 고아가 된다
            await self.delete_blobs([blob_key])
            raise

    async def _read_image(self, file: UploadFile) -> bytes:
        try:
            content = await file.read()
            with PILImage.open(io.BytesIO(content)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"이미지 변환 실패: filename={file.filename}, error={e}")
            raise FailedImageConvertException() from e
        return content
