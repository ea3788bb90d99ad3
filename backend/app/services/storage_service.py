import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient

from ..core.config import settings
from ..core.exceptions import FailedImageUploadException

logger = logging.getLogger(__name__)


class StorageService(ABC):
    """
    이미지 Blob 저장소 계약

    - upload_image: 업로드 후 (절대 URL, blob 키) 반환
    - delete_image: blob 키로 삭제
    """

    @abstractmethod
    async def upload_image(self, content: bytes, filename: str, content_type: str) -> Tuple[str, str]:
        ...

    @abstractmethod
    async def delete_image(self, blob_key: str) -> None:
        ...

    async def delete_images_by_keys(self, blob_keys: Iterable[str]) -> Tuple[int, List[str]]:
        """여러 blob 삭제. 실패는 모아서 반환하고 계속 진행"""
        deleted_count = 0
        errors: List[str] = []
        for blob_key in blob_keys:
            if not blob_key:
                continue
            try:
                await self.delete_image(blob_key)
                deleted_count += 1
            except Exception as e:
                errors.append(f"{blob_key}: {e}")
        return deleted_count, errors

    async def close(self) -> None:
        pass

    @staticmethod
    def build_blob_key(filename: str, folder: Optional[str] = None) -> str:
        _, ext = os.path.splitext(filename or "")
        return f"{folder or settings.IMAGE_FOLDER}/{uuid.uuid4().hex}{ext.lower()}"


class AzureBlobStorageService(StorageService):
    """Azure Blob Storage 구현"""

    def __init__(self, connection_string: Optional[str] = None, container_name: Optional[str] = None):
        self._connection_string = connection_string or settings.AZURE_STORAGE_CONNECTION_STRING
        self._container_name = container_name or settings.AZURE_STORAGE_CONTAINER
        self._service_client: Optional[BlobServiceClient] = None

    def _ensure_initialized(self) -> BlobServiceClient:
        if self._service_client is None:
            if not self._connection_string:
                raise ValueError("AZURE_STORAGE_CONNECTION_STRING 환경변수가 설정되지 않았습니다.")
            self._service_client = BlobServiceClient.from_connection_string(self._connection_string)
        return self._service_client

    def _blob_client(self, blob_key: str):
        service_client = self._ensure_initialized()
        return service_client.get_blob_client(container=self._container_name, blob=blob_key)

    async def upload_image(self, content: bytes, filename: str, content_type: str) -> Tuple[str, str]:
        blob_key = self.build_blob_key(filename)
        try:
            blob_client = self._blob_client(blob_key)
            await blob_client.upload_blob(
                content,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type or "application/octet-stream")
            )
        except (AzureError, ValueError) as e:
            logger.error(f"Blob 업로드 실패: key={blob_key}, error={e}")
            raise FailedImageUploadException() from e

        logger.info(f"Blob 업로드 완료: key={blob_key}")
        return blob_client.url, blob_key

    async def delete_image(self, blob_key: str) -> None:
        try:
            await self._blob_client(blob_key).delete_blob()
            logger.info(f"Blob 삭제 완료: key={blob_key}")
        except ResourceNotFoundError:
            # 이미 지워진 blob
            logger.warning(f"삭제할 Blob이 없습니다: key={blob_key}")

    async def close(self) -> None:
        if self._service_client is not None:
            await self._service_client.close()
            self._service_client = None


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """기본 저장소 서비스 싱글톤"""
    global _storage_service
    if _storage_service is None:
        _storage_service = AzureBlobStorageService()
    return _storage_service
