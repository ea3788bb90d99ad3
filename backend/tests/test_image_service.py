"""ImageService 와 Blob 저장소 계약 테스트"""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.core.constants import DEFAULT_PROFILE_IMAGE_ID
from app.core.exceptions import FailedImageConvertException, ImageNotFoundException
from app.models import Image
from app.services.image_service import ImageService, is_empty_file
from app.services.storage_service import StorageService
from conftest import png_bytes


def _upload(content: bytes, filename: str = "photo.png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content),
        headers=Headers({"content-type": "image/png"})
    )


@pytest.fixture
def image_service(storage):
    return ImageService(storage)


async def test_empty_profile_image_resolves_to_default(image_service, db_session):
    image = await image_service.save_profile_image(db_session, None)
    assert image.id == DEFAULT_PROFILE_IMAGE_ID

    empty = await image_service.save_profile_image(db_session, _upload(b""))
    assert empty.id == DEFAULT_PROFILE_IMAGE_ID


async def test_post_image_is_uploaded_and_recorded(image_service, db_session, storage):
    image = await image_service.save_post_image(db_session, _upload(png_bytes()))
    await db_session.commit()

    assert image.id != DEFAULT_PROFILE_IMAGE_ID
    assert image.blob_key in storage.blobs
    assert image.image_url.endswith(image.blob_key)
    assert image.blob_key.startswith("images/") and image.blob_key.endswith(".png")


async def test_undecodable_bytes_are_not_uploaded(image_service, db_session, storage):
    with pytest.raises(FailedImageConvertException):
        await image_service.save_post_image(db_session, _upload(b"plain text"))
    assert storage.blobs == {}


async def test_delete_image_removes_row_and_returns_key(image_service, db_session, storage):
    image = await image_service.save_post_image(db_session, _upload(png_bytes()))
    image_id = image.id

    blob_key = await image_service.delete_image(db_session, image)
    await db_session.commit()
    await image_service.delete_blobs([blob_key])

    assert await db_session.get(Image, image_id) is None
    assert blob_key not in storage.blobs


async def test_default_image_is_never_deleted(image_service, db_session, storage):
    default = await image_service.get_default_image(db_session)

    assert await image_service.delete_image(db_session, default) is None
    await db_session.commit()
    assert await db_session.get(Image, DEFAULT_PROFILE_IMAGE_ID) is not None
    assert storage.deleted == []


async def test_missing_default_image(image_service, db_session):
    default = await db_session.get(Image, DEFAULT_PROFILE_IMAGE_ID)
    await db_session.delete(default)
    await db_session.flush()

    with pytest.raises(ImageNotFoundException):
        await image_service.get_default_image(db_session)


async def test_blob_cleanup_failures_are_tolerated(db_session):
    class FailingStorage(StorageService):
        async def upload_image(self, content: bytes, filename: str, content_type: str):
            raise RuntimeError("storage down")

        async def delete_image(self, blob_key: str) -> None:
            raise RuntimeError("storage down")

    service = ImageService(FailingStorage())
    await service.delete_blobs(["images/a.png", None, "images/b.png"])

    deleted_count, errors = await FailingStorage().delete_images_by_keys(["images/a.png"])
    assert deleted_count == 0
    assert len(errors) == 1


def test_storage_without_upload_cannot_be_constructed():
    class DeleteOnlyStorage(StorageService):
        async def delete_image(self, blob_key: str) -> None:
            pass

    with pytest.raises(TypeError):
        DeleteOnlyStorage()


def test_is_empty_file():
    assert is_empty_file(None)
    assert is_empty_file(_upload(b"", filename=""))
    assert is_empty_file(_upload(b""))
    assert not is_empty_file(_upload(b"abc"))
