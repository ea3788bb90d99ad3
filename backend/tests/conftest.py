"""
공통 pytest 픽스처

- 테스트마다 tmp_path 아래 SQLite 파일 DB (aiosqlite) 를 새로 만들고 시드한다
- Blob 저장소와 메일 발송은 메모리 대역으로 바꿔 create_app() 에 주입한다
- httpx AsyncClient + ASGITransport 로 앱을 직접 호출한다
"""

import io
import json
import os
import tempfile
from typing import Dict, List, Optional, Tuple

# 앱 모듈을 import 하기 전에 테스트용 설정을 넣는다
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='mogu_test_')}/default.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image as PILImage

from app.database.session import build_engine, build_session_factory, get_db, init_db
from app.main import create_app
from app.services.email_service import EmailService
from app.services.storage_service import StorageService


class InMemoryStorageService(StorageService):
    """업로드된 blob 을 dict 에 보관하는 저장소 대역"""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    async def upload_image(self, content: bytes, filename: str, content_type: str) -> Tuple[str, str]:
        blob_key = self.build_blob_key(filename)
        self.blobs[blob_key] = content
        return f"https://mogutest.blob.core.windows.net/mogu-images/{blob_key}", blob_key

    async def delete_image(self, blob_key: str) -> None:
        self.blobs.pop(blob_key, None)
        self.deleted.append(blob_key)


class RecordingEmailService(EmailService):
    """SMTP 대신 발송 내역만 기록"""

    def __init__(self):
        super().__init__(host="localhost", port=25, sender="noreply@mogu.test")
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))


def png_bytes(color: str = "red") -> bytes:
    buffer = io.BytesIO()
    PILImage.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


def user_payload(
    email: str = "a@x.com",
    nickname: str = "nick",
    phone: str = "01012345678",
    password: str = "Abcd1234",
    name: str = "홍길동"
) -> dict:
    return {"email": email, "password": password, "name": name, "nickname": nickname, "phone": phone}


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return InMemoryStorageService()


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def app(session_factory, storage, email_service):
    application = create_app(storage_service=storage, email_service=email_service)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def signup(client):
    """회원가입 후 로그인까지 하고 (user_id, token) 반환"""

    async def _signup(
        email: str = "a@x.com",
        nickname: str = "nick",
        phone: str = "01012345678",
        password: str = "Abcd1234",
        profile_image: Optional[bytes] = None
    ) -> Tuple[int, str]:
        files = {"profileImage": ("me.png", profile_image, "image/png")} if profile_image else None
        response = await client.post(
            "/user/create",
            data={"requestDto": json.dumps(user_payload(email, nickname, phone, password))},
            files=files
        )
        assert response.status_code == 201, response.text

        login = await client.post("/user/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        body = login.json()
        return body["id"], body["token"]

    return _signup


@pytest.fixture
def create_post(client):
    """게시글 작성 후 id 반환"""

    async def _create_post(
        token: str,
        category_id: int = 1,
        title: str = "팀원 구합니다",
        content: str = "FastAPI 프로젝트 같이 하실 분",
        images: Optional[List[bytes]] = None
    ) -> int:
        files = [
            ("multipartFiles", (f"image{i}.png", image, "image/png"))
            for i, image in enumerate(images or [])
        ]
        response = await client.post(
            "/posts/create",
            data={"requestDto": json.dumps({"title": title, "content": content, "category_id": category_id})},
            files=files or None,
            headers=auth_header(token)
        )
        assert response.status_code == 200, response.text
        return response.json()["id"]

    return _create_post
