"""회원 API 시나리오 테스트"""

import asyncio
import json

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.core.constants import DEFAULT_PROFILE_IMAGE_ID
from app.core.exceptions import DuplicatedNicknameException
from app.crud.user_crud import user_crud
from app.models import Image, User, UserSkill
from app.schemas.user import UserUpdateRequest
from conftest import auth_header, png_bytes, user_payload


async def test_register_without_image_uses_default_profile(client, session_factory):
    response = await client.post("/user/create", data={"requestDto": json.dumps(user_payload())})

    assert response.status_code == 201
    async with session_factory() as session:
        user = await session.get(User, response.json()["id"])
        assert user.image_id == DEFAULT_PROFILE_IMAGE_ID
        assert user.password != "Abcd1234"


async def test_register_with_same_email_conflicts(client):
    first = await client.post("/user/create", data={"requestDto": json.dumps(user_payload())})
    second = await client.post(
        "/user/create",
        data={"requestDto": json.dumps(user_payload(nickname="other", phone="01099998888"))}
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["message"] == "이미 등록된 이메일입니다."
    assert second.json()["code"] == "DUPLICATED_EMAIL"


async def test_register_with_same_nickname_or_phone_conflicts(client):
    await client.post("/user/create", data={"requestDto": json.dumps(user_payload())})

    same_nickname = await client.post(
        "/user/create",
        data={"requestDto": json.dumps(user_payload(email="b@x.com", phone="01099998888"))}
    )
    same_phone = await client.post(
        "/user/create",
        data={"requestDto": json.dumps(user_payload(email="c@x.com", nickname="other"))}
    )

    assert same_nickname.status_code == 409
    assert same_nickname.json()["code"] == "DUPLICATED_NICKNAME"
    assert same_phone.status_code == 409
    assert same_phone.json()["code"] == "DUPLICATED_PHONE"


async def test_concurrent_identical_registrations_yield_one_conflict(client, session_factory):
    body = {"requestDto": json.dumps(user_payload())}

    responses = await asyncio.gather(
        client.post("/user/create", data=body),
        client.post("/user/create", data=body),
    )

    assert sorted(response.status_code for response in responses) == [201, 409]
    conflict = next(response for response in responses if response.status_code == 409)
    assert conflict.json()["code"] == "DUPLICATED_EMAIL"
    async with session_factory() as session:
        assert await session.scalar(select(func.count(User.id))) == 1


async def test_register_rejects_weak_password(client, session_factory):
    response = await client.post(
        "/user/create",
        data={"requestDto": json.dumps(user_payload(password="password"))}
    )

    assert response.status_code == 422
    async with session_factory() as session:
        assert (await session.execute(select(User))).scalars().first() is None


async def test_register_rejects_malformed_request_part(client):
    response = await client.post("/user/create", data={"requestDto": "{not json"})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


async def test_register_with_profile_image_uploads_blob(client, storage, session_factory):
    response = await client.post(
        "/user/create",
        data={"requestDto": json.dumps(user_payload())},
        files={"profileImage": ("me.png", png_bytes(), "image/png")}
    )

    assert response.status_code == 201
    async with session_factory() as session:
        user = await session.get(User, response.json()["id"])
        assert user.image_id != DEFAULT_PROFILE_IMAGE_ID
        assert user.image.blob_key in storage.blobs


async def test_register_with_broken_image_fails_without_user(client, storage, session_factory):
    response = await client.post(
        "/user/create",
        data={"requestDto": json.dumps(user_payload())},
        files={"profileImage": ("me.png", b"definitely not an image", "image/png")}
    )

    assert response.status_code == 500
    assert response.json()["code"] == "FAILED_IMAGE_CONVERT"
    assert storage.blobs == {}
    async with session_factory() as session:
        assert (await session.execute(select(User))).scalars().first() is None


async def test_login_binds_principal_to_new_user(client, signup):
    user_id, token = await signup()

    response = await client.get("/user/me", headers=auth_header(token))

    assert response.status_code == 200
    assert response.json()["id"] == user_id
    assert response.json()["nickname"] == "nick"
    assert response.json()["profile_image_url"] == settings.DEFAULT_PROFILE_IMAGE_URL


async def test_login_with_wrong_password_is_not_found(client, signup):
    await signup()

    response = await client.post("/user/login", json={"email": "a@x.com", "password": "Wrong1234"})

    assert response.status_code == 404
    assert "token" not in response.json()


async def test_login_with_unknown_email_is_not_found(client):
    response = await client.post("/user/login", json={"email": "nobody@x.com", "password": "Abcd1234"})
    assert response.status_code == 404
    assert response.json()["code"] == "USER_NOT_FOUND"


async def test_protected_endpoint_without_token_is_unauthorized(client):
    response = await client.get("/user/me")

    assert response.status_code == 401
    assert response.json()["message"] == "로그인이 필요합니다."


async def test_invalid_token_is_treated_as_anonymous(client):
    headers = auth_header("broken.token.value")

    protected = await client.get("/user/me", headers=headers)
    public = await client.get("/posts/list/1", headers=headers)

    assert protected.status_code == 401
    assert public.status_code == 200


async def test_token_without_bearer_prefix_is_unauthorized(client, signup):
    _, token = await signup()

    response = await client.get("/user/me", headers={"Authorization": token})

    assert response.status_code == 401


async def test_update_profile_replaces_uploaded_image(client, signup, storage, session_factory):
    user_id, token = await signup(profile_image=png_bytes("red"))
    async with session_factory() as session:
        old_image = (await session.get(User, user_id)).image
        old_image_id, old_key = old_image.id, old_image.blob_key

    response = await client.post(
        "/user/update",
        data={"requestDto": json.dumps({
            "nickname": "renamed",
            "phone": "01011112222",
            "introduction": "백엔드 개발자",
            "skills": ["Python", "FastAPI"],
        })},
        files={"profileImage": ("new.png", png_bytes("blue"), "image/png")},
        headers=auth_header(token)
    )

    assert response.status_code == 200
    assert old_key not in storage.blobs
    async with session_factory() as session:
        user = await session.get(User, user_id)
        assert user.nickname == "renamed"
        assert user.image_id != old_image_id
        assert user.image.blob_key in storage.blobs
        assert await session.get(Image, old_image_id) is None

    my_page = await client.get("/user/mypage", headers=auth_header(token))
    assert sorted(my_page.json()["skills"]) == ["FastAPI", "Python"]


async def test_update_profile_never_deletes_default_image(client, signup, session_factory):
    user_id, token = await signup()

    response = await client.post(
        "/user/update",
        data={"requestDto": json.dumps({"nickname": "nick", "phone": "01012345678"})},
        files={"profileImage": ("new.png", png_bytes(), "image/png")},
        headers=auth_header(token)
    )

    assert response.status_code == 200
    async with session_factory() as session:
        assert await session.get(Image, DEFAULT_PROFILE_IMAGE_ID) is not None
        assert (await session.get(User, user_id)).image_id != DEFAULT_PROFILE_IMAGE_ID


async def test_update_skills_reconciles_and_rejects_unknown(client, signup, session_factory):
    user_id, token = await signup()
    body = {"nickname": "nick", "phone": "01012345678", "skills": ["Python", "Docker"]}
    await client.post("/user/update", data={"requestDto": json.dumps(body)}, headers=auth_header(token))

    body["skills"] = ["Docker", "React"]
    response = await client.post("/user/update", data={"requestDto": json.dumps(body)}, headers=auth_header(token))

    assert response.status_code == 200
    my_page = await client.get("/user/mypage", headers=auth_header(token))
    assert sorted(my_page.json()["skills"]) == ["Docker", "React"]

    body["skills"] = ["COBOL"]
    unknown = await client.post("/user/update", data={"requestDto": json.dumps(body)}, headers=auth_header(token))
    assert unknown.status_code == 404
    assert unknown.json()["code"] == "USER_SKILL_NOT_FOUND"
    async with session_factory() as session:
        rows = (await session.execute(select(UserSkill).where(UserSkill.user_id == user_id))).scalars().all()
        assert len(rows) == 2


async def test_update_to_taken_nickname_conflicts(client, signup):
    await signup(email="b@x.com", nickname="taken", phone="01099998888")
    _, token = await signup()

    response = await client.post(
        "/user/update",
        data={"requestDto": json.dumps({"nickname": "taken", "phone": "01012345678"})},
        headers=auth_header(token)
    )

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATED_NICKNAME"


async def test_nickname_taken_after_check_is_reported_as_conflict(app, signup, session_factory, monkeypatch):
    await signup(email="b@x.com", nickname="taken", phone="01099998888")
    user_id, _ = await signup()

    # 첫 중복 확인만 통과시켜 확인과 커밋 사이에 다른 회원이 닉네임을 가져간 상황을 만든다
    real_exists = user_crud.exists_by_nickname
    calls = []

    async def exists_after_first_check(db, nickname):
        calls.append(nickname)
        if len(calls) == 1:
            return False
        return await real_exists(db, nickname)

    monkeypatch.setattr(user_crud, "exists_by_nickname", exists_after_first_check)
    request = UserUpdateRequest(nickname="taken", phone="01012345678")

    async with session_factory() as session:
        with pytest.raises(DuplicatedNicknameException):
            await app.state.user_service.update(session, request, None, user_id)

    async with session_factory() as session:
        assert (await session.get(User, user_id)).nickname == "nick"


async def test_change_password(client, signup):
    _, token = await signup()

    wrong = await client.post(
        "/user/password",
        json={"current_password": "Wrong1234", "new_password": "Newpass1234"},
        headers=auth_header(token)
    )
    same = await client.post(
        "/user/password",
        json={"current_password": "Abcd1234", "new_password": "Abcd1234"},
        headers=auth_header(token)
    )
    changed = await client.post(
        "/user/password",
        json={"current_password": "Abcd1234", "new_password": "Newpass1234"},
        headers=auth_header(token)
    )

    assert wrong.status_code == 401
    assert same.status_code == 400
    assert same.json()["code"] == "ALREADY_MY_PASSWORD"
    assert changed.status_code == 200
    login = await client.post("/user/login", json={"email": "a@x.com", "password": "Newpass1234"})
    assert login.status_code == 200


async def test_reset_password_sends_new_password_by_email(client, signup, email_service):
    await signup()

    response = await client.post("/user/password/new", json={"email": "a@x.com", "name": "홍길동"})

    assert response.status_code == 200
    to, _, body = email_service.sent[-1]
    assert to == "a@x.com"
    new_password = body.split("임시 비밀번호: ")[1].split("\n")[0]
    login = await client.post("/user/login", json={"email": "a@x.com", "password": new_password})
    assert login.status_code == 200


async def test_reset_password_for_unknown_user(client, email_service):
    response = await client.post("/user/password/new", json={"email": "a@x.com", "name": "홍길동"})

    assert response.status_code == 404
    assert email_service.sent == []


async def test_email_certification_returns_sent_code(client, email_service):
    response = await client.post("/user/email/certification", json={"email": "a@x.com"})

    assert response.status_code == 200
    code = response.json()["code"]
    assert len(code) == 6 and code.isdigit()
    assert code in email_service.sent[-1][2]


async def test_deleted_user_cannot_log_in(client, signup):
    _, token = await signup()

    wrong = await client.post("/user/delete", json={"password": "Wrong1234"}, headers=auth_header(token))
    deleted = await client.post("/user/delete", json={"password": "Abcd1234"}, headers=auth_header(token))
    login = await client.post("/user/login", json={"email": "a@x.com", "password": "Abcd1234"})

    assert wrong.status_code == 401
    assert deleted.status_code == 200
    assert login.status_code == 403
    assert login.json()["message"] == "탈퇴한 회원입니다."

    # 탈퇴 후 남은 토큰으로는 회원 정보를 볼 수 없다
    me = await client.get("/user/me", headers=auth_header(token))
    assert me.status_code == 404
