"""요청 DTO 검증 (비밀번호/휴대폰 정책, 게시글 제목 길이)"""

import pytest
from pydantic import ValidationError

from app.schemas.post import PostSaveRequest
from app.schemas.user import UpdatePasswordRequest, UserSaveRequest


def _user(**overrides) -> dict:
    data = {
        "email": "a@x.com",
        "password": "Abcd1234",
        "name": "홍길동",
        "nickname": "nick",
        "phone": "01012345678",
    }
    data.update(overrides)
    return data


class TestPasswordPolicy:

    @pytest.mark.parametrize("password", ["Abcd1234", "a1b2c3d4", "ABCDEFG1", "A1" * 10])
    def test_accepts_letters_and_digits_8_to_20(self, password):
        assert UserSaveRequest(**_user(password=password)).password == password

    @pytest.mark.parametrize("password", [
        "abcdefgh",        # 숫자 없음
        "12345678",        # 영문 없음
        "Abc1234",         # 7자
        "A1" * 10 + "a",   # 21자
        "Abcd123!",        # 특수문자
        "Abcd 1234",       # 공백
    ])
    def test_rejects_other_passwords(self, password):
        with pytest.raises(ValidationError):
            UserSaveRequest(**_user(password=password))

    def test_new_password_follows_same_policy(self):
        with pytest.raises(ValidationError):
            UpdatePasswordRequest(current_password="Abcd1234", new_password="short")

    def test_same_password_is_detected(self):
        request = UpdatePasswordRequest(current_password="Abcd1234", new_password="Abcd1234")
        assert request.is_already_my_password()


class TestPhonePolicy:

    @pytest.mark.parametrize("phone", ["01012345678", "0111234567", "01912345678"])
    def test_accepts_korean_mobile_numbers(self, phone):
        assert UserSaveRequest(**_user(phone=phone)).phone == phone

    @pytest.mark.parametrize("phone", ["010-1234-5678", "01212345678", "0101234", "021234567"])
    def test_rejects_other_numbers(self, phone):
        with pytest.raises(ValidationError):
            UserSaveRequest(**_user(phone=phone))


class TestPostSaveRequest:

    def test_title_longer_than_50_is_rejected(self):
        with pytest.raises(ValidationError):
            PostSaveRequest(title="가" * 51, content="내용", category_id=1)

    def test_blank_title_is_rejected(self):
        with pytest.raises(ValidationError):
            PostSaveRequest(title="   ", content="내용", category_id=1)
