import re
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..core.constants import PHONE_REGEX, PASSWORD_REGEX


def _validate_password(v: str) -> str:
    if not re.match(PASSWORD_REGEX, v or ""):
        raise ValueError("비밀번호는 영문과 숫자를 포함한 8~20자여야 합니다")
    return v


def _validate_phone(v: str) -> str:
    if not re.match(PHONE_REGEX, v or ""):
        raise ValueError("휴대폰 번호 형식이 올바르지 않습니다")
    return v


# 회원가입 요청 (multipart 의 requestDto 파트)
class UserSaveRequest(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=30)
    nickname: str = Field(..., min_length=1, max_length=30)
    phone: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _validate_password(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    token: str
    id: int
    nickname: str
    profile_image_url: str


class LoginInfoResponse(BaseModel):
    id: int
    nickname: str
    profile_image_url: str


class MyInfoResponse(BaseModel):
    id: int
    email: str
    name: str
    nickname: str
    phone: str
    introduction: Optional[str] = None
    profile_image_url: str
    skills: List[str] = []


# 회원정보 수정 요청 (multipart 의 requestDto 파트)
class UserUpdateRequest(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=30)
    phone: str
    introduction: Optional[str] = Field(None, max_length=255)
    skills: List[str] = []

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return _validate_password(v)

    def is_already_my_password(self) -> bool:
        return self.current_password == self.new_password


class CreatePasswordRequest(BaseModel):
    email: EmailStr
    name: str


class DeleteRequest(BaseModel):
    password: str


class EmailCertificationRequest(BaseModel):
    email: EmailStr


class EmailCertificationResponse(BaseModel):
    code: str
