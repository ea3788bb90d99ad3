from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from ..core.constants import MAX_TITLE_LENGTH, LikeStatus


class PostSaveRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH, description="제목 (최대 50자)")
    content: str = Field(..., min_length=1, description="내용")
    category_id: int = Field(..., description="카테고리 ID")

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("제목과 내용은 필수입니다")
        return v


class PostUpdateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    content: str = Field(..., min_length=1)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("제목과 내용은 필수입니다")
        return v


class AuthorResponse(BaseModel):
    id: int
    nickname: str
    profile_image_url: Optional[str] = None


class PostResponse(BaseModel):
    id: int
    category_id: int
    title: str
    content: str
    view: int
    author: AuthorResponse
    images: List[str] = []
    like_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime


class MyPageResponse(BaseModel):
    id: int
    category_id: int
    title: str
    view: int
    author_nickname: str
    like_count: int = 0
    reply_count: int = 0
    is_liked: bool = False
    is_replied: bool = False
    created_at: datetime


class LikeResponse(BaseModel):
    status: LikeStatus
    count: int


class ReplyRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
