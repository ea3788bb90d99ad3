import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ...api.dependencies import (
    get_current_user_id,
    get_current_user_id_optional,
    get_post_service,
    parse_request_dto,
)
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SortStatus
from ...database.session import get_db
from ...schemas.common import IdResponse, MessageResponse, Page
from ...schemas.post import (
    LikeResponse,
    PostResponse,
    PostSaveRequest,
    PostUpdateRequest,
    ReplyRequest,
)
from ...services.post_service import PostService

router = APIRouter(prefix="/posts", tags=["posts"])
logger = logging.getLogger(__name__)


@router.get("/list/{category_id}", response_model=Page[PostResponse])
async def get_post_list(
    category_id: int,
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: Optional[int] = Depends(get_current_user_id_optional),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    """카테고리별 게시글 목록 (최신순)"""
    return await post_service.get_post_list(
        db, category_id, page, size, sort=SortStatus.DEFAULT, viewer_id=user_id
    )


@router.get("/list/likes/{category_id}", response_model=Page[PostResponse])
async def get_post_list_by_likes(
    category_id: int,
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: Optional[int] = Depends(get_current_user_id_optional),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    """카테고리별 게시글 목록 (좋아요순)"""
    return await post_service.get_post_list(
        db, category_id, page, size, sort=SortStatus.LIKES, viewer_id=user_id
    )


@router.get("/post/{post_id}", response_model=PostResponse)
async def get_post_details(
    post_id: int,
    user_id: Optional[int] = Depends(get_current_user_id_optional),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    return await post_service.get_post_details(db, post_id, user_id)


@router.post("/create", response_model=IdResponse)
async def create_post(
    request_dto: str = Form(..., alias="requestDto"),
    files: Optional[List[UploadFile]] = File(None, alias="multipartFiles"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    request = parse_request_dto(request_dto, PostSaveRequest)
    logger.info(f"게시글 작성 요청: user_id={user_id}, category_id={request.category_id}, file_count={len(files or [])}")
    post_id = await post_service.save_post(db, request, files, user_id)
    return IdResponse(id=post_id)


@router.post("/update/{post_id}", response_model=IdResponse)
async def update_post(
    post_id: int,
    request_dto: str = Form(..., alias="requestDto"),
    files: Optional[List[UploadFile]] = File(None, alias="multipartFiles"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    """게시글 수정 - 새 파일이 있으면 기존 첨부를 전부 교체"""
    request = parse_request_dto(request_dto, PostUpdateRequest)
    updated_id = await post_service.update_post(db, post_id, request, files, user_id)
    return IdResponse(id=updated_id)


@router.post("/delete/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    await post_service.delete_post(db, post_id, user_id)
    return MessageResponse(message="게시글이 삭제되었습니다.")


@router.post("/like/{post_id}", response_model=LikeResponse)
async def like_post(
    post_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    """좋아요 토글"""
    return await post_service.like_process(db, post_id, user_id)


@router.post("/reply/{post_id}", response_model=IdResponse)
async def create_reply(
    post_id: int,
    request: ReplyRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    post_service: PostService = Depends(get_post_service)
):
    reply_id = await post_service.save_reply(db, post_id, user_id, request.content)
    return IdResponse(id=reply_id)
