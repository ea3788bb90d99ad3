import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...api.dependencies import (
    get_current_user_id,
    get_user_service,
    parse_request_dto,
)
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, CategoryNames
from ...database.session import get_db
from ...schemas.common import IdResponse, MessageResponse, Page
from ...schemas.post import MyPageResponse
from ...schemas.user import (
    CreatePasswordRequest,
    DeleteRequest,
    EmailCertificationRequest,
    EmailCertificationResponse,
    LoginInfoResponse,
    LoginRequest,
    LoginResponse,
    MyInfoResponse,
    UpdatePasswordRequest,
    UserSaveRequest,
    UserUpdateRequest,
)
from ...services.user_service import UserService

router = APIRouter(prefix="/user", tags=["user"])
logger = logging.getLogger(__name__)


@router.post("/create", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request_dto: str = Form(..., alias="requestDto"),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """회원가입 - 프로필 이미지가 없으면 기본 이미지 사용"""
    request = parse_request_dto(request_dto, UserSaveRequest)
    user = await user_service.create(db, request, profile_image)
    return IdResponse(id=user.id)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.login(db, request)


@router.post("/email/certification", response_model=EmailCertificationResponse)
async def certificate_email(
    request: EmailCertificationRequest,
    user_service: UserService = Depends(get_user_service)
):
    code = await user_service.certificate_by_email(request.email)
    return EmailCertificationResponse(code=code)


@router.get("/me", response_model=LoginInfoResponse)
async def get_login_information(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.get_login_information(db, user_id)


@router.get("/mypage", response_model=MyInfoResponse)
async def get_my_page_information(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.get_my_page_information(db, user_id)


@router.post("/update", response_model=IdResponse)
async def update_user(
    request_dto: str = Form(..., alias="requestDto"),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    request = parse_request_dto(request_dto, UserUpdateRequest)
    user = await user_service.update(db, request, profile_image, user_id)
    return IdResponse(id=user.id)


@router.post("/password", response_model=MessageResponse)
async def update_password(
    request: UpdatePasswordRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    await user_service.update_password(db, request, user_id)
    return MessageResponse(message="비밀번호가 변경되었습니다.")


@router.post("/password/new", response_model=MessageResponse)
async def create_new_password(
    request: CreatePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """이메일+이름이 일치하면 임시 비밀번호를 메일로 발송"""
    await user_service.create_new_password(db, request)
    return MessageResponse(message="임시 비밀번호가 이메일로 발송되었습니다.")


@router.post("/delete", response_model=MessageResponse)
async def delete_user(
    request: DeleteRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    await user_service.delete(db, request, user_id)
    return MessageResponse(message="회원 탈퇴가 완료되었습니다.")


@router.get("/mypage/likes", response_model=Page[MyPageResponse])
async def get_posts_i_liked(
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.get_posts_i_liked(db, user_id, page, size)


@router.get("/mypage/replies", response_model=Page[MyPageResponse])
async def get_posts_i_replied(
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.get_posts_i_replied(db, user_id, page, size)


@router.get("/mypage/participating/{category_name}", response_model=Page[MyPageResponse])
async def get_my_participating_posts(
    category_name: CategoryNames,
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.get_my_participating_posts(db, user_id, category_name, page, size)
