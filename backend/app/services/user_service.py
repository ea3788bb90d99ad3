import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.constants import DEFAULT_PROFILE_IMAGE_ID, CategoryNames
from ..core.exceptions import (
    AlreadyMyPasswordException,
    CategoryNotFoundException,
    DuplicatedEmailException,
    DuplicatedNicknameException,
    DuplicatedPhoneException,
    UserDeletedException,
    UserNotFoundException,
    UserSkillNotFoundException,
    WrongPasswordException,
)
from ..core.security import Encryptor, TokenProvider
from ..crud.category_crud import category_crud
from ..crud.like_crud import like_crud
from ..crud.post_crud import post_crud
from ..crud.reply_crud import reply_crud
from ..crud.skill_crud import skill_crud, user_skill_crud
from ..crud.user_crud import user_crud
from ..models.post import Post
from ..models.skill import UserSkill
from ..models.user import User
from ..schemas.common import Page
from ..schemas.post import MyPageResponse
from ..schemas.user import (
    CreatePasswordRequest,
    DeleteRequest,
    LoginInfoResponse,
    LoginRequest,
    LoginResponse,
    MyInfoResponse,
    UpdatePasswordRequest,
    UserSaveRequest,
    UserUpdateRequest,
)
from .email_service import EmailService
from .image_service import ImageService, is_empty_file

logger = logging.getLogger(__name__)


class UserService:
    """회원 가입/로그인/정보 수정/탈퇴 및 마이페이지 조회"""

    def __init__(
        self,
        image_service: ImageService,
        email_service: EmailService,
        token_provider: TokenProvider,
        encryptor: Encryptor
    ):
        self.image_service = image_service
        self.email_service = email_service
        self.token_provider = token_provider
        self.encryptor = encryptor

    async def create(
        self,
        db: AsyncSession,
        request: UserSaveRequest,
        profile_image: Optional[UploadFile] = None
    ) -> User:
        await self._check_duplicated_for_create(db, request)

        uploaded_keys: List[str] = []
        try:
            if is_empty_file(profile_image):
                image = await self.image_service.get_default_image(db)
            else:
                image = await self.image_service.save_profile_image(db, profile_image)
                uploaded_keys.append(image.blob_key)

            user = User(
                email=request.email,
                password=self.encryptor.hash(request.password),
                name=request.name,
                nickname=request.nickname,
                phone=request.phone,
                is_deleted=False,
                image_id=image.id
            )
            user.image = image
            db.add(user)
            await db.flush()
            await db.commit()
        except IntegrityError:
            # 동시 가입으로 unique 제약에 걸린 경우 어떤 값이 중복인지 다시 확인
            await db.rollback()
            await self.image_service.delete_blobs(uploaded_keys)
            logger.warning(f"회원 가입 중 unique 제약 충돌: email={request.email}")
            await self._check_duplicated_for_create(db, request)
            raise
        except Exception:
            await db.rollback()
            await self.image_service.delete_blobs(uploaded_keys)
            raise

        logger.info(f"회원 가입 완료: user_id={user.id}")
        return user

    async def login(self, db: AsyncSession, request: LoginRequest) -> LoginResponse:
        user = await user_crud.get_by_email(db, request.email)
        if user is None:
            raise UserNotFoundException("존재하지 않는 사용자 입니다.")
        if user.is_deleted:
            raise UserDeletedException()
        if not self.encryptor.verify(request.password, user.password):
            # 계정 존재 여부가 드러나지 않도록 not found 로 응답
            raise UserNotFoundException("이메일 또는 비밀번호가 일치하지 않습니다.")

        token = self.token_provider.create(user)
        logger.info(f"로그인 성공: user_id={user.id}")
        return LoginResponse(
            token=token,
            id=user.id,
            nickname=user.nickname,
            profile_image_url=user.image.image_url
        )

    async def get_my_page_information(self, db: AsyncSession, user_id: int) -> MyInfoResponse:
        user = await self._get_user(db, user_id)
        skills = await user_skill_crud.get_skill_names(db, user.id)
        return MyInfoResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            nickname=user.nickname,
            phone=user.phone,
            introduction=user.introduction,
            profile_image_url=user.image.image_url,
            skills=skills
        )

    async def get_login_information(self, db: AsyncSession, user_id: int) -> LoginInfoResponse:
        user = await self._get_user(db, user_id)
        return LoginInfoResponse(
            id=user.id,
            nickname=user.nickname,
            profile_image_url=user.image.image_url
        )

    async def update(
        self,
        db: AsyncSession,
        request: UserUpdateRequest,
        profile_image: Optional[UploadFile],
        user_id: int
    ) -> User:
        user = await self._get_user(db, user_id)
        current_nickname, current_phone = user.nickname, user.phone
        await self._check_duplicated_for_update(db, current_nickname, current_phone, request)

        uploaded_keys: List[str] = []
        stale_keys: List[Optional[str]] = []
        try:
            user.update_profile(request.nickname, request.phone, request.introduction)
            await self._update_skills(db, user, request.skills)

            # 새 이미지를 먼저 연결하고 기존 이미지는 그 다음에 지운다
            if not is_empty_file(profile_image):
                previous_image = user.image
                new_image = await self.image_service.save_profile_image(db, profile_image)
                uploaded_keys.append(new_image.blob_key)
                user.change_image(new_image)
                await db.flush()
                if previous_image.id != DEFAULT_PROFILE_IMAGE_ID:
                    stale_keys.append(await self.image_service.delete_image(db, previous_image))

            await db.commit()
        except IntegrityError:
            # rollback 이후 user 는 만료되므로 미리 읽어둔 값으로 비교
            await db.rollback()
            await self.image_service.delete_blobs(uploaded_keys)
            logger.warning(f"회원 정보 수정 중 unique 제약 충돌: user_id={user_id}")
            await self._check_duplicated_for_update(db, current_nickname, current_phone, request)
            raise
        except Exception:
            await db.rollback()
            await self.image_service.delete_blobs(uploaded_keys)
            raise

        await self.image_service.delete_blobs(stale_keys)
        logger.info(f"회원 정보 수정 완료: user_id={user.id}")
        return user

    async def update_password(self, db: AsyncSession, request: UpdatePasswordRequest, user_id: int) -> None:
        user = await self._get_user(db, user_id)

        if not self.encryptor.verify(request.current_password, user.password):
            raise WrongPasswordException()
        if request.is_already_my_password():
            raise AlreadyMyPasswordException()

        try:
            user.update_password(self.encryptor.hash(request.new_password))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"비밀번호 변경 완료: user_id={user.id}")

    async def create_new_password(self, db: AsyncSession, request: CreatePasswordRequest) -> None:
        user = await user_crud.get_by_email_and_name(db, request.email, request.name)
        if user is None:
            raise UserNotFoundException("존재하지 않는 사용자입니다.")

        try:
            new_password = await self.email_service.send_new_password_email(user.email)
            user.update_password(self.encryptor.hash(new_password))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"임시 비밀번호 발급 완료: user_id={user.id}")

    async def delete(self, db: AsyncSession, request: DeleteRequest, user_id: int) -> None:
        user = await self._get_user(db, user_id)

        if not self.encryptor.verify(request.password, user.password):
            raise WrongPasswordException()

        try:
            user.delete_user()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"회원 탈퇴 처리: user_id={user.id}")

    async def certificate_by_email(self, email: str) -> str:
        return await self.email_service.send_certification_email(email)

    async def get_posts_i_liked(
        self, db: AsyncSession, user_id: int, page: int, size: int
    ) -> Page[MyPageResponse]:
        user = await self._get_user(db, user_id)
        posts, total = await post_crud.get_posts_liked_by(db, user.id, skip=page * size, limit=size)
        return Page.of(await self._to_my_page_responses(db, posts, user), page, size, total)

    async def get_posts_i_replied(
        self, db: AsyncSession, user_id: int, page: int, size: int
    ) -> Page[MyPageResponse]:
        user = await self._get_user(db, user_id)
        posts, total = await post_crud.get_posts_replied_by(db, user.id, skip=page * size, limit=size)
        return Page.of(await self._to_my_page_responses(db, posts, user), page, size, total)

    async def get_my_participating_posts(
        self, db: AsyncSession, user_id: int, category_name: CategoryNames, page: int, size: int
    ) -> Page[MyPageResponse]:
        category = await category_crud.get_by_name(db, category_name.value)
        if category is None:
            raise CategoryNotFoundException("해당 카테고리가 존재하지 않습니다.")
        user = await self._get_user(db, user_id)
        posts, total = await post_crud.get_posts_by_user_and_category(
            db, user.id, category.id, skip=page * size, limit=size
        )
        return Page.of(await self._to_my_page_responses(db, posts, user), page, size, total)

    async def _get_user(self, db: AsyncSession, user_id: int) -> User:
        # 탈퇴 회원은 없는 회원으로 취급
        user = await user_crud.get_active(db, user_id)
        if user is None:
            raise UserNotFoundException()
        return user

    async def _check_duplicated_for_create(self, db: AsyncSession, request: UserSaveRequest) -> None:
        if await user_crud.exists_by_email(db, request.email):
            raise DuplicatedEmailException()
        if await user_crud.exists_by_nickname(db, request.nickname):
            raise DuplicatedNicknameException()
        if await user_crud.exists_by_phone(db, request.phone):
            raise DuplicatedPhoneException()

    async def _check_duplicated_for_update(
        self, db: AsyncSession, current_nickname: str, current_phone: str, request: UserUpdateRequest
    ) -> None:
        if current_nickname != request.nickname and await user_crud.exists_by_nickname(db, request.nickname):
            raise DuplicatedNicknameException()
        if current_phone != request.phone and await user_crud.exists_by_phone(db, request.phone):
            raise DuplicatedPhoneException()

    async def _update_skills(self, db: AsyncSession, user: User, skill_names: List[str]) -> None:
        updating = list(dict.fromkeys(skill_names or []))
        original_user_skills = await user_skill_crud.get_by_user_id(db, user.id)

        # 새 목록에 없는 기존 스킬 삭제
        original_names = set()
        for user_skill in original_user_skills:
            if user_skill.skill.skill_name in updating:
                original_names.add(user_skill.skill.skill_name)
            else:
                await db.delete(user_skill)

        # 기존에 없던 스킬 추가
        for skill_name in updating:
            if skill_name in original_names:
                continue
            skill = await skill_crud.get_by_name(db, skill_name)
            if skill is None:
                raise UserSkillNotFoundException()
            db.add(UserSkill.of(user, skill))
        await db.flush()

    async def _to_my_page_responses(
        self, db: AsyncSession, posts: List[Post], viewer: User
    ) -> List[MyPageResponse]:
        post_ids = [post.id for post in posts]
        like_counts = await like_crud.count_by_post_ids(db, post_ids)
        reply_counts = await reply_crud.count_by_post_ids(db, post_ids)
        liked_ids = await like_crud.liked_post_ids(db, viewer.id, post_ids)
        replied_ids = await reply_crud.replied_post_ids(db, viewer.id, post_ids)

        return [
            MyPageResponse(
                id=post.id,
                category_id=post.category_id,
                title=post.title,
                view=post.view,
                author_nickname=post.user.nickname,
                like_count=like_counts.get(post.id, 0),
                reply_count=reply_counts.get(post.id, 0),
                is_liked=post.id in liked_ids,
                is_replied=post.id in replied_ids,
                created_at=post.created_at
            )
            for post in posts
        ]
