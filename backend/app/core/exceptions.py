from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

logger = logging.getLogger(__name__)

def _get_allowed_origins_set() -> set[str]:
    """허용된 오리진 목록을 집합으로 반환"""
    from .config import settings
    return set(settings.CORS_ORIGINS or [])

ALLOWED_ORIGINS_SET = _get_allowed_origins_set()

def _conditionally_set_cors_headers(request: Request, response: JSONResponse):
    """요청 Origin이 허용 목록에 있을 때만 CORS 헤더 설정"""
    origin = request.headers.get("origin")
    if origin and origin in ALLOWED_ORIGINS_SET:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Credentials"] = "true"

class MoguException(Exception):
    """애플리케이션 기본 예외 클래스"""
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    default_message: str = "잘못된 요청입니다."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

# 409
class DuplicatedEmailException(MoguException):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATED_EMAIL"
    default_message = "이미 등록된 이메일입니다."

class DuplicatedNicknameException(MoguException):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATED_NICKNAME"
    default_message = "이미 등록된 닉네임입니다."

class DuplicatedPhoneException(MoguException):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATED_PHONE"
    default_message = "이미 등록된 휴대폰 번호입니다"

# 401 / 403
class NotLoggedInException(MoguException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_LOGGED_IN"
    default_message = "로그인이 필요합니다."

class WrongPasswordException(MoguException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "WRONG_PASSWORD"
    default_message = "잘못된 비밀번호를 입력하였습니다."

class UserDeletedException(MoguException):
    status_code = status.HTTP_403_FORBIDDEN
    code = "USER_DELETED"
    default_message = "탈퇴한 회원입니다."

class InvalidTokenException(MoguException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_TOKEN"
    default_message = "유효하지 않거나 만료된 토큰입니다."

class PostForbiddenException(MoguException):
    status_code = status.HTTP_403_FORBIDDEN
    code = "POST_FORBIDDEN"
    default_message = "자신이 작성한 게시글만 수정하거나 삭제할 수 있습니다."

# 400
class AlreadyMyPasswordException(MoguException):
    code = "ALREADY_MY_PASSWORD"
    default_message = "현재 사용중인 비밀번호와 동일합니다."

class InvalidRequestException(MoguException):
    code = "INVALID_REQUEST"
    default_message = "요청 형식이 올바르지 않습니다."

# 404
class UserNotFoundException(MoguException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"
    default_message = "존재하지 않는 사용자 입니다."

class PostNotFoundException(MoguException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "POST_NOT_FOUND"
    default_message = "존재하지 않는 게시글입니다."

class CategoryNotFoundException(MoguException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "CATEGORY_NOT_FOUND"
    default_message = "존재하지 않는 카테고리입니다."

class UserSkillNotFoundException(MoguException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "USER_SKILL_NOT_FOUND"
    default_message = "존재하지 않는 기술 스택입니다."

# 500
class ImageNotFoundException(MoguException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "IMAGE_NOT_FOUND"
    default_message = "기본 프로필 이미지를 찾지 못했습니다."

class FailedImageUploadException(MoguException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "FAILED_IMAGE_UPLOAD"
    default_message = "이미지 업로드에 실패했습니다."

class FailedImageConvertException(MoguException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "FAILED_IMAGE_CONVERT"
    default_message = "이미지 파일 변환에 실패했습니다."

# 전역 예외 처리기
async def mogu_exception_handler(request: Request, exc: MoguException):
    if exc.status_code >= 500:
        logger.error(f"Application error: {exc.code} - {exc.message}")
    else:
        logger.warning(f"Application error: {exc.code} - {exc.message}")
    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "code": exc.code
        }
    )
    _conditionally_set_cors_headers(request, response)
    return response

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc.errors()}")
    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "ValidationError",
            "message": "입력 데이터가 올바르지 않습니다",
            "details": jsonable_errors(exc)
        }
    )
    _conditionally_set_cors_headers(request, response)
    return response

async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP error: {exc.status_code} - {exc.detail}")
    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "message": exc.detail
        }
    )
    _conditionally_set_cors_headers(request, response)
    return response

async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"전역 예외: {type(exc).__name__}: {str(exc)}")
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "InternalServerError",
            "message": "서버 내부 오류가 발생했습니다"
        }
    )
    _conditionally_set_cors_headers(request, response)
    return response

def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx 안의 ValueError 등은 JSON 직렬화가 안 되므로 문자열로 바꾼다
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        error.pop("input", None)
        errors.append(error)
    return errors
