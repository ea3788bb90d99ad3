import json
from typing import Optional, Type, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from ..core.exceptions import InvalidRequestException, NotLoggedInException
from ..services.post_service import PostService
from ..services.user_service import UserService

T = TypeVar("T", bound=BaseModel)


def get_current_user_id_optional(request: Request) -> Optional[int]:
    """AuthenticationMiddleware 가 남긴 사용자 id. 비로그인이면 None"""
    return getattr(request.state, "principal_id", None)


def get_current_user_id(request: Request) -> int:
    user_id = get_current_user_id_optional(request)
    if user_id is None:
        raise NotLoggedInException()
    return user_id


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service


def parse_request_dto(raw: str, schema: Type[T]) -> T:
    """multipart 의 JSON 파트(requestDto)를 요청 DTO 로 변환"""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise InvalidRequestException() from e
    if not isinstance(data, dict):
        raise InvalidRequestException()

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        # 일반 요청 바디 검증과 같은 422 응답으로 맞춘다
        raise RequestValidationError(e.errors()) from e
