import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..core.exceptions import InvalidTokenException
from ..core.security import TokenProvider

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Authorization 헤더에서 Bearer 토큰만 추출. 접두사가 없거나 비어있거나 "null" 이면 None"""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token or token == "null":
        return None
    return token


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    요청마다 Bearer 토큰을 검증해 request.state.principal_id 에 사용자 id 를 남긴다.

    검증 실패는 로그만 남기고 비로그인 상태로 통과시킨다.
    인증이 필요한 엔드포인트는 의존성에서 401 로 거절한다.
    """

    def __init__(self, app, token_provider: TokenProvider):
        super().__init__(app)
        self.token_provider = token_provider

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.principal_id = None

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token:
            try:
                request.state.principal_id = int(self.token_provider.validate(token))
            except (InvalidTokenException, ValueError) as e:
                logger.warning(f"토큰 검증 실패, 비로그인으로 처리: path={request.url.path}, error={e}")

        return await call_next(request)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.perf_counter()
        path = request.url.path

        # 헬스체크는 로그 제외
        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code
        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(log_level, f"{request.method} {path} {status_code} {duration_ms:.1f}ms")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response
