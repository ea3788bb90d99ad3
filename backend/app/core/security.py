from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from .config import settings
from .exceptions import InvalidTokenException


def create_access_token(
    data: Dict[str, Any],
    expires_minutes: Optional[int] = None,
    secret_key: Optional[str] = None,
) -> str:
    """서명된 액세스 토큰 생성 (sub, iat, exp, iss 포함)"""
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = data.copy()
    to_encode.update({"iat": now, "exp": expire, "iss": settings.TOKEN_ISSUER})
    return jwt.encode(to_encode, secret_key or settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, secret_key: Optional[str] = None) -> Dict[str, Any]:
    """토큰 서명/만료 검증 후 payload 반환. 실패 시 JWTError"""
    return jwt.decode(
        token,
        secret_key or settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        issuer=settings.TOKEN_ISSUER,
    )


class TokenProvider:
    """사용자 id를 담은 Bearer 토큰 발급/검증"""

    def __init__(self, secret_key: Optional[str] = None, expires_minutes: Optional[int] = None):
        self._secret_key = secret_key or settings.SECRET_KEY
        self._expires_minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def create(self, user) -> str:
        return create_access_token(
            data={"sub": str(user.id)},
            expires_minutes=self._expires_minutes,
            secret_key=self._secret_key,
        )

    def validate(self, token: str) -> str:
        try:
            payload = verify_token(token, secret_key=self._secret_key)
        except JWTError as e:
            raise InvalidTokenException() from e

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidTokenException()
        return str(user_id)


class Encryptor:
    """단방향 비밀번호 해시"""

    def hash(self, raw_password: str) -> str:
        return bcrypt.hashpw(raw_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def verify(self, raw_password: str, hashed_password: str) -> bool:
        if not raw_password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(raw_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # 해시 형식이 깨진 경우
            return False
