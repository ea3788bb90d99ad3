from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer

from ..database.session import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdMixin:
    """정수 자동 증가 PK"""
    id = Column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="생성 시각")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, comment="수정 시각")


__all__ = ["Base", "IdMixin", "TimestampMixin", "utcnow"]
