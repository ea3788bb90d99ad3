from sqlalchemy import Column, String
from .base import Base, IdMixin, TimestampMixin


class Image(Base, IdMixin, TimestampMixin):
    """업로드 이미지 (id=1 은 기본 프로필 이미지)"""
    __tablename__ = "images"
    __table_args__ = {"comment": "업로드 이미지"}

    image_url = Column(String(500), nullable=False, comment="Blob Storage 절대 URL")
    # URL 접두사 길이에 의존하지 않도록 삭제용 키를 함께 저장
    blob_key = Column(String(300), nullable=True, comment="Blob 키 (기본 이미지는 NULL)")

    def __repr__(self):
        return f"<Image(id={self.id}, blob_key={self.blob_key})>"
