from sqlalchemy import Column, Text, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class Reply(Base, IdMixin, TimestampMixin):
    """게시글 댓글"""
    __tablename__ = "replies"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    post = relationship("Post", back_populates="replies")
