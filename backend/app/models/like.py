from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class Like(Base, IdMixin, TimestampMixin):
    __tablename__ = "likes"
    # (user, post) 당 좋아요 1개
    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)

    post = relationship("Post", back_populates="likes")
