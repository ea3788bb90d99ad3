from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class Post(Base, IdMixin, TimestampMixin):
    """커뮤니티 게시글 모델"""
    __tablename__ = "posts"
    __table_args__ = {"comment": "커뮤니티 게시글"}

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    title = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    view = Column(Integer, default=0, nullable=False, comment="조회수")
    is_deleted = Column(Boolean, default=False, nullable=False, index=True, comment="삭제 여부")

    # 관계
    user = relationship("User", back_populates="posts", lazy="joined")
    category = relationship("Category", back_populates="posts")
    image_posts = relationship("ImagePost", back_populates="post", order_by="ImagePost.id")
    likes = relationship("Like", back_populates="post")
    replies = relationship("Reply", back_populates="post")

    def __repr__(self):
        return f"<Post(id={self.id}, title={self.title}, is_deleted={self.is_deleted})>"

    def update_post(self, title: str, content: str):
        self.title = title
        self.content = content

    def change_status(self):
        self.is_deleted = True

    def is_written_by(self, user_id: int) -> bool:
        return self.user_id == user_id


class ImagePost(Base, IdMixin, TimestampMixin):
    """게시글-이미지 첨부 연결"""
    __tablename__ = "image_posts"

    image_id = Column(Integer, ForeignKey("images.id"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)

    image = relationship("Image", lazy="joined")
    post = relationship("Post", back_populates="image_posts")

    @classmethod
    def create_image_post(cls, image, post) -> "ImagePost":
        return cls(image_id=image.id, post_id=post.id)
