from sqlalchemy import Column, String, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class User(Base, IdMixin, TimestampMixin):
    """회원 모델"""
    __tablename__ = "users"
    __table_args__ = {"comment": "회원"}

    email = Column(String(100), nullable=False, unique=True, index=True)
    password = Column(String(100), nullable=False, comment="bcrypt 해시")
    name = Column(String(30), nullable=False)
    nickname = Column(String(30), nullable=False, unique=True)
    phone = Column(String(11), nullable=False, unique=True)
    introduction = Column(String(255), nullable=True, comment="자기소개")
    is_deleted = Column(Boolean, default=False, nullable=False, comment="탈퇴 여부")

    image_id = Column(Integer, ForeignKey("images.id"), nullable=False)

    # 관계
    image = relationship("Image", lazy="joined")
    user_skills = relationship("UserSkill", back_populates="user", lazy="selectin")
    posts = relationship("Post", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, nickname={self.nickname}, is_deleted={self.is_deleted})>"

    def update_profile(self, nickname: str, phone: str, introduction=None):
        self.nickname = nickname
        self.phone = phone
        self.introduction = introduction

    def change_image(self, image):
        self.image = image
        self.image_id = image.id

    def update_password(self, hashed_password: str):
        self.password = hashed_password

    def delete_user(self):
        self.is_deleted = True
