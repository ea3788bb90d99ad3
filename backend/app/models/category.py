from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class Category(Base, IdMixin, TimestampMixin):
    __tablename__ = "categories"

    category_name = Column(String(50), nullable=False, unique=True)

    posts = relationship("Post", back_populates="category")
