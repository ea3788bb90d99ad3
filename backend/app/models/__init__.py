from .base import Base
from .image import Image
from .category import Category
from .skill import Skill, UserSkill
from .user import User
from .post import Post, ImagePost
from .like import Like
from .reply import Reply

__all__ = [
    "Base",
    "Image",
    "Category",
    "Skill",
    "UserSkill",
    "User",
    "Post",
    "ImagePost",
    "Like",
    "Reply",
]
