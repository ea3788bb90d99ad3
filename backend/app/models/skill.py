from sqlalchemy import Column, String, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class Skill(Base, IdMixin, TimestampMixin):
    """기술 스택"""
    __tablename__ = "skills"

    skill_name = Column(String(50), nullable=False, unique=True)


class UserSkill(Base, IdMixin, TimestampMixin):
    """사용자-기술 스택 연결"""
    __tablename__ = "user_skills"
    __table_args__ = (UniqueConstraint("user_id", "skill_id", name="uq_user_skills_user_skill"),)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id"), nullable=False)

    user = relationship("User", back_populates="user_skills")
    skill = relationship("Skill", lazy="joined")

    @classmethod
    def of(cls, user, skill) -> "UserSkill":
        return cls(user_id=user.id, skill_id=skill.id)
