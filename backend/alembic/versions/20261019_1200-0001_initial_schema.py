"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00.000000+09:00
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

from app.core.config import settings
from app.core.constants import BASE_SKILLS, DEFAULT_PROFILE_IMAGE_ID, CategoryNames

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'images',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('blob_key', sa.String(300), nullable=True),
        *_timestamps(),
        comment='업로드 이미지'
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category_name', sa.String(50), nullable=False, unique=True),
        *_timestamps()
    )
    op.create_table(
        'skills',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('skill_name', sa.String(50), nullable=False, unique=True),
        *_timestamps()
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('password', sa.String(100), nullable=False),
        sa.Column('name', sa.String(30), nullable=False),
        sa.Column('nickname', sa.String(30), nullable=False, unique=True),
        sa.Column('phone', sa.String(11), nullable=False, unique=True),
        sa.Column('introduction', sa.String(255), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('image_id', sa.Integer(), sa.ForeignKey('images.id'), nullable=False),
        *_timestamps(),
        comment='회원'
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'user_skills',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('skill_id', sa.Integer(), sa.ForeignKey('skills.id'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'skill_id', name='uq_user_skills_user_skill')
    )
    op.create_index('ix_user_skills_user_id', 'user_skills', ['user_id'])

    op.create_table(
        'posts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('title', sa.String(50), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('view', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        comment='커뮤니티 게시글'
    )
    op.create_index('ix_posts_user_id', 'posts', ['user_id'])
    op.create_index('ix_posts_category_id', 'posts', ['category_id'])
    op.create_index('ix_posts_is_deleted', 'posts', ['is_deleted'])

    op.create_table(
        'image_posts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('image_id', sa.Integer(), sa.ForeignKey('images.id'), nullable=False),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id'), nullable=False),
        *_timestamps()
    )
    op.create_index('ix_image_posts_post_id', 'image_posts', ['post_id'])

    op.create_table(
        'likes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'post_id', name='uq_likes_user_post')
    )
    op.create_index('ix_likes_post_id', 'likes', ['post_id'])

    op.create_table(
        'replies',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps()
    )
    op.create_index('ix_replies_user_id', 'replies', ['user_id'])
    op.create_index('ix_replies_post_id', 'replies', ['post_id'])

    # 초기 데이터: 기본 프로필 이미지(id=1), 카테고리, 기술 스택
    images = sa.table('images', sa.column('id', sa.Integer), sa.column('image_url', sa.String))
    op.bulk_insert(images, [{'id': DEFAULT_PROFILE_IMAGE_ID, 'image_url': settings.DEFAULT_PROFILE_IMAGE_URL}])
    op.execute("SELECT setval(pg_get_serial_sequence('images', 'id'), (SELECT MAX(id) FROM images))")

    categories = sa.table('categories', sa.column('category_name', sa.String))
    op.bulk_insert(categories, [{'category_name': category.value} for category in CategoryNames])

    skills = sa.table('skills', sa.column('skill_name', sa.String))
    op.bulk_insert(skills, [{'skill_name': skill_name} for skill_name in BASE_SKILLS])


def downgrade() -> None:
    op.drop_table('replies')
    op.drop_table('likes')
    op.drop_table('image_posts')
    op.drop_table('posts')
    op.drop_table('user_skills')
    op.drop_table('users')
    op.drop_table('skills')
    op.drop_table('categories')
    op.drop_table('images')
