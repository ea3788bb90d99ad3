from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy import text, select
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
import logging

from ..core.config import settings
from ..core.constants import DEFAULT_PROFILE_IMAGE_ID, CategoryNames, BASE_SKILLS

# 로깅 설정
logger = logging.getLogger(__name__)

# SQLAlchemy Base 클래스 생성
Base = declarative_base()


def build_engine(database_url: str = None) -> AsyncEngine:
    """설정된 DB 종류에 맞춰 비동기 엔진 생성"""
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        # SQLite(테스트/로컬)는 커넥션 풀 옵션을 받지 않는다
        return create_async_engine(url, echo=settings.DEBUG, poolclass=NullPool)

    return create_async_engine(
        url,
        echo=settings.DEBUG,  # 디버그 모드에서 SQL 쿼리 출력
        pool_pre_ping=True,  # 연결 상태를 미리 확인
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        connect_args={
            "server_settings": {
                "application_name": settings.APP_NAME,
            },
            "command_timeout": 60,
        }
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


# 비동기 엔진 / 세션 팩토리 (애플리케이션 기본값)
engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncSession: # type: ignore
    """
    FastAPI 의존성 주입용 데이터베이스 세션 제공 함수
    트랜잭션 제어(commit, rollback)는 서비스 레이어에서 수행합니다.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session  # 세션을 라우터 함수에 제공
        except Exception as e:
            await session.rollback() # 예외 발생 시 롤백
            logger.error(f"Database session error occurred, rolling back: {e}")
            raise
        finally:
            await session.close() # 세션 종료


async def init_db(bind: AsyncEngine = None):
    """
    데이터베이스 초기화 함수
    테이블을 생성하고 초기 데이터를 설정합니다.
    """
    # 모든 모델을 Base.metadata 에 등록
    from .. import models  # noqa: F401

    target = bind or engine
    try:
        async with target.begin() as conn:
            # 주의: 프로덕션에서는 Alembic 마이그레이션을 사용하세요
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")

        async with build_session_factory(target)() as session:
            await seed_initial_data(session)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def seed_initial_data(session: AsyncSession):
    """기본 프로필 이미지(id=1), 카테고리, 기술 스택 시드"""
    from ..models import Image, Category, Skill

    default_image = await session.get(Image, DEFAULT_PROFILE_IMAGE_ID)
    if default_image is None:
        session.add(Image(
            id=DEFAULT_PROFILE_IMAGE_ID,
            image_url=settings.DEFAULT_PROFILE_IMAGE_URL,
            blob_key=None
        ))
        await session.flush()
        if session.bind.dialect.name == "postgresql":
            # id를 직접 지정했으므로 시퀀스를 맞춰 둔다
            await session.execute(text(
                "SELECT setval(pg_get_serial_sequence('images', 'id'), (SELECT MAX(id) FROM images))"
            ))
        logger.info("기본 프로필 이미지 시드 완료")

    existing_categories = set((await session.execute(select(Category.category_name))).scalars().all())
    for category in CategoryNames:
        if category.value not in existing_categories:
            session.add(Category(category_name=category.value))

    existing_skills = set((await session.execute(select(Skill.skill_name))).scalars().all())
    for skill_name in BASE_SKILLS:
        if skill_name not in existing_skills:
            session.add(Skill(skill_name=skill_name))

    await session.commit()


async def close_db():
    """
    데이터베이스 연결 종료 함수
    애플리케이션 종료 시 호출됩니다.
    """
    await engine.dispose()
    logger.info("Database connections closed")


async def check_db_connection(session_factory: async_sessionmaker = None) -> bool:
    """
    데이터베이스 연결 상태를 확인하는 헬스체크 함수
    """
    factory = session_factory or AsyncSessionLocal
    try:
        async with factory() as session:
            # 간단한 쿼리로 연결 확인
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
