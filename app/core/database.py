# app/core/database.py

"""
애플리케이션의 데이터베이스 연결 및 세션 관리를 담당하는 모듈입니다.

- SQLModel의 비동기 엔진을 설정합니다.
- 비동기 세션 생성을 위한 유틸리티 함수를 제공합니다.
- 애플리케이션 시작 시 데이터베이스 테이블을 생성하는 함수를 포함합니다 (개발용).
"""

import logging
from typing import Any, AsyncGenerator, Dict
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import configure_mappers, sessionmaker

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings

# =============================================================================
# 모든 도메인 모델 임포트
# =============================================================================
# 모든 SQLModel 클래스가 SQLModel.metadata에 등록되도록 명시적으로 임포트합니다.
from app.domains.usr import models      # noqa
from app.domains.inv import models      # noqa

logger = logging.getLogger(__name__)


def build_engine(url: str, *, echo: bool = False, **overrides: Any) -> AsyncEngine:
    """
    URL 방언에 맞는 커넥션 풀 옵션으로 비동기 엔진을 생성합니다.
    SQLite(aiosqlite)나 poolclass를 직접 지정한 경우(예: 테스트의 NullPool)는 풀 크기 옵션을 제외합니다.
    """
    options: Dict[str, Any] = {"echo": echo, "future": True}
    if make_url(url).get_backend_name() != "sqlite" and "poolclass" not in overrides:
        options.update(
            pool_recycle=3600,  # 1시간마다 연결 재활용
            pool_size=10,       # 최소 10개의 연결 유지
            max_overflow=20,    # 최대 20개의 추가 연결 허용 (총 30개)
        )
    options.update(overrides)
    return create_async_engine(url, **options)


engine: AsyncEngine = build_engine(
    settings.DATABASE_URL.get_secret_value(),
    echo=settings.DEBUG_MODE,  # 디버그 모드일 때만 SQL 쿼리 출력
)

# 비동기 세션을 생성하는 '세션 공장'을 정의합니다.
AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

metadata = SQLModel.metadata

# 매퍼 구성 완료 플래그 (중복 호출 방지)
_mappers_configured = False


# =============================================================================
# 데이터베이스 초기화 및 테이블 생성 함수
# =============================================================================
async def create_db_and_tables(target: AsyncEngine = engine) -> None:
    """
    데이터베이스 테이블을 생성합니다.
    개발 환경과 테스트 픽스처에서 사용하며, 기존 테이블을 삭제하지는 않습니다.
    """
    global _mappers_configured

    if not _mappers_configured:
        configure_mappers()
        _mappers_configured = True

    async with target.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created (or already present).")


# =============================================================================
# 비동기 데이터베이스 세션 의존성 주입
# =============================================================================
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    요청마다 새로운 세션을 생성하고, 요청 처리 후 세션을 자동으로 닫습니다.
    트랜잭션 경계는 inv 서비스 계층이 작업 단위로 직접 관리합니다.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    CLI 스크립트 등 요청 밖의 비동기 컨텍스트에서 사용할 독립적인 세션을 제공합니다.
    """
    async with AsyncSessionLocal() as session:
        yield session
