# app/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 데이터베이스 세션 관리 (get_db_session).
- 요청을 수행하는 사용자 식별 (get_acting_user_id).
  인증은 이 서비스의 범위 밖이므로, 상위 게이트웨이가 전달한 `X-User-Id` 헤더를 신뢰합니다.
"""

from typing import AsyncGenerator, Optional

from fastapi import Header
from sqlmodel.ext.asyncio.session import AsyncSession

# 실제 데이터베이스 세션 제너레이터 임포트
from app.core.database import get_session as get_main_app_session


# --- 데이터베이스 세션 의존성 주입 ---
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    app.core.database.get_session을 래핑하여 사용합니다.
    """
    async for session in get_main_app_session():
        yield session


# --- 작업자 식별 의존성 ---
async def get_acting_user_id(
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id"),
) -> Optional[int]:
    """요청 헤더에서 작업자(사용자) ID를 읽습니다. 없으면 None."""
    return x_user_id
