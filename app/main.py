# app/main.py

"""
HSTS 재고 분배/반납 서비스의 FastAPI 애플리케이션 진입점입니다.
"""

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

# 핵심 설정 및 데이터베이스 모듈 임포트
from app import API_PREFIX, APP_NAME, APP_VERSION
from app.core.config import settings
from app.core.database import create_db_and_tables, engine, get_session
from app.core.exception_handlers import register_exception_handlers

# 도메인 라우터 임포트
from app.domains.inv.routers import router as inv_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    시작 시 테이블을 준비하고, 종료 시 데이터베이스 연결 풀을 정리합니다.
    """
    logger.info("FastAPI 애플리케이션 시작 중...")
    await create_db_and_tables()

    yield  # 애플리케이션 실행

    logger.info("FastAPI 애플리케이션 종료 중...")
    await engine.dispose()
    logger.info("데이터베이스 연결 풀 종료 완료.")


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title=APP_NAME,
    description="Dual-mode (bulk / item-tracked) inventory distribution and return engine for hospital supplies.",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -- CORS 미들웨어 설정 --
# 프로덕션에서는 'allow_origins'를 실제 프론트엔드 도메인으로 제한해야 합니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# -- 도메인 라우터 포함 --
app.include_router(inv_router, prefix=f"{API_PREFIX}/inv", tags=["Inventory Distribution (재고 분배/반납)"])


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    """
    API의 루트 엔드포인트입니다. 문서 링크를 제공합니다.
    """
    return {"message": "Welcome to HSTS Inventory API. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    데이터베이스 연결을 테스트하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.execute(text("SELECT 1"))
        if result.scalar() == 1:
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )


# -- Uvicorn 서버 직접 실행 (개발용) --
# if __name__ == "__main__":
#     import uvicorn
#     uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
