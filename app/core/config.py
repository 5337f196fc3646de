# app/core/config.py

from typing import Any
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# 프로젝트의 루트 디렉토리 경로를 계산합니다.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    애플리케이션의 모든 설정을 정의하는 Pydantic BaseSettings 모델입니다.
    환경 변수 및 .env 파일에서 값을 자동으로 로드합니다.
    """

    # --- Pydantic Settings 설정 ---
    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),  # 프로젝트 루트의 .env 파일을 명시적으로 지정
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    # --- 애플리케이션 기본 설정 ---
    DEBUG_MODE: bool = Field(False, description="Enable debug mode for SQL echo and detailed error messages")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    # --- 데이터베이스 설정 ---
    DATABASE_URL: SecretStr = Field(..., description="Async SQLAlchemy database URL (postgresql+asyncpg://...)")
    # 행 잠금 대기 상한. 초과하면 트랜잭션은 재시도 가능한 충돌로 중단됩니다.
    LOCK_TIMEOUT_MS: int = Field(5000, ge=0, description="Row lock wait bound per transaction (milliseconds)")

    # --- 재고 엔진 설정 ---
    EXPIRING_SOON_DAYS: int = Field(30, ge=0, description="Window (days) for the expiring-items listing")
    BLOOD_BOTTLE_DEFAULT_UNIT: str = Field("bottle", description="Default unit label for blood bottle types")
    HISTORY_PAGE_LIMIT: int = Field(100, gt=0, description="Default and maximum page size for history listings")

    def model_post_init(self, __context: Any) -> None:  # noqa: ANN001
        self.LOG_LEVEL = self.LOG_LEVEL.upper()


settings = Settings()
