# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

주요 서브모듈은 다음과 같습니다:

- `config.py`: 애플리케이션의 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 데이터베이스 연결, 세션 관리 (SQLModel 및 AsyncSQLAlchemy).
- `crud_base.py`: 모든 도메인이 공유하는 비동기 CRUD 기본 클래스.
- `exceptions.py`: 재고 엔진의 도메인 예외 체계와 저장소 오류.
- `dependencies.py`: FastAPI의 의존성 주입 시스템에서 사용될 공통 의존성 함수들.
"""

__title__ = "HSTS Core"
__description__ = "Core components for HSTS FastAPI application."
__version__ = "0.1.0"
__all__ = []
