# app/__init__.py

"""
HSTS(Hospital Supply Tracking System) FastAPI 애플리케이션의 메인 패키지입니다.

이 패키지는 병원 소모품(시약, 혈액배양병)의 입고/불출/회수 엔진을 포함합니다.
FastAPI 애플리케이션의 진입점 (main.py)과
공통 설정, 데이터베이스 연결, 예외 체계를 담는 core 서브패키지,
그리고 각 비즈니스 도메인을 대표하는 domains 서브패키지로 구성됩니다.
"""

APP_NAME = "HSTS FastAPI API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # API 라우트의 공통 접두사 (main.py에서 적용)

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Hospital Supply Tracking System (HSTS) inventory API backend."
__all__ = []
