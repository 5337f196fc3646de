# tests/__init__.py

"""
HSTS 재고 API의 테스트 스위트 패키지입니다.

- `conftest.py`: 테스트마다 새 데이터베이스, 기준 데이터(부서/사용자/재고 유형), HTTP 클라이언트 픽스처.
- `test_main.py`: 루트 및 헬스 체크 엔드포인트.
- `domains/`: 도메인별 테스트 (카탈로그, 작업 조정 서비스, 동시성, HTTP 라우터).
"""
