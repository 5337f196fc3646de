# tests/domains/__init__.py

"""
도메인별 테스트 모듈 패키지입니다.

- `test_inv_catalog.py`: 재고 유형 카탈로그와 바코드 판별.
- `test_inv_operations.py`: 입고/분배/반납/사용/만료/분실 작업.
- `test_inv_concurrency.py`: 동시 분배, 추가 전용 레코드, 저장소 오류 변환.
- `test_inv_routers.py`: HTTP 엔드포인트와 오류 응답.
"""
