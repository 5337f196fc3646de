# app/domains/inv/__init__.py

"""
FastAPI 애플리케이션의 'inv' 도메인 패키지입니다.

'inv' 도메인은 수량 관리(BULK) 품목과 개별 추적(ITEM_TRACKED) 품목이 공존하는
재고 분배/반납 엔진입니다. 입고, 분배, 반납, 사용/만료/분실 처리를
하나의 원자적 작업 단위로 실행하며, 모든 작업을 추가 전용 이력에 남깁니다.

주요 서브모듈:
- `models.py`: inventory_types, tracked_items, inventory_history, unattributed_scans 테이블의 SQLModel 정의.
- `schemas.py`: 요청 및 응답 Pydantic 모델.
- `crud.py`: 재고 유형 카탈로그(바코드 판별), 재고 원장, 개별 품목 저장소, 이력 원장, 미확인 스캔 기록.
- `services.py`: 작업 조정 서비스 (트랜잭션 경계).
- `routers.py`: HTTP 엔드포인트.
"""

__title__ = "HSTS Inventory Domain"
__description__ = "Dual-mode (bulk / item-tracked) inventory distribution-return engine."
__version__ = "0.1.0"
__all__ = []
