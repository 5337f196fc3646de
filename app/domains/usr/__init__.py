# app/domains/usr/__init__.py

"""
FastAPI 애플리케이션의 'usr' 도메인 패키지입니다.

'usr' 도메인은 부서와 사용자 정보를 보관합니다.
재고 엔진 입장에서 이들은 외부 협력자이며, 부서 존재 확인과
작업자(사용자) 참조에만 사용됩니다. 관리용 API는 제공하지 않습니다.

주요 서브모듈:
- `models.py`: departments, users 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 초기 데이터 적재용 생성/수정 스키마.
- `crud.py`: 부서/사용자 조회 로직.
"""

__title__ = "HSTS User Domain"
__description__ = "Holds department and user rows referenced by the inventory engine."
__version__ = "0.1.0"
__all__ = []
