# app/domains/usr/schemas.py

"""
'usr' 도메인의 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
부서/사용자 관리 API는 제공하지 않으며, 초기 데이터 적재와 테스트 픽스처에서 사용합니다.
"""

from typing import Optional
from sqlmodel import SQLModel, Field


# =============================================================================
# 1. 부서 (Department) 스키마
# =============================================================================
class DepartmentCreate(SQLModel):
    code: str = Field(..., max_length=16)
    name: str = Field(..., max_length=100)
    notes: Optional[str] = None


# =============================================================================
# 2. 사용자 (User) 스키마
# =============================================================================
class UserCreate(SQLModel):
    """사용자 생성을 위한 스키마"""
    username: str = Field(..., max_length=50)
    full_name: Optional[str] = Field(None, max_length=100)
    department_id: Optional[int] = None
    is_active: bool = True
