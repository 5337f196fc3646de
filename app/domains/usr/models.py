# app/domains/usr/models.py

"""
'usr' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

재고 엔진은 부서와 사용자를 외부 협력자로 취급합니다.
이 모듈의 테이블(departments, users)은 존재 여부 확인과
이력 레코드의 참조 대상으로만 사용됩니다.
"""

from typing import Optional
from datetime import datetime, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 1. departments 테이블 모델
# =============================================================================
class DepartmentBase(SQLModel):
    """
    departments 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    code: str = Field(max_length=16, sa_column_kwargs={"unique": True}, description="부서 코드 (예: XN, ER)")
    name: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="부서명")
    notes: Optional[str] = Field(default=None, description="비고")


class Department(DepartmentBase, table=True):
    """
    departments 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "departments"

    id: Optional[int] = Field(default=None, primary_key=True, description="부서 고유 ID")
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 2. users 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    """
    users 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    username: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="로그인 사용자명")
    full_name: Optional[str] = Field(default=None, max_length=100, description="사용자 전체 이름")
    department_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            ForeignKey("departments.id", onupdate="CASCADE", ondelete="RESTRICT")
        ),
        description="소속 부서 ID (FK)"
    )
    is_active: bool = Field(default=True, description="계정 활성 여부")


class User(UserBase, table=True):
    """
    users 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )
