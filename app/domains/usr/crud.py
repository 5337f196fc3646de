# app/domains/usr/crud.py

"""
'usr' 도메인의 CRUD 작업을 담당하는 모듈입니다.
재고 엔진은 부서 존재 여부 확인에만 이 모듈을 사용합니다.
"""

from typing import Optional
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# 공통 CRUDBase 및 usr 도메인의 구성요소 임포트
from app.core.crud_base import CRUDBase
from . import models as usr_models
from . import schemas as usr_schemas


# =============================================================================
# 1. departments 테이블 CRUD
# =============================================================================
class CRUDDepartment(CRUDBase[usr_models.Department, usr_schemas.DepartmentCreate, SQLModel]):
    def __init__(self):
        super().__init__(model=usr_models.Department)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[usr_models.Department]:
        return await self.get_by_attribute(db, attribute="code", value=code)

    async def exists(self, db: AsyncSession, *, id: int) -> bool:
        """부서 ID가 존재하는지 확인합니다."""
        return await self.get(db, id=id) is not None


department = CRUDDepartment()


# =============================================================================
# 2. users 테이블 CRUD
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, SQLModel]):
    def __init__(self):
        super().__init__(model=usr_models.User)


user = CRUDUser()
