# tests/conftest.py

"""
테스트 공용 픽스처 모듈입니다.

- 테스트 함수마다 새 데이터베이스를 사용합니다.
  기본값은 tmp_path 아래의 aiosqlite 파일이며, TEST_DATABASE_URL이 있으면 해당 DB를 사용합니다.
- 기준 데이터(부서, 사용자, 재고 유형)는 별도 세션에서 커밋하여,
  테스트 세션의 롤백이 픽스처 객체를 만료시키지 않도록 합니다.
"""

import os
from typing import AsyncGenerator, Callable, Awaitable

# app 임포트 전에 설정 필수값을 채웁니다. (모듈 수준 엔진은 연결하지 않으므로 실제 파일은 생성되지 않습니다)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./hsts_unused.db")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.main import app as main_app
from app.core import dependencies as deps
from app.core.database import build_engine, create_db_and_tables, get_session
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv import services as inv_services
from app.domains.usr import crud as usr_crud
from app.domains.usr import models as usr_models
from app.domains.usr import schemas as usr_schemas


# --- 데이터베이스 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트마다 모든 테이블이 생성된 새 데이터베이스 엔진을 제공합니다."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'hsts_test.db'}"
    engine = build_engine(url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await create_db_and_tables(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine: AsyncEngine) -> Callable[[], AsyncSession]:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """테스트 본문에서 서비스 호출에 사용하는 세션입니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
def reload(session_factory) -> Callable[..., Awaitable]:
    """새 세션으로 레코드를 다시 읽어오는 헬퍼를 반환합니다."""
    async def _reload(model, id):
        async with session_factory() as session:
            return await session.get(model, id)
    return _reload


# --- 기준 데이터 픽스처 ---
@pytest_asyncio.fixture(scope="function")
def department_factory(session_factory) -> Callable[..., Awaitable[usr_models.Department]]:
    async def _create(code: str, name: str) -> usr_models.Department:
        async with session_factory() as session:
            department = await usr_crud.department.create(
                session, obj_in=usr_schemas.DepartmentCreate(code=code, name=name)
            )
            await session.commit()
            return department
    return _create


@pytest_asyncio.fixture(scope="function")
async def test_department(department_factory) -> usr_models.Department:
    """분배 대상 부서 'XN'을 생성합니다."""
    return await department_factory("XN", "진단검사의학과")


@pytest_asyncio.fixture(scope="function")
async def test_user(session_factory, test_department: usr_models.Department) -> usr_models.User:
    async with session_factory() as session:
        user = await usr_crud.user.create(
            session,
            obj_in=usr_schemas.UserCreate(username="nurse01", full_name="테스트 간호사", department_id=test_department.id),
        )
        await session.commit()
        return user


@pytest_asyncio.fixture(scope="function")
def type_factory(session_factory) -> Callable[..., Awaitable[inv_models.InventoryType]]:
    """카탈로그 검증을 거쳐 재고 유형을 생성하는 팩토리입니다."""
    async def _create(**fields) -> inv_models.InventoryType:
        async with session_factory() as session:
            return await inv_services.create_inventory_type(
                session, obj_in=inv_schemas.InventoryTypeCreate(**fields)
            )
    return _create


@pytest_asyncio.fixture(scope="function")
async def bulk_type(type_factory) -> inv_models.InventoryType:
    """대표 코드 'OVB'로 식별되는 수량 관리(BULK) 시약 유형."""
    return await type_factory(
        name="OVB 희석액", unit="box", tracking_mode=inv_models.TrackingMode.BULK, barcode_key="OVB",
    )


@pytest_asyncio.fixture(scope="function")
async def chemical_item_type(type_factory) -> inv_models.InventoryType:
    """접두어 'CH2'로 식별되는 개별 추적 시약 유형."""
    return await type_factory(
        name="CH2 시약병", unit="bottle", tracking_mode=inv_models.TrackingMode.ITEM_TRACKED, barcode_key="CH2",
    )


@pytest_asyncio.fixture(scope="function")
async def blood_type(type_factory) -> inv_models.InventoryType:
    """접두어 'AR'로 식별되는 혈액배양병 유형."""
    return await type_factory(
        name="호기성 혈액배양병",
        tracking_mode=inv_models.TrackingMode.ITEM_TRACKED,
        family=inv_models.InventoryFamily.BLOOD_BOTTLE,
        barcode_key="AR",
    )


# --- 비동기 테스트 클라이언트 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def client(session_factory, test_user: usr_models.User) -> AsyncGenerator[AsyncClient, None]:
    """
    요청마다 테스트 DB 세션을 주입하고, 작업자 헤더(X-User-Id)를 설정한 AsyncClient입니다.
    """
    async def override_get_session():
        async with session_factory() as session:
            yield session

    original_overrides = main_app.dependency_overrides.copy()
    try:
        main_app.dependency_overrides[get_session] = override_get_session
        main_app.dependency_overrides[deps.get_db_session] = override_get_session

        async with AsyncClient(
            transport=ASGITransport(app=main_app),
            base_url="http://test",
            headers={"X-User-Id": str(test_user.id)},
        ) as async_client:
            yield async_client
    finally:
        main_app.dependency_overrides.clear()
        main_app.dependency_overrides.update(original_overrides)
