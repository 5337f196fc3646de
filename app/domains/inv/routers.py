# app/domains/inv/routers.py

"""
'inv' 도메인의 HTTP 엔드포인트를 정의하는 모듈입니다.

라우터는 요청을 서비스 함수로 전달하는 얇은 계층입니다.
도메인 오류(InventoryError)와 저장소 오류(StorageError)는
app.main에 등록된 예외 처리기가 구조화된 응답으로 변환합니다.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv import services as inv_services

router = APIRouter(
    tags=["Inventory Distribution (재고 분배/반납)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 재고 유형 (inventory_types) 엔드포인트
# =============================================================================
@router.post(
    "/inventory_types",
    response_model=inv_schemas.InventoryTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_inventory_type(
    type_create: inv_schemas.InventoryTypeCreate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """새로운 재고 유형을 등록합니다. 이름과 바코드 키의 중복을 검사합니다."""
    return await inv_services.create_inventory_type(db, obj_in=type_create)


@router.get("/inventory_types", response_model=List[inv_schemas.InventoryTypeResponse])
async def read_inventory_types(
    tracking_mode: Optional[inv_models.TrackingMode] = None,
    family: Optional[inv_models.InventoryFamily] = None,
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """재고 유형 목록을 조회합니다."""
    return await inv_services.list_inventory_types(
        db, tracking_mode=tracking_mode, family=family, skip=skip, limit=limit,
    )


@router.get("/inventory_types/resolve", response_model=inv_schemas.BarcodeResolutionResponse)
async def resolve_barcode(
    barcode: str = Query(..., min_length=1),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """바코드가 어떤 재고 유형으로 판별되는지 미리 확인합니다. (변경 없음)"""
    resolution = await inv_services.resolve_barcode(db, barcode=barcode)
    return inv_schemas.BarcodeResolutionResponse(
        match_kind=resolution.kind.value,
        inventory_type=(
            inv_schemas.InventoryTypeResponse.model_validate(resolution.inventory_type)
            if resolution.inventory_type is not None else None
        ),
        candidate_type_ids=resolution.candidate_type_ids,
    )


@router.get("/inventory_types/{inventory_type_id}", response_model=inv_schemas.InventoryTypeResponse)
async def read_inventory_type(inventory_type_id: int, db: AsyncSession = Depends(deps.get_db_session)):
    return await inv_services.get_inventory_type(db, inventory_type_id=inventory_type_id)


@router.put("/inventory_types/{inventory_type_id}", response_model=inv_schemas.InventoryTypeResponse)
async def update_inventory_type(
    inventory_type_id: int,
    type_update: inv_schemas.InventoryTypeUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """재고 유형 정보를 수정합니다. 재고 수량은 이 경로로 변경할 수 없습니다."""
    return await inv_services.update_inventory_type(db, inventory_type_id=inventory_type_id, obj_in=type_update)


@router.delete("/inventory_types/{inventory_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_type(inventory_type_id: int, db: AsyncSession = Depends(deps.get_db_session)):
    """재고 유형을 삭제합니다. 품목 또는 이력이 참조하면 409를 반환합니다."""
    await inv_services.delete_inventory_type(db, inventory_type_id=inventory_type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. 재고 (stock) 엔드포인트
# =============================================================================
@router.post("/stock/import", response_model=inv_schemas.ImportResponse, status_code=status.HTTP_201_CREATED)
async def import_stock(
    request: inv_schemas.StockImportRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    user_id: Optional[int] = Depends(deps.get_acting_user_id),
):
    result = await inv_services.import_stock(db, user_id=user_id, **request.model_dump())
    return inv_schemas.ImportResponse.model_validate(result, from_attributes=True)


@router.post("/stock/distribute", response_model=inv_schemas.DistributionResponse)
async def distribute(
    request: inv_schemas.DistributeRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    user_id: Optional[int] = Depends(deps.get_acting_user_id),
):
    """
    바코드를 스캔하여 부서로 분배합니다.
    응답의 committed가 false이면 유효기간 경고로 인해 반영되지 않은 것이며,
    accept_warning=true로 다시 요청해야 합니다.
    """
    result = await inv_services.distribute(db, user_id=user_id, **request.model_dump())
    return inv_schemas.DistributionResponse.model_validate(result, from_attributes=True)


@router.get("/stock", response_model=List[inv_schemas.StockSnapshotEntry])
async def read_stock_snapshot(db: AsyncSession = Depends(deps.get_db_session)):
    """유형별 현재 가용 재고를 조회합니다."""
    return await inv_services.get_stock_snapshot(db)


# =============================================================================
# 3. 개별 품목 (items) 엔드포인트
# =============================================================================
@router.post("/items/return", response_model=inv_schemas.ItemActionResponse)
async def return_item(
    request: inv_schemas.ItemScanRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    user_id: Optional[int] = Depends(deps.get_acting_user_id),
):
    """분배된 품목을 반납합니다. 식별되지 않은 바코드는 미확인 스캔으로 기록됩니다."""
    result = await inv_services.return_item(db, user_id=user_id, barcode=request.barcode, notes=request.notes)
    return inv_schemas.ItemActionResponse.model_validate(result, from_attributes=True)


@router.post("/items/mark_used", response_model=inv_schemas.ItemActionResponse)
async def mark_used(
    request: inv_schemas.ItemScanRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    user_id: Optional[int] = Depends(deps.get_acting_user_id),
):
    result = await inv_services.mark_used(db, user_id=user_id, barcode=request.barcode, notes=request.notes)
    return inv_schemas.ItemActionResponse.model_validate(result, from_attributes=True)


@router.post("/items/mark_expired", response_model=inv_schemas.ItemActionResponse)
async def mark_expired(
    request: inv_schemas.ItemScanRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    user_id: Optional[int] = Depends(deps.get_acting_user_id),
):
    result = await inv_services.mark_expired(db, user_id=user_id, barcode=request.barcode, notes=request.notes)
    return inv_schemas.ItemActionResponse.model_validate(result, from_attributes=True)


@router.post("/items/mark_lost", response_model=inv_schemas.ItemActionResponse)
async def mark_lost(
    request: inv_schemas.ItemScanRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    user_id: Optional[int] = Depends(deps.get_acting_user_id),
):
    result = await inv_services.mark_lost(db, user_id=user_id, barcode=request.barcode, notes=request.notes)
    return inv_schemas.ItemActionResponse.model_validate(result, from_attributes=True)


@router.get("/items/expiring", response_model=List[inv_schemas.TrackedItemResponse])
async def read_expiring_items(
    within_days: Optional[int] = Query(None, ge=0),
    inventory_type_id: Optional[int] = None,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """유효기간이 임박한 분배/반납 상태 품목을 조회합니다."""
    return await inv_services.list_expiring_items(db, within_days=within_days, inventory_type_id=inventory_type_id)


@router.get("/items/{barcode}", response_model=inv_schemas.TrackedItemResponse)
async def read_item(barcode: str, db: AsyncSession = Depends(deps.get_db_session)):
    return await inv_services.get_item(db, barcode=barcode)


# =============================================================================
# 4. 이력 / 미확인 스캔 엔드포인트
# =============================================================================
@router.get("/history", response_model=List[inv_schemas.HistoryRecordResponse])
async def read_history(
    inventory_type_id: Optional[int] = None,
    department_id: Optional[int] = None,
    lot_number: Optional[str] = None,
    action: Optional[inv_models.HistoryAction] = None,
    tracked_item_id: Optional[int] = None,
    start_date: Optional[date] = Query(None, description="조회 시작일 (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="조회 종료일 (YYYY-MM-DD)"),
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """이력을 최신순으로 조회합니다."""
    return await inv_services.get_history(
        db,
        inventory_type_id=inventory_type_id,
        department_id=department_id,
        lot_number=lot_number,
        action=action,
        tracked_item_id=tracked_item_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/unattributed_scans", response_model=List[inv_schemas.UnattributedScanResponse])
async def read_unattributed_scans(
    barcode: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """반납 시 식별되지 않은 바코드 스캔 기록을 조회합니다."""
    return await inv_services.list_unattributed_scans(db, barcode=barcode, skip=skip, limit=limit)
