# app/domains/inv/schemas.py

"""
'inv' 도메인(재고 분배/반납 엔진)의 Pydantic 스키마를 정의하는 모듈입니다.

요청 스키마는 형식만 검사합니다. 수량 양수 여부, 로트/유효기간 필수 여부 등
업무 규칙은 서비스 계층에서 검사하여 일관된 오류 응답(ValidationError)으로 반환합니다.
"""

from typing import List, Optional
from datetime import datetime, date
from pydantic import Field
from sqlmodel import SQLModel

from app.domains.inv.models import (
    HistoryAction, InventoryFamily, ItemStatus, TrackingMode,
)


# =============================================================================
# 1. 재고 유형 (InventoryType) 스키마
# =============================================================================
class InventoryTypeBase(SQLModel):
    name: str = Field(..., max_length=100, description="재고 유형명")
    unit: str = Field(..., max_length=20, description="단위")
    tracking_mode: TrackingMode = Field(..., description="추적 방식 (bulk | item_tracked)")
    family: InventoryFamily = Field(InventoryFamily.CHEMICAL, description="품목군 (chemical | blood_bottle)")
    barcode_key: Optional[str] = Field(None, max_length=50, description="대표 코드(bulk) 또는 접두어(item_tracked)")
    description: Optional[str] = Field(None, description="설명")


class InventoryTypeCreate(InventoryTypeBase):
    unit: Optional[str] = Field(None, max_length=20, description="단위 (혈액배양병은 생략 시 기본 단위)")


class InventoryTypeUpdate(SQLModel):
    """재고 수량(stock_quantity)은 이 스키마로 변경할 수 없습니다."""
    name: Optional[str] = Field(None, max_length=100)
    unit: Optional[str] = Field(None, max_length=20)
    tracking_mode: Optional[TrackingMode] = None
    family: Optional[InventoryFamily] = None
    barcode_key: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None


class InventoryTypeResponse(InventoryTypeBase):
    id: int = Field(..., description="재고 유형 고유 ID")
    stock_quantity: int = Field(..., description="BULK 재고 수량")
    created_at: Optional[datetime] = Field(None, description="레코드 생성 일시")
    updated_at: Optional[datetime] = Field(None, description="레코드 마지막 업데이트 일시")

    class Config:
        from_attributes = True


class BarcodeResolutionResponse(SQLModel):
    match_kind: str = Field(..., description="bulk_match | prefix_match | no_match")
    inventory_type: Optional[InventoryTypeResponse] = None
    candidate_type_ids: List[int] = Field(default_factory=list, description="접두어가 일치한 모든 유형 ID")


# =============================================================================
# 2. 개별 추적 품목 (TrackedItem) 스키마
# =============================================================================
class TrackedItemResponse(SQLModel):
    id: int
    barcode: str
    inventory_type_id: int
    status: ItemStatus
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    distribution_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    usage_date: Optional[datetime] = None
    written_off_at: Optional[datetime] = None
    current_department_id: Optional[int] = None
    current_user_id: Optional[int] = None
    recipient_name: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# 3. 이력 / 미확인 스캔 스키마
# =============================================================================
class HistoryRecordResponse(SQLModel):
    id: int
    action: HistoryAction
    inventory_type_id: int
    tracked_item_id: Optional[int] = None
    quantity: Optional[int] = None
    department_id: Optional[int] = None
    user_id: Optional[int] = None
    recipient_name: Optional[str] = None
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UnattributedScanResponse(SQLModel):
    id: int
    barcode: str
    scanned_at: Optional[datetime] = None
    user_id: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# 4. 작업 요청 스키마
# =============================================================================
class StockImportRequest(SQLModel):
    inventory_type_id: int = Field(..., description="입고할 재고 유형 ID")
    quantity: int = Field(..., description="입고 수량 (양수)")
    lot_number: Optional[str] = Field(None, max_length=50, description="로트 번호 (혈액배양병 필수)")
    expiry_date: Optional[date] = Field(None, description="유효기간 (혈액배양병 필수)")
    notes: Optional[str] = None


class DistributeRequest(SQLModel):
    barcode: str = Field(..., min_length=1, max_length=100, description="스캔한 바코드")
    department_id: int = Field(..., description="분배 대상 부서 ID")
    recipient_name: Optional[str] = Field(None, max_length=100, description="수령인 (시약 필수)")
    quantity: Optional[int] = Field(None, description="BULK 분배 수량")
    inventory_type_id: Optional[int] = Field(None, description="접두어 판별이 모호하거나 불가할 때 명시하는 유형 ID")
    lot_number: Optional[str] = Field(None, max_length=50)
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    accept_warning: bool = Field(False, description="유효기간 경고를 확인하고 진행")


class ItemScanRequest(SQLModel):
    """반납 / 사용 / 만료 / 분실 처리 요청"""
    barcode: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None


# =============================================================================
# 5. 작업 결과 스키마
# =============================================================================
class ImportResponse(SQLModel):
    inventory_type: InventoryTypeResponse
    history: HistoryRecordResponse

    class Config:
        from_attributes = True


class DistributionResponse(SQLModel):
    committed: bool = Field(..., description="False이면 경고로 인해 반영되지 않음 (accept_warning으로 재요청)")
    warning: Optional[str] = None
    earliest_expiry: Optional[date] = Field(None, description="경고 시, 먼저 사용해야 할 로트의 유효기간")
    match_kind: str
    inventory_type: InventoryTypeResponse
    item: Optional[TrackedItemResponse] = None
    history: Optional[HistoryRecordResponse] = None
    distributed_quantity: Optional[int] = None

    class Config:
        from_attributes = True


class ItemActionResponse(SQLModel):
    item: TrackedItemResponse
    history: HistoryRecordResponse

    class Config:
        from_attributes = True


class StockSnapshotEntry(SQLModel):
    inventory_type_id: int
    name: str
    unit: str
    tracking_mode: TrackingMode
    family: InventoryFamily
    barcode_key: Optional[str] = None
    available_quantity: int = Field(..., description="현재 가용 재고")
    distributed_count: Optional[int] = Field(None, description="개별 추적 유형의 분배 중 품목 수")

    class Config:
        from_attributes = True
