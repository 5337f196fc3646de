# app/domains/inv/models.py

"""
'inv' 도메인(재고 분배/반납 엔진)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- InventoryType: 재고 유형. 수량 관리(BULK) 또는 개별 추적(ITEM_TRACKED) 방식.
- TrackedItem: 개별 추적 유형의 실물 단위. 바코드당 하나의 레코드.
- HistoryRecord: 모든 작업의 감사 이력. 추가 전용(append-only).
- UnattributedScan: 반납 시 식별되지 않은 바코드 스캔 기록. 추가 전용.

비동기 세션에서의 지연 로딩(lazy load)을 피하기 위해 Relationship은 정의하지 않고,
외래 키 ID만으로 참조합니다.
"""

from enum import Enum
from typing import Optional
from datetime import datetime, date, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint, event
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP, DATE

from app.core.exceptions import AppendOnlyViolation


# =============================================================================
# 0. 열거형 정의
# =============================================================================
class TrackingMode(str, Enum):
    """재고 유형의 추적 방식"""
    BULK = "bulk"                    # 수량만 관리 (대표 바코드 정확 일치)
    ITEM_TRACKED = "item_tracked"    # 개별 바코드 단위 관리 (접두어 일치)


class InventoryFamily(str, Enum):
    """재고 유형의 품목군. 혈액배양병(blood_bottle)은 항상 개별 추적 방식입니다."""
    CHEMICAL = "chemical"
    BLOOD_BOTTLE = "blood_bottle"


class ItemStatus(str, Enum):
    """개별 추적 품목의 수명주기 상태"""
    DISTRIBUTED = "distributed"
    RETURNED = "returned"
    USED = "used"
    EXPIRED = "expired"
    LOST = "lost"


class HistoryAction(str, Enum):
    """이력 레코드의 작업 종류"""
    IMPORT = "import"
    DISTRIBUTE = "distribute"
    RETURN = "return"
    MARK_USED = "mark_used"
    MARK_EXPIRED = "mark_expired"
    MARK_LOST = "mark_lost"


# =============================================================================
# 1. inventory_types 테이블 모델
# =============================================================================
class InventoryTypeBase(SQLModel):
    name: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="재고 유형명")
    unit: str = Field(max_length=20, description="단위 (예: bottle, ea)")
    tracking_mode: TrackingMode = Field(description="추적 방식 (bulk | item_tracked)")
    family: InventoryFamily = Field(default=InventoryFamily.CHEMICAL, description="품목군 (chemical | blood_bottle)")
    barcode_key: Optional[str] = Field(
        default=None, max_length=50,
        description="바코드 식별 키. BULK는 대표 코드(정확 일치), ITEM_TRACKED는 접두어"
    )
    description: Optional[str] = Field(default=None, description="설명")


class InventoryType(InventoryTypeBase, table=True):
    __tablename__ = "inventory_types"
    __table_args__ = (
        UniqueConstraint("tracking_mode", "barcode_key", name="uq_inventory_types_mode_barcode_key"),
        CheckConstraint("stock_quantity >= 0", name="ck_inventory_types_stock_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    stock_quantity: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="BULK 유형의 재고 수량 (StockLedger만 변경)"
    )
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
# 2. tracked_items 테이블 모델
# =============================================================================
class TrackedItem(SQLModel, table=True):
    __tablename__ = "tracked_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    barcode: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="개별 바코드")
    inventory_type_id: int = Field(foreign_key="inventory_types.id", index=True)
    status: ItemStatus = Field(default=ItemStatus.DISTRIBUTED, index=True)
    lot_number: Optional[str] = Field(default=None, max_length=50)
    expiry_date: Optional[date] = Field(default=None, sa_column=Column(DATE))
    distribution_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    return_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    usage_date: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    written_off_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True)),
        description="만료/분실 처리 일시"
    )
    current_department_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("departments.id", onupdate="CASCADE", ondelete="RESTRICT")),
        description="현재 보유 부서 (분배 상태일 때만)"
    )
    current_user_id: Optional[int] = Field(default=None, description="마지막 작업자 ID")
    recipient_name: Optional[str] = Field(default=None, max_length=100, description="수령인 (분배 상태일 때만)")
    notes: Optional[str] = Field(default=None)
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
# 3. inventory_history 테이블 모델 (추가 전용)
# =============================================================================
class HistoryRecord(SQLModel, table=True):
    __tablename__ = "inventory_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    action: HistoryAction = Field(index=True)
    inventory_type_id: int = Field(foreign_key="inventory_types.id", index=True)
    tracked_item_id: Optional[int] = Field(default=None, foreign_key="tracked_items.id", index=True)
    quantity: Optional[int] = Field(default=None, description="입고/BULK 분배 수량. 개별 품목 작업은 NULL")
    department_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("departments.id", onupdate="CASCADE", ondelete="RESTRICT")),
    )
    user_id: Optional[int] = Field(default=None, description="작업자 ID (인증 계층에서 전달)")
    recipient_name: Optional[str] = Field(default=None, max_length=100)
    lot_number: Optional[str] = Field(default=None, max_length=50, index=True)
    expiry_date: Optional[date] = Field(default=None, sa_column=Column(DATE))
    notes: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True),
        description="레코드 생성 일시"
    )


# =============================================================================
# 4. unattributed_scans 테이블 모델 (추가 전용)
# =============================================================================
class UnattributedScan(SQLModel, table=True):
    __tablename__ = "unattributed_scans"

    id: Optional[int] = Field(default=None, primary_key=True)
    barcode: str = Field(max_length=100, index=True)
    scanned_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    user_id: Optional[int] = Field(default=None)
    notes: Optional[str] = Field(default=None)


# =============================================================================
# 5. 추가 전용(append-only) 강제
# =============================================================================
def _reject_mutation(mapper, connection, target):
    raise AppendOnlyViolation(type(target).__name__)


for _model in (HistoryRecord, UnattributedScan):
    event.listen(_model, "before_update", _reject_mutation)
    event.listen(_model, "before_delete", _reject_mutation)
