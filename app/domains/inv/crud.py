# app/domains/inv/crud.py

"""
'inv' 도메인의 데이터 접근 계층을 정의하는 모듈입니다.

- InventoryTypeCRUD (재고 유형 카탈로그): 유형 정의 관리 및 바코드 판별.
- StockLedger (재고 원장): BULK 수량의 원자적 증감과 가용 재고 계산.
- TrackedItemCRUD (개별 품목 저장소): 품목 수명주기 상태 전이 관리.
- HistoryRecordCRUD (이력 원장): 추가 전용 감사 이력.
- UnattributedScanCRUD (미확인 스캔 기록): 반납 시 식별되지 않은 바코드 기록.

이 모듈의 메서드는 commit을 수행하지 않습니다. 트랜잭션은 services 모듈이 작업 단위로 관리합니다.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.exceptions import (
    DuplicateKey, InsufficientStock, InvalidStateTransition, TypeInUse,
    TypeNotFound, ValidationError,
)
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas

logger = logging.getLogger(__name__)

ItemStatus = inv_models.ItemStatus
HistoryAction = inv_models.HistoryAction
TrackingMode = inv_models.TrackingMode
InventoryFamily = inv_models.InventoryFamily


# =============================================================================
# 1. 재고 유형 카탈로그 (inventory_types)
# =============================================================================
class MatchKind(str, Enum):
    """바코드 판별 결과의 종류"""
    BULK = "bulk_match"        # BULK 유형 대표 코드와 정확히 일치
    PREFIX = "prefix_match"    # ITEM_TRACKED 유형 접두어와 일치
    NONE = "no_match"


@dataclass(frozen=True)
class BarcodeResolution:
    kind: MatchKind
    inventory_type: Optional[inv_models.InventoryType] = None
    candidates: Tuple[inv_models.InventoryType, ...] = ()

    @property
    def candidate_type_ids(self) -> List[int]:
        return [c.id for c in self.candidates]


class InventoryTypeCRUD(CRUDBase[inv_models.InventoryType, inv_schemas.InventoryTypeCreate, inv_schemas.InventoryTypeUpdate]):
    def __init__(self):
        super().__init__(model=inv_models.InventoryType)

    async def get_for_update(self, db: AsyncSession, *, id: int) -> Optional[inv_models.InventoryType]:
        """유형 행을 잠금(SELECT ... FOR UPDATE)과 함께 조회합니다."""
        statement = select(self.model).where(self.model.id == id).with_for_update()
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[inv_models.InventoryType]:
        return await self.get_by_attribute(db, attribute="name", value=name)

    async def resolve(self, db: AsyncSession, *, barcode: str) -> BarcodeResolution:
        """
        스캔한 바코드를 재고 유형으로 판별합니다.

        1. BULK 유형의 대표 코드와 정확히 일치하는지 먼저 확인합니다.
        2. 없으면 ITEM_TRACKED 유형의 접두어를 등록 순서(id)대로 비교합니다.
           일치한 모든 유형을 후보로 보관하고, 첫 번째 후보를 판별 결과로 사용합니다.
        """
        exact = await db.execute(
            select(self.model).where(
                self.model.tracking_mode == TrackingMode.BULK,
                self.model.barcode_key == barcode,
            )
        )
        bulk_type = exact.scalars().first()
        if bulk_type is not None:
            return BarcodeResolution(MatchKind.BULK, bulk_type, (bulk_type,))

        prefixed = await db.execute(
            select(self.model)
            .where(
                self.model.tracking_mode == TrackingMode.ITEM_TRACKED,
                self.model.barcode_key.is_not(None),
            )
            .order_by(self.model.id)
        )
        candidates = tuple(t for t in prefixed.scalars().all() if barcode.startswith(t.barcode_key))
        if candidates:
            return BarcodeResolution(MatchKind.PREFIX, candidates[0], candidates)
        return BarcodeResolution(MatchKind.NONE)

    async def resolve_for_distribution(self, db: AsyncSession, *, barcode: str) -> BarcodeResolution:
        resolution = await self.resolve(db, barcode=barcode)
        if resolution.kind == MatchKind.NONE:
            raise TypeNotFound(barcode=barcode)
        return resolution

    async def usage_counts(self, db: AsyncSession, *, id: int) -> Tuple[int, int]:
        """해당 유형을 참조하는 (품목 수, 이력 수)를 반환합니다."""
        item_count = await db.scalar(
            select(func.count()).select_from(inv_models.TrackedItem)
            .where(inv_models.TrackedItem.inventory_type_id == id)
        )
        history_count = await db.scalar(
            select(func.count()).select_from(inv_models.HistoryRecord)
            .where(inv_models.HistoryRecord.inventory_type_id == id)
        )
        return int(item_count or 0), int(history_count or 0)

    async def _check_unique(
        self, db: AsyncSession, *, name: str, tracking_mode: TrackingMode,
        barcode_key: Optional[str], exclude_id: Optional[int] = None,
    ) -> None:
        """
        이름 중복과 같은 추적 방식 내의 바코드 키 충돌을 검사합니다.
        접두어는 서로 겹칠 수 없습니다 (한쪽이 다른 쪽의 접두어인 경우 포함).
        """
        same_name = await self.get_by_name(db, name=name)
        if same_name is not None and same_name.id != exclude_id:
            raise DuplicateKey(field="name", value=name, conflicting_type_id=same_name.id)

        if barcode_key is None:
            return
        result = await db.execute(
            select(self.model).where(
                self.model.tracking_mode == tracking_mode,
                self.model.barcode_key.is_not(None),
            )
        )
        for other in result.scalars().all():
            if other.id == exclude_id:
                continue
            if tracking_mode == TrackingMode.BULK:
                collides = other.barcode_key == barcode_key
            else:
                collides = barcode_key.startswith(other.barcode_key) or other.barcode_key.startswith(barcode_key)
            if collides:
                raise DuplicateKey(field="barcode_key", value=barcode_key, conflicting_type_id=other.id)

    async def _flush_unique(self, db: AsyncSession, db_obj: inv_models.InventoryType) -> None:
        """
        동시에 같은 이름/바코드 키가 등록되어 유니크 제약에 걸리면 DuplicateKey로 변환합니다.
        호출자의 트랜잭션은 롤백됩니다.
        """
        name, barcode_key = db_obj.name, db_obj.barcode_key
        try:
            await db.flush()
        except IntegrityError as exc:
            if "barcode_key" in str(exc.orig):
                raise DuplicateKey(field="barcode_key", value=barcode_key) from exc
            raise DuplicateKey(field="name", value=name) from exc
        await db.refresh(db_obj)

    @staticmethod
    def _validate(data: Dict[str, Any]) -> Dict[str, Any]:
        for field in ("name", "unit"):
            if isinstance(data.get(field), str):
                data[field] = data[field].strip()
        missing = [f for f in ("name", "unit", "tracking_mode") if not data.get(f)]
        if missing:
            raise ValidationError("Required inventory type fields are missing.", fields=missing)
        if data.get("barcode_key") is not None:
            data["barcode_key"] = data["barcode_key"].strip()
            if not data["barcode_key"]:
                raise ValidationError("Barcode key must not be blank.", fields=["barcode_key"])
        if (data.get("family") == InventoryFamily.BLOOD_BOTTLE
                and data["tracking_mode"] != TrackingMode.ITEM_TRACKED):
            raise ValidationError(
                "Blood bottle types must use item-tracked mode.",
                fields=["tracking_mode", "family"],
            )
        return data

    async def create(
        self, db: AsyncSession, *, obj_in: inv_schemas.InventoryTypeCreate, default_unit: Optional[str] = None,
    ) -> inv_models.InventoryType:
        data = obj_in.model_dump()
        if not data.get("unit") and data.get("family") == InventoryFamily.BLOOD_BOTTLE:
            data["unit"] = default_unit
        data = self._validate(data)
        await self._check_unique(
            db, name=data["name"], tracking_mode=data["tracking_mode"], barcode_key=data.get("barcode_key"),
        )
        db_obj = self.model(**data)
        db.add(db_obj)
        await self._flush_unique(db, db_obj)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: inv_models.InventoryType, obj_in: inv_schemas.InventoryTypeUpdate,
    ) -> inv_models.InventoryType:
        changes = obj_in.model_dump(exclude_unset=True)
        merged = {
            field: changes.get(field, getattr(db_obj, field))
            for field in ("name", "unit", "tracking_mode", "family", "barcode_key", "description")
        }
        merged = self._validate(merged)

        if merged["tracking_mode"] != db_obj.tracking_mode or merged["family"] != db_obj.family:
            item_count, history_count = await self.usage_counts(db, id=db_obj.id)
            if item_count or history_count:
                raise TypeInUse(
                    type_id=db_obj.id, item_count=item_count, history_count=history_count,
                    reason="change the tracking mode or family of",
                )
        await self._check_unique(
            db, name=merged["name"], tracking_mode=merged["tracking_mode"],
            barcode_key=merged["barcode_key"], exclude_id=db_obj.id,
        )
        for key, value in merged.items():
            setattr(db_obj, key, value)
        db.add(db_obj)
        await self._flush_unique(db, db_obj)
        return db_obj

    async def remove(self, db: AsyncSession, *, id: int) -> inv_models.InventoryType:
        """
        유형을 삭제합니다. 품목이나 이력이 참조하고 있으면 삭제를 거부합니다.
        """
        db_obj = await self.get_for_update(db, id=id)
        if db_obj is None:
            raise TypeNotFound(type_id=id)
        item_count, history_count = await self.usage_counts(db, id=id)
        if item_count or history_count:
            raise TypeInUse(type_id=id, item_count=item_count, history_count=history_count)
        await db.delete(db_obj)
        await db.flush()
        return db_obj


inventory_type = InventoryTypeCRUD()


# =============================================================================
# 2. 재고 원장 (StockLedger)
# =============================================================================
class StockLedger:
    """
    BULK 수량은 조건부 UPDATE 한 번으로 증감합니다 (읽은 뒤 나중에 쓰지 않음).
    ITEM_TRACKED 유형의 재고는 카운터가 아닌 파생값입니다:
    입고 이력 수량 합계 - 반납(RETURNED) 상태가 아닌 품목 수.
    """

    async def increase(self, db: AsyncSession, *, inventory_type: inv_models.InventoryType, quantity: int) -> int:
        model = inv_models.InventoryType
        await db.execute(
            update(model)
            .where(model.id == inventory_type.id)
            .values(stock_quantity=model.stock_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(inventory_type)
        return inventory_type.stock_quantity

    async def decrease(self, db: AsyncSession, *, inventory_type: inv_models.InventoryType, quantity: int) -> int:
        """수량이 부족하면 아무것도 변경하지 않고 InsufficientStock을 발생시킵니다."""
        model = inv_models.InventoryType
        result = await db.execute(
            update(model)
            .where(model.id == inventory_type.id, model.stock_quantity >= quantity)
            .values(stock_quantity=model.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(inventory_type)
        if result.rowcount == 0:
            raise InsufficientStock(
                type_id=inventory_type.id, type_name=inventory_type.name,
                requested=quantity, available=inventory_type.stock_quantity,
            )
        return inventory_type.stock_quantity

    async def imported_units(self, db: AsyncSession, *, inventory_type_id: int) -> int:
        total = await db.scalar(
            select(func.coalesce(func.sum(inv_models.HistoryRecord.quantity), 0)).where(
                inv_models.HistoryRecord.inventory_type_id == inventory_type_id,
                inv_models.HistoryRecord.action == HistoryAction.IMPORT,
            )
        )
        return int(total or 0)

    async def count_items(
        self, db: AsyncSession, *, inventory_type_id: int,
        status: Optional[ItemStatus] = None, exclude_status: Optional[ItemStatus] = None,
    ) -> int:
        statement = select(func.count()).select_from(inv_models.TrackedItem).where(
            inv_models.TrackedItem.inventory_type_id == inventory_type_id
        )
        if status is not None:
            statement = statement.where(inv_models.TrackedItem.status == status)
        if exclude_status is not None:
            statement = statement.where(inv_models.TrackedItem.status != exclude_status)
        return int(await db.scalar(statement) or 0)

    async def available(self, db: AsyncSession, *, inventory_type: inv_models.InventoryType) -> int:
        if inventory_type.tracking_mode == TrackingMode.BULK:
            return inventory_type.stock_quantity
        imported = await self.imported_units(db, inventory_type_id=inventory_type.id)
        outstanding = await self.count_items(
            db, inventory_type_id=inventory_type.id, exclude_status=ItemStatus.RETURNED,
        )
        return imported - outstanding

    async def snapshot(self, db: AsyncSession) -> List[Dict[str, Any]]:
        """유형별 현재 재고를 집계합니다."""
        types = (await db.execute(
            select(inv_models.InventoryType).order_by(inv_models.InventoryType.id)
        )).scalars().all()

        imported_rows = await db.execute(
            select(inv_models.HistoryRecord.inventory_type_id, func.sum(inv_models.HistoryRecord.quantity))
            .where(inv_models.HistoryRecord.action == HistoryAction.IMPORT)
            .group_by(inv_models.HistoryRecord.inventory_type_id)
        )
        imported = {type_id: int(total or 0) for type_id, total in imported_rows.all()}

        status_rows = await db.execute(
            select(inv_models.TrackedItem.inventory_type_id, inv_models.TrackedItem.status, func.count())
            .group_by(inv_models.TrackedItem.inventory_type_id, inv_models.TrackedItem.status)
        )
        outstanding: Dict[int, int] = {}
        distributed: Dict[int, int] = {}
        for type_id, item_status, count in status_rows.all():
            if item_status != ItemStatus.RETURNED:
                outstanding[type_id] = outstanding.get(type_id, 0) + count
            if item_status == ItemStatus.DISTRIBUTED:
                distributed[type_id] = count

        entries = []
        for t in types:
            if t.tracking_mode == TrackingMode.BULK:
                available, distributed_count = t.stock_quantity, None
            else:
                available = imported.get(t.id, 0) - outstanding.get(t.id, 0)
                distributed_count = distributed.get(t.id, 0)
            entries.append({
                "inventory_type_id": t.id,
                "name": t.name,
                "unit": t.unit,
                "tracking_mode": t.tracking_mode,
                "family": t.family,
                "barcode_key": t.barcode_key,
                "available_quantity": available,
                "distributed_count": distributed_count,
            })
        return entries


stock_ledger = StockLedger()


# =============================================================================
# 3. 개별 품목 저장소 (tracked_items)
# =============================================================================
# 작업별 허용 출발 상태와 도착 상태. 분배는 upsert_distributed가 따로 처리합니다.
TRANSITIONS: Dict[HistoryAction, Tuple[Tuple[ItemStatus, ...], ItemStatus]] = {
    HistoryAction.RETURN: ((ItemStatus.DISTRIBUTED,), ItemStatus.RETURNED),
    HistoryAction.MARK_USED: ((ItemStatus.DISTRIBUTED,), ItemStatus.USED),
    HistoryAction.MARK_EXPIRED: ((ItemStatus.DISTRIBUTED, ItemStatus.RETURNED), ItemStatus.EXPIRED),
    HistoryAction.MARK_LOST: ((ItemStatus.DISTRIBUTED, ItemStatus.RETURNED), ItemStatus.LOST),
}


class TrackedItemCRUD(CRUDBase[inv_models.TrackedItem, SQLModel, SQLModel]):
    def __init__(self):
        super().__init__(model=inv_models.TrackedItem)

    async def get_by_barcode(
        self, db: AsyncSession, *, barcode: str, for_update: bool = False,
    ) -> Optional[inv_models.TrackedItem]:
        statement = select(self.model).where(self.model.barcode == barcode)
        if for_update:
            statement = statement.with_for_update()
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @staticmethod
    def ensure_transition(item: inv_models.TrackedItem, action: HistoryAction) -> ItemStatus:
        """허용되지 않는 상태 전이이면 InvalidStateTransition을 발생시키고, 도착 상태를 반환합니다."""
        sources, target = TRANSITIONS[action]
        if item.status not in sources:
            raise InvalidStateTransition(
                barcode=item.barcode, current_status=ItemStatus(item.status).value, action=action.value,
            )
        return target

    async def upsert_distributed(
        self,
        db: AsyncSession,
        *,
        existing: Optional[inv_models.TrackedItem],
        barcode: str,
        inventory_type_id: int,
        department_id: int,
        user_id: Optional[int],
        recipient_name: Optional[str],
        lot_number: Optional[str],
        expiry_date: Optional[date],
        notes: Optional[str],
        now: datetime,
    ) -> inv_models.TrackedItem:
        """
        바코드당 하나의 레코드를 유지하면서 품목을 분배 상태로 만듭니다.
        - 레코드가 없으면 새로 생성합니다.
        - 반납(RETURNED) 상태이면 같은 레코드를 재사용하고, 로트/유효기간은 기존 값을 유지합니다.
        - 그 외 상태는 InvalidStateTransition.
        """
        if existing is None:
            item = self.model(
                barcode=barcode,
                inventory_type_id=inventory_type_id,
                status=ItemStatus.DISTRIBUTED,
                lot_number=lot_number,
                expiry_date=expiry_date,
                distribution_date=now,
                current_department_id=department_id,
                current_user_id=user_id,
                recipient_name=recipient_name,
                notes=notes,
            )
            db.add(item)
            try:
                await db.flush()
            except IntegrityError as exc:
                # 동시에 같은 바코드가 생성된 경우. 호출자의 트랜잭션은 롤백됩니다.
                raise InvalidStateTransition(
                    barcode=barcode, current_status=ItemStatus.DISTRIBUTED.value,
                    action=HistoryAction.DISTRIBUTE.value,
                ) from exc
            await db.refresh(item)
            return item

        values = dict(
            status=ItemStatus.DISTRIBUTED,
            distribution_date=now,
            return_date=None,
            current_department_id=department_id,
            current_user_id=user_id,
            recipient_name=recipient_name,
            notes=notes,
        )
        if existing.lot_number is None:
            values["lot_number"] = lot_number
        if existing.expiry_date is None:
            values["expiry_date"] = expiry_date
        return await self._guarded_update(
            db, item=existing, sources=(ItemStatus.RETURNED,), action=HistoryAction.DISTRIBUTE, values=values,
        )

    async def _guarded_update(
        self,
        db: AsyncSession,
        *,
        item: inv_models.TrackedItem,
        sources: Tuple[ItemStatus, ...],
        action: HistoryAction,
        values: Dict[str, Any],
    ) -> inv_models.TrackedItem:
        """
        현재 상태가 sources 중 하나일 때만 조건부 UPDATE로 품목을 변경합니다.
        그 사이 다른 트랜잭션이 상태를 바꿨다면 변경 없이 InvalidStateTransition을 발생시킵니다.
        """
        model = self.model
        result = await db.execute(
            update(model)
            .where(model.id == item.id, model.status.in_(sources))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(item)
        if result.rowcount == 0:
            raise InvalidStateTransition(
                barcode=item.barcode, current_status=ItemStatus(item.status).value, action=action.value,
            )
        return item

    async def apply_transition(
        self,
        db: AsyncSession,
        *,
        item: inv_models.TrackedItem,
        action: HistoryAction,
        user_id: Optional[int],
        notes: Optional[str],
        now: datetime,
    ) -> inv_models.TrackedItem:
        target = self.ensure_transition(item, action)
        values: Dict[str, Any] = {"status": target, "current_user_id": user_id}
        if target == ItemStatus.RETURNED:
            values["return_date"] = now
        elif target == ItemStatus.USED:
            values["usage_date"] = now
        else:
            values["written_off_at"] = now
        # 부서와 수령인은 분배 상태일 때만 유지합니다.
        values["current_department_id"] = None
        values["recipient_name"] = None
        if notes:
            values["notes"] = notes
        sources, _ = TRANSITIONS[action]
        return await self._guarded_update(db, item=item, sources=sources, action=action, values=values)

    async def list_expiring(
        self, db: AsyncSession, *, start: date, end: date, inventory_type_id: Optional[int] = None,
    ) -> List[inv_models.TrackedItem]:
        statement = select(self.model).where(
            self.model.status.in_((ItemStatus.DISTRIBUTED, ItemStatus.RETURNED)),
            self.model.expiry_date.is_not(None),
            self.model.expiry_date >= start,
            self.model.expiry_date <= end,
        )
        if inventory_type_id is not None:
            statement = statement.where(self.model.inventory_type_id == inventory_type_id)
        result = await db.execute(statement.order_by(self.model.expiry_date, self.model.id))
        return list(result.scalars().all())


tracked_item = TrackedItemCRUD()


# =============================================================================
# 4. 이력 원장 (inventory_history)
# =============================================================================
class HistoryRecordCRUD(CRUDBase[inv_models.HistoryRecord, SQLModel, SQLModel]):
    def __init__(self):
        super().__init__(model=inv_models.HistoryRecord)

    async def append(self, db: AsyncSession, **fields: Any) -> inv_models.HistoryRecord:
        record = self.model(**fields)
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    async def get_history(
        self,
        db: AsyncSession,
        *,
        inventory_type_id: Optional[int] = None,
        department_id: Optional[int] = None,
        lot_number: Optional[str] = None,
        action: Optional[HistoryAction] = None,
        tracked_item_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[inv_models.HistoryRecord]:
        """필터 조건에 맞는 이력을 최신순으로 조회합니다."""
        return await self.get_filtered(
            db,
            filters={
                "inventory_type_id": inventory_type_id,
                "department_id": department_id,
                "lot_number": lot_number,
                "action": action,
                "tracked_item_id": tracked_item_id,
            },
            date_range_field="created_at",
            start_date=start_date,
            end_date=end_date,
            order_by_field="id",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def earliest_unconsumed_expiry_before(
        self, db: AsyncSession, *, inventory_type_id: int, expiry_date: date,
    ) -> Optional[date]:
        """
        주어진 유효기간보다 엄격히 앞선 로트 중 아직 남은 수량이 있는 로트의
        가장 이른 유효기간을 반환합니다. 없으면 None.
        로트 잔량 = 로트 입고 수량 합계 - 같은 로트 중 반납 상태가 아닌 품목 수.
        """
        history = self.model
        item = inv_models.TrackedItem
        imported_rows = await db.execute(
            select(history.lot_number, history.expiry_date, func.sum(history.quantity))
            .where(
                history.inventory_type_id == inventory_type_id,
                history.action == HistoryAction.IMPORT,
                history.expiry_date.is_not(None),
                history.expiry_date < expiry_date,
            )
            .group_by(history.lot_number, history.expiry_date)
        )
        lots = {(lot, expiry): int(total or 0) for lot, expiry, total in imported_rows.all()}
        if not lots:
            return None

        consumed_rows = await db.execute(
            select(item.lot_number, item.expiry_date, func.count())
            .where(
                item.inventory_type_id == inventory_type_id,
                item.status != ItemStatus.RETURNED,
                item.expiry_date < expiry_date,
            )
            .group_by(item.lot_number, item.expiry_date)
        )
        for lot, expiry, count in consumed_rows.all():
            if (lot, expiry) in lots:
                lots[(lot, expiry)] -= count

        remaining = [expiry for (_, expiry), qty in lots.items() if qty > 0]
        return min(remaining) if remaining else None


history = HistoryRecordCRUD()


# =============================================================================
# 5. 미확인 스캔 기록 (unattributed_scans)
# =============================================================================
class UnattributedScanCRUD(CRUDBase[inv_models.UnattributedScan, SQLModel, SQLModel]):
    def __init__(self):
        super().__init__(model=inv_models.UnattributedScan)

    async def record(
        self, db: AsyncSession, *, barcode: str, user_id: Optional[int], notes: Optional[str],
    ) -> inv_models.UnattributedScan:
        scan = self.model(barcode=barcode, user_id=user_id, notes=notes)
        db.add(scan)
        await db.flush()
        await db.refresh(scan)
        return scan

    async def list_recent(
        self, db: AsyncSession, *, barcode: Optional[str] = None, skip: int = 0, limit: int = 100,
    ) -> List[inv_models.UnattributedScan]:
        return await self.get_filtered(
            db, filters={"barcode": barcode}, order_by_field="id", order_desc=True, skip=skip, limit=limit,
        )


unattributed_scan = UnattributedScanCRUD()
