# app/domains/inv/services.py

"""
'inv' 도메인의 작업 조정(Transaction Coordinator) 서비스 모듈입니다.

입고(import), 분배(distribute), 반납(return), 사용/만료/분실 처리는 각각
하나의 원자적 작업 단위로 실행됩니다. 유형 조회, 재고/품목 변경, 이력 추가가
함께 커밋되거나 함께 롤백됩니다.

예외 정책:
- InventoryError 계열: 롤백 후 그대로 전파합니다.
- SQLAlchemy 오류: 롤백 후 StorageError(재시도 가능한 경우 TransactionConflict)로 변환합니다.
- 반납 시 품목을 찾지 못한 경우에만, 미확인 스캔 기록을 커밋한 뒤 오류를 보고합니다.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    DepartmentNotFound, InvalidStateTransition, InventoryError, InsufficientStock,
    ItemNotFound, StorageError, TransactionConflict, TypeNotFound, ValidationError,
)
from app.domains.inv import crud as inv_crud
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv.crud import BarcodeResolution, MatchKind
from app.domains.usr import crud as usr_crud

logger = logging.getLogger(__name__)

ItemStatus = inv_models.ItemStatus
HistoryAction = inv_models.HistoryAction
TrackingMode = inv_models.TrackingMode
InventoryFamily = inv_models.InventoryFamily

# 잠금 대기 초과(55P03), 직렬화 실패(40001), 교착 상태(40P01)
RETRYABLE_SQLSTATES = {"55P03", "40001", "40P01"}


# =============================================================================
# 작업 결과
# =============================================================================
@dataclass
class ImportResult:
    inventory_type: inv_models.InventoryType
    history: inv_models.HistoryRecord


@dataclass
class DistributionResult:
    committed: bool
    match_kind: str
    inventory_type: inv_models.InventoryType
    item: Optional[inv_models.TrackedItem] = None
    history: Optional[inv_models.HistoryRecord] = None
    distributed_quantity: Optional[int] = None
    warning: Optional[str] = None
    earliest_expiry: Optional[date] = None


@dataclass
class ItemActionResult:
    item: inv_models.TrackedItem
    history: inv_models.HistoryRecord


# =============================================================================
# 트랜잭션 경계
# =============================================================================
def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def _is_retryable(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and _sqlstate(exc) in RETRYABLE_SQLSTATES


@asynccontextmanager
async def _unit_of_work(db: AsyncSession, operation: str) -> AsyncGenerator[None, None]:
    """
    작업 하나를 원자적으로 실행합니다. 정상 종료 시 커밋, 예외 시 롤백합니다.
    PostgreSQL에서는 잠금 대기 시간을 LOCK_TIMEOUT_MS로 제한합니다.
    """
    try:
        if db.bind.dialect.name == "postgresql":
            await db.execute(text(f"SET LOCAL lock_timeout = {int(settings.LOCK_TIMEOUT_MS)}"))
        yield
        await db.commit()
    except InventoryError:
        await db.rollback()
        raise
    except StorageError:
        await db.rollback()
        logger.error("%s aborted by storage guard", operation, exc_info=True)
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        if _is_retryable(exc):
            logger.warning("%s rolled back on concurrent update conflict: %s", operation, exc)
            raise TransactionConflict() from exc
        logger.error("%s failed with a storage error", operation, exc_info=True)
        raise StorageError() from exc


def _now() -> datetime:
    return datetime.now(UTC)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _require_user(user_id: Optional[int]) -> None:
    if user_id is None:
        raise ValidationError("Acting user id is required.", fields=["user_id"])


def _require_barcode(barcode: Optional[str]) -> str:
    if _blank(barcode):
        raise ValidationError("Barcode is required.", fields=["barcode"])
    return barcode.strip()


def _require_positive(quantity: Optional[int]) -> int:
    if quantity is None or isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be a positive integer.", fields=["quantity"], quantity=quantity)
    return quantity


def _is_blood(inventory_type: inv_models.InventoryType) -> bool:
    return inventory_type.family == InventoryFamily.BLOOD_BOTTLE


# =============================================================================
# 1. 입고 (Import)
# =============================================================================
async def import_stock(
    db: AsyncSession,
    *,
    inventory_type_id: int,
    quantity: int,
    user_id: Optional[int],
    lot_number: Optional[str] = None,
    expiry_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> ImportResult:
    """
    재고를 입고합니다.
    BULK 유형은 재고 수량을 증가시키고, ITEM_TRACKED 유형은 이력(로트)만 기록합니다.
    개별 품목 레코드는 최초 분배 시점에 생성됩니다.
    """
    _require_user(user_id)
    quantity = _require_positive(quantity)

    async with _unit_of_work(db, "import"):
        inventory_type = await inv_crud.inventory_type.get_for_update(db, id=inventory_type_id)
        if inventory_type is None:
            raise TypeNotFound(type_id=inventory_type_id)

        if _is_blood(inventory_type):
            missing = [f for f, v in (("lot_number", lot_number), ("expiry_date", expiry_date)) if not v]
            if missing:
                raise ValidationError("Blood bottle imports require a lot number and expiry date.", fields=missing)
            if expiry_date < date.today():
                raise ValidationError(
                    "Expiry date must not be in the past.", fields=["expiry_date"], expiry_date=str(expiry_date),
                )

        if inventory_type.tracking_mode == TrackingMode.BULK:
            await inv_crud.stock_ledger.increase(db, inventory_type=inventory_type, quantity=quantity)

        record = await inv_crud.history.append(
            db,
            action=HistoryAction.IMPORT,
            inventory_type_id=inventory_type.id,
            quantity=quantity,
            user_id=user_id,
            lot_number=lot_number,
            expiry_date=expiry_date,
            notes=notes,
        )

    logger.info("Imported %d x '%s' (type=%s, lot=%s)", quantity, inventory_type.name, inventory_type.id, lot_number)
    return ImportResult(inventory_type=inventory_type, history=record)


# =============================================================================
# 2. 분배 (Distribute)
# =============================================================================
async def _choose_item_type(
    db: AsyncSession, *, barcode: str, resolution: BarcodeResolution, inventory_type_id: Optional[int],
) -> inv_models.InventoryType:
    """
    신규 바코드의 유형을 결정합니다.
    명시한 유형 ID는 접두어 판별이 모호하거나(후보 여러 개) 불가할 때(후보 없음) 사용됩니다.
    """
    candidates = resolution.candidate_type_ids if resolution.kind == MatchKind.PREFIX else []
    if inventory_type_id is None:
        if not candidates:
            raise TypeNotFound(barcode=barcode)
        chosen_id = candidates[0]
    elif not candidates or inventory_type_id in candidates:
        chosen_id = inventory_type_id
    else:
        raise ValidationError(
            "Explicit inventory type does not match the barcode prefix.",
            fields=["inventory_type_id"], candidate_type_ids=candidates,
        )

    inventory_type = await inv_crud.inventory_type.get_for_update(db, id=chosen_id)
    if inventory_type is None:
        raise TypeNotFound(type_id=chosen_id)
    if inventory_type.tracking_mode != TrackingMode.ITEM_TRACKED:
        raise ValidationError(
            f"Inventory type '{inventory_type.name}' is not item-tracked.",
            fields=["inventory_type_id"], type_id=inventory_type.id,
        )
    return inventory_type


async def distribute(
    db: AsyncSession,
    *,
    barcode: str,
    department_id: int,
    user_id: Optional[int],
    recipient_name: Optional[str] = None,
    quantity: Optional[int] = None,
    inventory_type_id: Optional[int] = None,
    lot_number: Optional[str] = None,
    expiry_date: Optional[date] = None,
    notes: Optional[str] = None,
    accept_warning: bool = False,
) -> DistributionResult:
    """
    스캔한 바코드로 재고를 부서에 분배합니다.

    - BULK 대표 코드와 일치: 명시한 수량만큼 재고를 차감합니다.
    - 그 외: 개별 품목을 분배 상태로 만듭니다 (신규 생성 또는 반납 품목 재사용).
    - 혈액배양병은 더 이른 유효기간의 로트가 남아 있으면 경고를 반환하고 반영하지 않습니다.
      accept_warning=True로 다시 요청하면 반영합니다.
    """
    barcode = _require_barcode(barcode)
    _require_user(user_id)
    recipient_name = None if _blank(recipient_name) else recipient_name.strip()

    async with _unit_of_work(db, "distribute"):
        if not await usr_crud.department.exists(db, id=department_id):
            raise DepartmentNotFound(department_id)

        resolution = await inv_crud.inventory_type.resolve(db, barcode=barcode)

        # --- BULK 분배 ---
        if resolution.kind == MatchKind.BULK:
            inventory_type = resolution.inventory_type
            quantity = _require_positive(quantity)
            if recipient_name is None:
                raise ValidationError("Recipient name is required for chemical distribution.", fields=["recipient_name"])
            await inv_crud.stock_ledger.decrease(db, inventory_type=inventory_type, quantity=quantity)
            record = await inv_crud.history.append(
                db,
                action=HistoryAction.DISTRIBUTE,
                inventory_type_id=inventory_type.id,
                quantity=quantity,
                department_id=department_id,
                user_id=user_id,
                recipient_name=recipient_name,
                notes=notes,
            )
            result = DistributionResult(
                committed=True, match_kind=resolution.kind.value, inventory_type=inventory_type,
                history=record, distributed_quantity=quantity,
            )
        else:
            # --- 개별 품목 분배 ---
            existing = await inv_crud.tracked_item.get_by_barcode(db, barcode=barcode, for_update=True)
            if existing is not None:
                inventory_type = await inv_crud.inventory_type.get_for_update(db, id=existing.inventory_type_id)
                if existing.status != ItemStatus.RETURNED:
                    raise InvalidStateTransition(
                        barcode=barcode, current_status=ItemStatus(existing.status).value,
                        action=HistoryAction.DISTRIBUTE.value,
                    )
                effective_lot = existing.lot_number or lot_number
                effective_expiry = existing.expiry_date or expiry_date
            else:
                inventory_type = await _choose_item_type(
                    db, barcode=barcode, resolution=resolution, inventory_type_id=inventory_type_id,
                )
                available = await inv_crud.stock_ledger.available(db, inventory_type=inventory_type)
                if available < 1:
                    raise InsufficientStock(
                        type_id=inventory_type.id, type_name=inventory_type.name, requested=1, available=available,
                    )
                effective_lot, effective_expiry = lot_number, expiry_date

            if not _is_blood(inventory_type):
                if recipient_name is None:
                    raise ValidationError("Recipient name is required for chemical distribution.", fields=["recipient_name"])
                # 로트/유효기간은 혈액배양병 품목에만 기록합니다.
                effective_lot = effective_expiry = None
            else:
                missing = [f for f, v in (("lot_number", effective_lot), ("expiry_date", effective_expiry)) if not v]
                if missing:
                    raise ValidationError("Blood bottle distribution requires a lot number and expiry date.", fields=missing)

            match_kind = resolution.kind.value
            if _is_blood(inventory_type) and not accept_warning:
                earliest = await inv_crud.history.earliest_unconsumed_expiry_before(
                    db, inventory_type_id=inventory_type.id, expiry_date=effective_expiry,
                )
                if earliest is not None:
                    warning = (
                        f"'{inventory_type.name}' units with an earlier expiry ({earliest.isoformat()}) "
                        f"are still in stock."
                    )
                    logger.warning("Distribution of '%s' held for confirmation: %s", barcode, warning)
                    return DistributionResult(
                        committed=False, match_kind=match_kind, inventory_type=inventory_type,
                        item=existing, warning=warning, earliest_expiry=earliest,
                    )

            item = await inv_crud.tracked_item.upsert_distributed(
                db,
                existing=existing,
                barcode=barcode,
                inventory_type_id=inventory_type.id,
                department_id=department_id,
                user_id=user_id,
                recipient_name=recipient_name,
                lot_number=effective_lot,
                expiry_date=effective_expiry,
                notes=notes,
                now=_now(),
            )
            record = await inv_crud.history.append(
                db,
                action=HistoryAction.DISTRIBUTE,
                inventory_type_id=inventory_type.id,
                tracked_item_id=item.id,
                department_id=department_id,
                user_id=user_id,
                recipient_name=recipient_name,
                lot_number=item.lot_number if _is_blood(inventory_type) else None,
                expiry_date=item.expiry_date if _is_blood(inventory_type) else None,
                notes=notes,
            )
            result = DistributionResult(
                committed=True, match_kind=match_kind, inventory_type=inventory_type,
                item=item, history=record,
            )

    logger.info(
        "Distributed '%s' (type=%s, quantity=%s) to department %s",
        barcode, result.inventory_type.id, result.distributed_quantity or 1, department_id,
    )
    return result


# =============================================================================
# 3. 반납 / 사용 / 만료 / 분실 처리
# =============================================================================
def _scan_note(notes: Optional[str]) -> str:
    base = "Scanned during return process."
    return f"{base} {notes}" if notes else base


async def return_item(
    db: AsyncSession, *, barcode: str, user_id: Optional[int], notes: Optional[str] = None,
) -> ItemActionResult:
    """
    분배 상태의 품목을 반납합니다.
    품목이 없거나 분배 상태가 아니면 미확인 스캔으로 기록(커밋)한 뒤
    ItemNotFound / InvalidStateTransition을 발생시킵니다.
    """
    barcode = _require_barcode(barcode)
    _require_user(user_id)
    rejection: Optional[InventoryError] = None

    async with _unit_of_work(db, "return"):
        item = await inv_crud.tracked_item.get_by_barcode(db, barcode=barcode, for_update=True)
        if item is None or item.status != ItemStatus.DISTRIBUTED:
            await inv_crud.unattributed_scan.record(db, barcode=barcode, user_id=user_id, notes=_scan_note(notes))
            if item is None:
                rejection = ItemNotFound(barcode, recorded_as_unattributed=True)
            else:
                rejection = InvalidStateTransition(
                    barcode=barcode, current_status=ItemStatus(item.status).value,
                    action=HistoryAction.RETURN.value, recorded_as_unattributed=True,
                )
        else:
            result = await _transition(db, item=item, action=HistoryAction.RETURN, user_id=user_id, notes=notes)

    if rejection is not None:
        logger.warning("Return scan for '%s' recorded as unattributed: %s", barcode, rejection.message)
        raise rejection
    logger.info("Returned '%s' (type=%s)", barcode, result.item.inventory_type_id)
    return result


async def _transition(
    db: AsyncSession, *, item: inv_models.TrackedItem, action: HistoryAction,
    user_id: Optional[int], notes: Optional[str],
) -> ItemActionResult:
    """상태 전이와 이력 추가. 부서/수령인은 전이 전 값으로 이력에 남깁니다."""
    inventory_type = await inv_crud.inventory_type.get(db, id=item.inventory_type_id)
    department_id, recipient_name = item.current_department_id, item.recipient_name
    item = await inv_crud.tracked_item.apply_transition(
        db, item=item, action=action, user_id=user_id, notes=notes, now=_now(),
    )
    blood = inventory_type is not None and _is_blood(inventory_type)
    record = await inv_crud.history.append(
        db,
        action=action,
        inventory_type_id=item.inventory_type_id,
        tracked_item_id=item.id,
        department_id=department_id,
        user_id=user_id,
        recipient_name=recipient_name,
        lot_number=item.lot_number if blood else None,
        expiry_date=item.expiry_date if blood else None,
        notes=notes,
    )
    return ItemActionResult(item=item, history=record)


async def _write_off(
    db: AsyncSession, *, barcode: str, user_id: Optional[int], notes: Optional[str],
    action: HistoryAction, blood_only: bool,
) -> ItemActionResult:
    barcode = _require_barcode(barcode)
    _require_user(user_id)

    async with _unit_of_work(db, action.value):
        item = await inv_crud.tracked_item.get_by_barcode(db, barcode=barcode, for_update=True)
        if item is None:
            raise ItemNotFound(barcode)
        if blood_only:
            inventory_type = await inv_crud.inventory_type.get(db, id=item.inventory_type_id)
            if inventory_type is None or not _is_blood(inventory_type):
                raise ValidationError(
                    f"'{action.value}' applies to blood bottles only.", fields=["barcode"], barcode=barcode,
                )
        result = await _transition(db, item=item, action=action, user_id=user_id, notes=notes)

    logger.info("Item '%s' marked %s", barcode, ItemStatus(result.item.status).value)
    return result


async def mark_used(db: AsyncSession, *, barcode: str, user_id: Optional[int], notes: Optional[str] = None) -> ItemActionResult:
    """혈액배양병 사용 처리 (분배 -> 사용). 재고로 돌아오지 않습니다."""
    return await _write_off(db, barcode=barcode, user_id=user_id, notes=notes, action=HistoryAction.MARK_USED, blood_only=True)


async def mark_expired(db: AsyncSession, *, barcode: str, user_id: Optional[int], notes: Optional[str] = None) -> ItemActionResult:
    """혈액배양병 만료 처리 (분배 또는 반납 -> 만료)."""
    return await _write_off(db, barcode=barcode, user_id=user_id, notes=notes, action=HistoryAction.MARK_EXPIRED, blood_only=True)


async def mark_lost(db: AsyncSession, *, barcode: str, user_id: Optional[int], notes: Optional[str] = None) -> ItemActionResult:
    """개별 추적 품목 분실 처리 (분배 또는 반납 -> 분실)."""
    return await _write_off(db, barcode=barcode, user_id=user_id, notes=notes, action=HistoryAction.MARK_LOST, blood_only=False)


# =============================================================================
# 4. 재고 유형 카탈로그
# =============================================================================
async def create_inventory_type(db: AsyncSession, *, obj_in: inv_schemas.InventoryTypeCreate) -> inv_models.InventoryType:
    async with _unit_of_work(db, "create_inventory_type"):
        db_obj = await inv_crud.inventory_type.create(
            db, obj_in=obj_in, default_unit=settings.BLOOD_BOTTLE_DEFAULT_UNIT,
        )
    logger.info("Created inventory type '%s' (id=%s, mode=%s)", db_obj.name, db_obj.id, db_obj.tracking_mode)
    return db_obj


async def update_inventory_type(
    db: AsyncSession, *, inventory_type_id: int, obj_in: inv_schemas.InventoryTypeUpdate,
) -> inv_models.InventoryType:
    async with _unit_of_work(db, "update_inventory_type"):
        db_obj = await inv_crud.inventory_type.get_for_update(db, id=inventory_type_id)
        if db_obj is None:
            raise TypeNotFound(type_id=inventory_type_id)
        db_obj = await inv_crud.inventory_type.update(db, db_obj=db_obj, obj_in=obj_in)
    logger.info("Updated inventory type %s", inventory_type_id)
    return db_obj


async def delete_inventory_type(db: AsyncSession, *, inventory_type_id: int) -> inv_models.InventoryType:
    async with _unit_of_work(db, "delete_inventory_type"):
        db_obj = await inv_crud.inventory_type.remove(db, id=inventory_type_id)
    logger.info("Deleted inventory type %s", inventory_type_id)
    return db_obj


async def get_inventory_type(db: AsyncSession, *, inventory_type_id: int) -> inv_models.InventoryType:
    db_obj = await inv_crud.inventory_type.get(db, id=inventory_type_id)
    if db_obj is None:
        raise TypeNotFound(type_id=inventory_type_id)
    return db_obj


async def list_inventory_types(
    db: AsyncSession, *, tracking_mode: Optional[TrackingMode] = None,
    family: Optional[InventoryFamily] = None, skip: int = 0, limit: int = 100,
) -> List[inv_models.InventoryType]:
    filters: Dict[str, Any] = {}
    if tracking_mode is not None:
        filters["tracking_mode"] = tracking_mode
    if family is not None:
        filters["family"] = family
    return await inv_crud.inventory_type.get_multi(db, skip=skip, limit=limit, **filters)


async def resolve_barcode(db: AsyncSession, *, barcode: str) -> BarcodeResolution:
    """부작용 없이 바코드 판별 결과만 반환합니다."""
    return await inv_crud.inventory_type.resolve(db, barcode=_require_barcode(barcode))


# =============================================================================
# 5. 조회
# =============================================================================
def _page_limit(limit: Optional[int]) -> int:
    if limit is None or limit <= 0:
        return settings.HISTORY_PAGE_LIMIT
    return min(limit, settings.HISTORY_PAGE_LIMIT)


async def get_history(
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
    limit: Optional[int] = None,
) -> List[inv_models.HistoryRecord]:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date.", fields=["start_date", "end_date"])
    return await inv_crud.history.get_history(
        db,
        inventory_type_id=inventory_type_id,
        department_id=department_id,
        lot_number=lot_number,
        action=action,
        tracked_item_id=tracked_item_id,
        start_date=start_date,
        end_date=end_date,
        skip=max(skip, 0),
        limit=_page_limit(limit),
    )


async def list_unattributed_scans(
    db: AsyncSession, *, barcode: Optional[str] = None, skip: int = 0, limit: Optional[int] = None,
) -> List[inv_models.UnattributedScan]:
    return await inv_crud.unattributed_scan.list_recent(db, barcode=barcode, skip=max(skip, 0), limit=_page_limit(limit))


async def get_stock_snapshot(db: AsyncSession) -> List[Dict[str, Any]]:
    return await inv_crud.stock_ledger.snapshot(db)


async def list_expiring_items(
    db: AsyncSession, *, within_days: Optional[int] = None, inventory_type_id: Optional[int] = None,
) -> List[inv_models.TrackedItem]:
    """유효기간이 [오늘, 오늘 + within_days] 범위인 분배/반납 상태 품목을 조회합니다."""
    days = settings.EXPIRING_SOON_DAYS if within_days is None else within_days
    if days < 0:
        raise ValidationError("within_days must not be negative.", fields=["within_days"])
    today = date.today()
    return await inv_crud.tracked_item.list_expiring(
        db, start=today, end=today + timedelta(days=days), inventory_type_id=inventory_type_id,
    )


async def get_item(db: AsyncSession, *, barcode: str) -> inv_models.TrackedItem:
    item = await inv_crud.tracked_item.get_by_barcode(db, barcode=_require_barcode(barcode))
    if item is None:
        raise ItemNotFound(barcode)
    return item
