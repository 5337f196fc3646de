# tests/domains/test_inv_catalog.py

"""
재고 유형 카탈로그(InventoryTypeCRUD)와 바코드 판별에 대한 테스트 모듈입니다.

- 정확 일치(BULK) / 접두어 일치(ITEM_TRACKED) / 불일치 판별
- 이름 및 바코드 키 중복 검사 (접두어 겹침 포함)
- 참조 중인 유형의 삭제 및 추적 방식 변경 거부
"""

from datetime import date, timedelta

import pytest
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.exceptions import DuplicateKey, TypeInUse, TypeNotFound, ValidationError
from app.domains.inv import crud as inv_crud
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv import services as inv_services
from app.domains.inv.crud import MatchKind


# =================================================================================
# 1. 바코드 판별
# =================================================================================
@pytest.mark.asyncio
async def test_resolve_exact_bulk_code(db_session: AsyncSession, bulk_type, blood_type):
    """(성공) BULK 대표 코드와 정확히 일치하면 bulk_match"""
    resolution = await inv_crud.inventory_type.resolve(db_session, barcode="OVB")

    assert resolution.kind == MatchKind.BULK
    assert resolution.inventory_type.id == bulk_type.id


@pytest.mark.asyncio
async def test_bulk_code_is_not_a_prefix(db_session: AsyncSession, bulk_type):
    """(성공) BULK 대표 코드는 접두어로 판별되지 않음"""
    resolution = await inv_crud.inventory_type.resolve(db_session, barcode="OVB-0001")

    assert resolution.kind == MatchKind.NONE
    assert resolution.inventory_type is None


@pytest.mark.asyncio
async def test_resolve_prefix_match(db_session: AsyncSession, bulk_type, blood_type, chemical_item_type):
    """(성공) ITEM_TRACKED 접두어와 일치하면 prefix_match"""
    resolution = await inv_crud.inventory_type.resolve(db_session, barcode="AR1234567")

    assert resolution.kind == MatchKind.PREFIX
    assert resolution.inventory_type.id == blood_type.id
    assert resolution.candidate_type_ids == [blood_type.id]


@pytest.mark.asyncio
async def test_resolve_for_distribution_unknown_barcode(db_session: AsyncSession, bulk_type, blood_type):
    """(실패) 어떤 유형과도 일치하지 않으면 TypeNotFound"""
    with pytest.raises(TypeNotFound) as exc_info:
        await inv_crud.inventory_type.resolve_for_distribution(db_session, barcode="ZZ999")

    assert exc_info.value.context["barcode"] == "ZZ999"


@pytest.mark.asyncio
async def test_resolve_barcode_preview_has_no_side_effects(db_session: AsyncSession, blood_type):
    """(성공) 판별 미리보기는 어떤 레코드도 만들지 않음"""
    resolution = await inv_services.resolve_barcode(db_session, barcode="AR0001")

    assert resolution.kind == MatchKind.PREFIX
    assert await inv_services.get_history(db_session) == []
    assert await inv_services.list_unattributed_scans(db_session) == []


# =================================================================================
# 2. 유형 생성 / 수정 검증
# =================================================================================
@pytest.mark.asyncio
async def test_create_blood_type_defaults_unit(blood_type):
    """(성공) 혈액배양병 유형은 단위 생략 시 기본 단위를 사용"""
    assert blood_type.unit == "bottle"
    assert blood_type.stock_quantity == 0


@pytest.mark.asyncio
async def test_duplicate_bulk_code_rejected(db_session: AsyncSession, bulk_type):
    """(실패) 같은 BULK 대표 코드 등록 시 DuplicateKey"""
    type_in = inv_schemas.InventoryTypeCreate(
        name="다른 희석액", unit="box", tracking_mode=inv_models.TrackingMode.BULK, barcode_key="OVB",
    )
    with pytest.raises(DuplicateKey) as exc_info:
        await inv_services.create_inventory_type(db_session, obj_in=type_in)

    assert exc_info.value.context["field"] == "barcode_key"
    assert exc_info.value.context["conflicting_type_id"] == bulk_type.id


@pytest.mark.asyncio
async def test_overlapping_prefix_rejected(db_session: AsyncSession, blood_type):
    """(실패) 기존 접두어와 겹치는 접두어('AR' vs 'ARX') 등록 시 DuplicateKey"""
    type_in = inv_schemas.InventoryTypeCreate(
        name="혐기성 혈액배양병",
        tracking_mode=inv_models.TrackingMode.ITEM_TRACKED,
        family=inv_models.InventoryFamily.BLOOD_BOTTLE,
        barcode_key="ARX",
    )
    with pytest.raises(DuplicateKey):
        await inv_services.create_inventory_type(db_session, obj_in=type_in)


@pytest.mark.asyncio
async def test_same_key_allowed_across_modes(db_session: AsyncSession, bulk_type):
    """(성공) 추적 방식이 다르면 같은 키를 사용할 수 있음"""
    type_in = inv_schemas.InventoryTypeCreate(
        name="OVB 개별병", unit="bottle", tracking_mode=inv_models.TrackingMode.ITEM_TRACKED, barcode_key="OVB",
    )
    created = await inv_services.create_inventory_type(db_session, obj_in=type_in)

    assert created.id != bulk_type.id


@pytest.mark.asyncio
async def test_duplicate_name_rejected(db_session: AsyncSession, bulk_type):
    """(실패) 같은 이름 등록 시 DuplicateKey(name)"""
    type_in = inv_schemas.InventoryTypeCreate(
        name=bulk_type.name, unit="box", tracking_mode=inv_models.TrackingMode.BULK, barcode_key="NEW",
    )
    with pytest.raises(DuplicateKey) as exc_info:
        await inv_services.create_inventory_type(db_session, obj_in=type_in)

    assert exc_info.value.context["field"] == "name"


@pytest.mark.asyncio
async def test_blank_name_rejected(db_session: AsyncSession):
    """(실패) 공백만 있는 이름은 누락으로 보고 ValidationError(name)"""
    type_in = inv_schemas.InventoryTypeCreate(
        name="   ", unit="box", tracking_mode=inv_models.TrackingMode.BULK, barcode_key="BLK",
    )
    with pytest.raises(ValidationError) as exc_info:
        await inv_services.create_inventory_type(db_session, obj_in=type_in)

    assert exc_info.value.context["fields"] == ["name"]
    assert await inv_crud.inventory_type.get_by_attribute(db_session, attribute="barcode_key", value="BLK") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes, field",
    [
        ({"barcode_key": "NEW"}, "name"),
        ({"name": "다른 희석액"}, "barcode_key"),
    ],
)
async def test_unique_constraint_race_becomes_duplicate_key(
    db_session: AsyncSession, bulk_type, monkeypatch, changes, field,
):
    """(실패) 사전 검사를 통과한 동시 등록이 유니크 제약에 걸리면 DuplicateKey로 변환"""
    # [Given] 다른 요청이 먼저 커밋해 사전 검사가 충돌을 보지 못한 상황
    async def no_conflict_seen(*args, **kwargs):
        return None

    monkeypatch.setattr(inv_crud.inventory_type, "_check_unique", no_conflict_seen)
    type_in = inv_schemas.InventoryTypeCreate(
        **{"name": bulk_type.name, "unit": "box", "tracking_mode": inv_models.TrackingMode.BULK,
           "barcode_key": bulk_type.barcode_key, **changes},
    )

    # [When]
    with pytest.raises(DuplicateKey) as exc_info:
        await inv_services.create_inventory_type(db_session, obj_in=type_in)

    # [Then]
    assert exc_info.value.context["field"] == field
    assert len(await inv_services.list_inventory_types(db_session)) == 1


@pytest.mark.asyncio
async def test_blood_bottle_must_be_item_tracked(db_session: AsyncSession):
    """(실패) 혈액배양병을 BULK로 등록하면 ValidationError"""
    type_in = inv_schemas.InventoryTypeCreate(
        name="잘못된 혈액배양병",
        tracking_mode=inv_models.TrackingMode.BULK,
        family=inv_models.InventoryFamily.BLOOD_BOTTLE,
        barcode_key="BB",
    )
    with pytest.raises(ValidationError):
        await inv_services.create_inventory_type(db_session, obj_in=type_in)


@pytest.mark.asyncio
async def test_update_type_description(db_session: AsyncSession, bulk_type):
    """(성공) 참조가 없는 유형은 설명과 추적 방식을 변경할 수 있음"""
    updated = await inv_services.update_inventory_type(
        db_session,
        inventory_type_id=bulk_type.id,
        obj_in=inv_schemas.InventoryTypeUpdate(description="냉장 보관", tracking_mode=inv_models.TrackingMode.ITEM_TRACKED),
    )

    assert updated.description == "냉장 보관"
    assert updated.tracking_mode == inv_models.TrackingMode.ITEM_TRACKED


# =================================================================================
# 3. 참조 중인 유형 보호
# =================================================================================
@pytest.mark.asyncio
async def test_delete_unreferenced_type(db_session: AsyncSession, bulk_type, reload):
    """(성공) 참조가 없는 유형 삭제"""
    await inv_services.delete_inventory_type(db_session, inventory_type_id=bulk_type.id)

    assert await reload(inv_models.InventoryType, bulk_type.id) is None


@pytest.mark.asyncio
async def test_delete_type_with_history_rejected(db_session: AsyncSession, test_user, bulk_type, reload):
    """(실패) 이력이 있는 유형 삭제 시 TypeInUse"""
    await inv_services.import_stock(db_session, inventory_type_id=bulk_type.id, quantity=5, user_id=test_user.id)

    with pytest.raises(TypeInUse) as exc_info:
        await inv_services.delete_inventory_type(db_session, inventory_type_id=bulk_type.id)

    assert exc_info.value.context["history_count"] == 1
    assert await reload(inv_models.InventoryType, bulk_type.id) is not None


@pytest.mark.asyncio
async def test_change_mode_of_referenced_type_rejected(db_session: AsyncSession, test_user, blood_type):
    """(실패) 이력이 있는 유형의 추적 방식/품목군 변경 시 TypeInUse"""
    await inv_services.import_stock(
        db_session, inventory_type_id=blood_type.id, quantity=3, user_id=test_user.id,
        lot_number="L1", expiry_date=date.today() + timedelta(days=90),
    )

    with pytest.raises(TypeInUse):
        await inv_services.update_inventory_type(
            db_session,
            inventory_type_id=blood_type.id,
            obj_in=inv_schemas.InventoryTypeUpdate(family=inv_models.InventoryFamily.CHEMICAL),
        )


@pytest.mark.asyncio
async def test_delete_missing_type(db_session: AsyncSession):
    """(실패) 존재하지 않는 유형 삭제 시 TypeNotFound"""
    with pytest.raises(TypeNotFound):
        await inv_services.delete_inventory_type(db_session, inventory_type_id=9999)
