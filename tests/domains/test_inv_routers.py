# tests/domains/test_inv_routers.py

"""
'inv' 도메인 API 엔드포인트에 대한 통합 테스트 모듈입니다.

- 재고 유형 등록/조회/판별/삭제
- 입고 -> 분배 -> 반납 흐름
- 도메인 오류의 HTTP 상태 코드와 구조화된 응답 본문 {"detail", "code", "context"}
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

API = "/api/v1/inv"
EXPIRY = (date.today() + timedelta(days=120)).isoformat()


# =================================================================================
# 1. 재고 유형 (inventory_types)
# =================================================================================
@pytest.mark.asyncio
async def test_create_and_read_inventory_type(client: AsyncClient):
    """(성공) 재고 유형 등록 후 단건/목록 조회"""
    # [Given]
    payload = {"name": "PBS 완충액", "unit": "box", "tracking_mode": "bulk", "barcode_key": "PBS"}

    # [When]
    response = await client.post(f"{API}/inventory_types", json=payload)

    # [Then]
    assert response.status_code == 201
    created = response.json()
    assert created["name"] == "PBS 완충액"
    assert created["family"] == "chemical"
    assert created["stock_quantity"] == 0

    detail = await client.get(f"{API}/inventory_types/{created['id']}")
    assert detail.status_code == 200
    assert detail.json()["barcode_key"] == "PBS"

    listing = await client.get(f"{API}/inventory_types", params={"tracking_mode": "bulk"})
    assert [t["id"] for t in listing.json()] == [created["id"]]


@pytest.mark.asyncio
async def test_create_duplicate_inventory_type(client: AsyncClient, bulk_type):
    """(실패) 중복 바코드 키 등록 시 409와 duplicate_key 코드"""
    payload = {"name": "다른 이름", "unit": "box", "tracking_mode": "bulk", "barcode_key": "OVB"}

    response = await client.post(f"{API}/inventory_types", json=payload)

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "duplicate_key"
    assert body["context"]["conflicting_type_id"] == bulk_type.id


@pytest.mark.asyncio
async def test_read_missing_inventory_type(client: AsyncClient):
    """(실패) 존재하지 않는 유형 조회 시 404"""
    response = await client.get(f"{API}/inventory_types/9999")

    assert response.status_code == 404
    assert response.json()["code"] == "type_not_found"


@pytest.mark.asyncio
async def test_resolve_barcode_endpoint(client: AsyncClient, bulk_type, blood_type):
    """(성공) 바코드 판별 미리보기"""
    bulk = await client.get(f"{API}/inventory_types/resolve", params={"barcode": "OVB"})
    prefix = await client.get(f"{API}/inventory_types/resolve", params={"barcode": "AR123"})
    unknown = await client.get(f"{API}/inventory_types/resolve", params={"barcode": "QQ1"})

    assert bulk.json()["match_kind"] == "bulk_match"
    assert bulk.json()["inventory_type"]["id"] == bulk_type.id
    assert prefix.json()["match_kind"] == "prefix_match"
    assert prefix.json()["candidate_type_ids"] == [blood_type.id]
    assert unknown.json() == {"match_kind": "no_match", "inventory_type": None, "candidate_type_ids": []}


@pytest.mark.asyncio
async def test_delete_inventory_type_endpoint(client: AsyncClient, bulk_type):
    """(성공) 참조가 없는 유형 삭제 시 204, 이후 조회는 404"""
    response = await client.delete(f"{API}/inventory_types/{bulk_type.id}")

    assert response.status_code == 204
    assert (await client.get(f"{API}/inventory_types/{bulk_type.id}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_referenced_inventory_type(client: AsyncClient, bulk_type):
    """(실패) 이력이 있는 유형 삭제 시 409 type_in_use"""
    await client.post(f"{API}/stock/import", json={"inventory_type_id": bulk_type.id, "quantity": 3})

    response = await client.delete(f"{API}/inventory_types/{bulk_type.id}")

    assert response.status_code == 409
    assert response.json()["code"] == "type_in_use"


# =================================================================================
# 2. 입고 / 분배 / 반납 흐름
# =================================================================================
@pytest.mark.asyncio
async def test_bulk_flow(client: AsyncClient, test_department, bulk_type):
    """(성공) BULK 입고 50 -> 분배 10 -> 재고 40"""
    imported = await client.post(f"{API}/stock/import", json={"inventory_type_id": bulk_type.id, "quantity": 50})
    assert imported.status_code == 201
    assert imported.json()["inventory_type"]["stock_quantity"] == 50

    distributed = await client.post(
        f"{API}/stock/distribute",
        json={"barcode": "OVB", "department_id": test_department.id, "recipient_name": "김간호", "quantity": 10},
    )
    assert distributed.status_code == 200
    body = distributed.json()
    assert body["committed"] is True
    assert body["match_kind"] == "bulk_match"
    assert body["distributed_quantity"] == 10
    assert body["inventory_type"]["stock_quantity"] == 40

    snapshot = await client.get(f"{API}/stock")
    entry = next(e for e in snapshot.json() if e["inventory_type_id"] == bulk_type.id)
    assert entry["available_quantity"] == 40

    history = await client.get(f"{API}/history", params={"inventory_type_id": bulk_type.id})
    assert [h["action"] for h in history.json()] == ["distribute", "import"]


@pytest.mark.asyncio
async def test_blood_bottle_flow(client: AsyncClient, test_department, blood_type):
    """(성공) 혈액배양병 입고 -> 분배 -> 반납 -> 사용 불가 확인"""
    await client.post(
        f"{API}/stock/import",
        json={"inventory_type_id": blood_type.id, "quantity": 2, "lot_number": "L1", "expiry_date": EXPIRY},
    )

    distributed = await client.post(
        f"{API}/stock/distribute",
        json={"barcode": "AR1234567", "department_id": test_department.id, "lot_number": "L1", "expiry_date": EXPIRY},
    )
    assert distributed.status_code == 200
    assert distributed.json()["item"]["status"] == "distributed"

    returned = await client.post(f"{API}/items/return", json={"barcode": "AR1234567"})
    assert returned.status_code == 200
    assert returned.json()["item"]["status"] == "returned"
    assert returned.json()["history"]["action"] == "return"

    item = await client.get(f"{API}/items/AR1234567")
    assert item.json()["lot_number"] == "L1"

    used = await client.post(f"{API}/items/mark_used", json={"barcode": "AR1234567"})
    assert used.status_code == 409
    assert used.json()["context"]["current_status"] == "returned"


@pytest.mark.asyncio
async def test_distribute_warning_is_not_committed(client: AsyncClient, test_department, blood_type):
    """(성공) 더 이른 유효기간 로트가 남아 있으면 committed=false 응답"""
    early = (date.today() + timedelta(days=20)).isoformat()
    for lot, expiry in (("L-EARLY", early), ("L-LATE", EXPIRY)):
        await client.post(
            f"{API}/stock/import",
            json={"inventory_type_id": blood_type.id, "quantity": 1, "lot_number": lot, "expiry_date": expiry},
        )
    request = {"barcode": "AR77", "department_id": test_department.id, "lot_number": "L-LATE", "expiry_date": EXPIRY}

    held = await client.post(f"{API}/stock/distribute", json=request)
    assert held.status_code == 200
    assert held.json()["committed"] is False
    assert held.json()["earliest_expiry"] == early
    assert (await client.get(f"{API}/items/AR77")).status_code == 404

    accepted = await client.post(f"{API}/stock/distribute", json={**request, "accept_warning": True})
    assert accepted.json()["committed"] is True


@pytest.mark.asyncio
async def test_return_unknown_barcode_endpoint(client: AsyncClient):
    """(실패) 알 수 없는 바코드 반납 시 404, 미확인 스캔 목록에 기록"""
    response = await client.post(f"{API}/items/return", json={"barcode": "GHOST-1", "notes": "회수함"})

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "item_not_found"
    assert body["context"]["recorded_as_unattributed"] is True

    scans = await client.get(f"{API}/unattributed_scans")
    assert [s["barcode"] for s in scans.json()] == ["GHOST-1"]


# =================================================================================
# 3. 오류 응답
# =================================================================================
@pytest.mark.asyncio
async def test_distribute_insufficient_stock_endpoint(client: AsyncClient, test_department, bulk_type):
    """(실패) 재고 부족 시 409 insufficient_stock"""
    response = await client.post(
        f"{API}/stock/distribute",
        json={"barcode": "OVB", "department_id": test_department.id, "recipient_name": "김간호", "quantity": 1},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "insufficient_stock"
    assert response.json()["context"]["available"] == 0


@pytest.mark.asyncio
async def test_distribute_unknown_barcode_endpoint(client: AsyncClient, test_department):
    """(실패) 판별 불가 바코드 분배 시 404 type_not_found"""
    response = await client.post(
        f"{API}/stock/distribute",
        json={"barcode": "ZZ999", "department_id": test_department.id, "recipient_name": "김간호"},
    )

    assert response.status_code == 404
    assert response.json()["context"]["barcode"] == "ZZ999"


@pytest.mark.asyncio
async def test_missing_user_header(client: AsyncClient, bulk_type):
    """(실패) 작업자 헤더 없이 입고 요청 시 422 validation_error"""
    response = await client.post(
        f"{API}/stock/import",
        json={"inventory_type_id": bulk_type.id, "quantity": 1},
        headers={"X-User-Id": ""},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_history_invalid_range(client: AsyncClient):
    """(실패) 시작일이 종료일보다 늦으면 422"""
    today = date.today()
    response = await client.get(
        f"{API}/history",
        params={"start_date": today.isoformat(), "end_date": (today - timedelta(days=1)).isoformat()},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
