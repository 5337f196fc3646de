# scripts/create_inventory_type.py

"""
셸에서 재고 유형을 등록하는 CLI 스크립트입니다.
API와 동일한 카탈로그 검증(이름/바코드 키 중복, 혈액배양병 추적 방식)을 거칩니다.

사용 예:
    python -m scripts.create_inventory_type --name "Blood culture (aerobic)" \
        --mode item_tracked --family blood_bottle --barcode-key AR
"""

import asyncio
from typing import Optional

import typer

from app.core.database import create_db_and_tables, engine, get_async_session_context
from app.core.exceptions import InventoryError, StorageError
from app.domains.inv import schemas as inv_schemas
from app.domains.inv import services as inv_services
from app.domains.inv.models import InventoryFamily, TrackingMode

cli = typer.Typer()


async def create_inventory_type(type_in: inv_schemas.InventoryTypeCreate) -> None:
    """
    데이터베이스에 재고 유형을 생성하는 비동기 함수
    """
    await create_db_and_tables()
    try:
        async with get_async_session_context() as db:
            db_obj = await inv_services.create_inventory_type(db, obj_in=type_in)
        typer.echo(
            f"재고 유형이 성공적으로 등록되었습니다: {db_obj.name} "
            f"(id={db_obj.id}, mode={db_obj.tracking_mode.value}, key={db_obj.barcode_key})"
        )
    finally:
        await engine.dispose()


@cli.command()
def main(
    name: str = typer.Option(..., '--name', '-n', prompt="재고 유형명을 입력하세요", help="고유한 재고 유형명입니다."),
    mode: TrackingMode = typer.Option(..., '--mode', '-m', help="추적 방식 (bulk | item_tracked)"),
    family: InventoryFamily = typer.Option(InventoryFamily.CHEMICAL, '--family', '-f', help="품목군 (chemical | blood_bottle)"),
    barcode_key: Optional[str] = typer.Option(
        None, '--barcode-key', '-k',
        help="BULK는 대표 바코드(정확 일치), item_tracked는 바코드 접두어입니다."
    ),
    unit: Optional[str] = typer.Option(None, '--unit', '-u', help="단위입니다. 혈액배양병은 생략 시 기본 단위를 사용합니다."),
    description: Optional[str] = typer.Option(None, '--description', '-d', help="설명입니다."),
):
    """
    새로운 재고 유형을 등록합니다.
    """
    type_in = inv_schemas.InventoryTypeCreate(
        name=name,
        unit=unit,
        tracking_mode=mode,
        family=family,
        barcode_key=barcode_key,
        description=description,
    )

    try:
        asyncio.run(create_inventory_type(type_in))
    except InventoryError as exc:
        typer.echo(f"오류: {exc.message}", err=True)
        raise typer.Exit(code=1)
    except StorageError as exc:
        typer.echo(f"저장소 오류: {exc.message}", err=True)
        raise typer.Exit(code=2)


if __name__ == "__main__":
    cli()
