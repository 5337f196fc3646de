# scripts/create_department.py

"""
분배 대상 부서를 등록하는 CLI 스크립트입니다.
부서 관리 API는 제공하지 않으므로, 초기 데이터 적재에 사용합니다.
"""

import asyncio
from typing import Optional

import typer

from app.core.database import create_db_and_tables, engine, get_async_session_context
from app.domains.usr import crud as usr_crud
from app.domains.usr import schemas as usr_schemas

cli = typer.Typer()


async def create_department(department_in: usr_schemas.DepartmentCreate) -> bool:
    """부서를 생성합니다. 이미 같은 코드가 있으면 False를 반환합니다."""
    await create_db_and_tables()
    try:
        async with get_async_session_context() as db:
            if await usr_crud.department.get_by_code(db, code=department_in.code):
                typer.echo(f"오류: 이미 존재하는 부서 코드입니다: {department_in.code}", err=True)
                return False
            db_obj = await usr_crud.department.create(db, obj_in=department_in)
            await db.commit()
            typer.echo(f"부서가 성공적으로 등록되었습니다: {db_obj.code} {db_obj.name} (id={db_obj.id})")
            return True
    finally:
        await engine.dispose()


@cli.command()
def main(
    code: str = typer.Option(..., '--code', '-c', prompt="부서 코드를 입력하세요", help="부서 코드 (예: XN)"),
    name: str = typer.Option(..., '--name', '-n', prompt="부서명을 입력하세요", help="부서명"),
    notes: Optional[str] = typer.Option(None, '--notes', help="비고"),
):
    """
    새로운 부서를 등록합니다.
    """
    created = asyncio.run(create_department(usr_schemas.DepartmentCreate(code=code, name=name, notes=notes)))
    if not created:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
