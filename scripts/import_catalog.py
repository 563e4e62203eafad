# flake8: noqa
# scripts/import_catalog.py

import asyncio
from typing import Optional

import typer

from app.core.config import settings
from app.core.database import AsyncSessionLocal, create_db_and_tables
from app.core.exceptions import CatalogImportError
from app.domains.catalog import schemas as catalog_schemas
from app.domains.catalog.importer import catalog_importer

cli = typer.Typer()


async def run_import(csv_path: str, create_tables: bool) -> catalog_schemas.CatalogImportResult:
    """
    CSV 파일로 카탈로그를 적재하는 비동기 함수.
    카탈로그가 이미 채워져 있으면 아무것도 하지 않습니다.
    """
    if create_tables:
        await create_db_and_tables()
    async with AsyncSessionLocal() as db:
        return await catalog_importer.import_file(db, csv_path)


@cli.command()
def main(
    csv_path: Optional[str] = typer.Option(
        None, '--csv', '-c',
        help="적재할 카탈로그 CSV 파일 경로입니다. 생략하면 CATALOG_CSV_PATH 설정을 사용합니다."
    ),
    create_tables: bool = typer.Option(
        False, '--create-tables',
        help="적재 전에 테이블이 없으면 생성합니다. (개발용)"
    ),
):
    """
    공유 카탈로그를 CSV 파일에서 한 번 적재합니다.
    """
    path = csv_path or settings.CATALOG_CSV_PATH
    if not path:
        print("오류: --csv 옵션이나 CATALOG_CSV_PATH 설정이 필요합니다.")
        raise typer.Exit(code=2)

    print(f"카탈로그 임포트를 시작합니다: {path}")
    try:
        result = asyncio.run(run_import(path, create_tables))
    except CatalogImportError as e:
        print(f"오류: {e.message} (커밋된 행: {e.committed_count})")
        raise typer.Exit(code=1)

    print(f"상태: {result.status.value}, 적재: {result.imported_count}건, 건너뜀: {result.skipped_rows}행")
    for error in result.errors:
        print(f"  - {error}")


if __name__ == "__main__":
    cli()
