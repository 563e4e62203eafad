# app/domains/catalog/importer.py

"""
카탈로그 CSV 일괄 적재 모듈입니다.

- 헤더 별칭 표: 원본 CSV 파일과의 호환을 위해 별칭 목록을 그대로 유지합니다.
  정확히 일치하는 별칭을 순서대로 먼저 찾고, 없으면 대소문자를 무시하고 다시 찾습니다.
- 멱등성 게이트: 카탈로그에 행이 하나라도 있으면 적재 전체를 건너뜁니다.
  '개수 확인 -> 적재'는 프로세스 내 잠금과 (PostgreSQL의 경우) 트랜잭션 범위 advisory 잠금으로 배타적으로 실행됩니다.
  advisory 잠금은 기다리지 않고 시도만 하며, 다른 프로세스가 쥐고 있으면 skipped_in_progress로 끝냅니다.
- 삽입은 배치 단위로 하되 하나의 트랜잭션으로 커밋합니다. 삽입 실패 시 전체 롤백합니다.
"""

import asyncio
import csv
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, TextIO, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.database import run_with_timeout
from app.core.exceptions import CatalogImportError, PersistenceError
from app.domains.catalog import crud as catalog_crud
from app.domains.catalog import models as catalog_models
from app.domains.catalog import schemas as catalog_schemas

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# 필드별 헤더 별칭 (앞에 있을수록 우선)
HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("NAME", "name"),
    "category": ("TYPE", "category"),
    "wine": ("WINE", "wine"),
    "sub_type": ("SUB_TYPE", "SUBTYPE", "subType"),
    "producer": ("PRODUCER", "producer"),
    "region": ("REGION", "region"),
    "country": ("COUNTRY", "country"),
}

# 결과에 담는 행 오류 메시지의 최대 개수
MAX_REPORTED_ERRORS = 10

# 여러 프로세스가 공유하는 카탈로그 임포트 advisory 잠금 키
CATALOG_IMPORT_LOCK_KEY = 7_204_311_001


def read_csv_records(stream: TextIO) -> Iterator[Dict[str, Optional[str]]]:
    """
    헤더 행 + 데이터 행으로 된 CSV 텍스트 스트림을 행 매핑으로 읽습니다.
    (쉼표 구분, 큰따옴표 이스케이프)
    """
    return csv.DictReader(stream)


def pick_value(row: Mapping[Optional[str], Any], aliases: Tuple[str, ...]) -> Optional[str]:
    """별칭 목록으로 행에서 값을 찾습니다. 비어 있으면 None을 반환합니다."""
    header = next((alias for alias in aliases if alias in row), None)
    if header is None:
        lowered = {key.strip().lower(): key for key in row if isinstance(key, str)}
        header = next((lowered[alias.lower()] for alias in aliases if alias.lower() in lowered), None)
    if header is None:
        return None
    value = row.get(header)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def map_record(row: Mapping[Optional[str], Any]) -> catalog_schemas.CatalogEntryCreate:
    """
    CSV 한 행을 카탈로그 항목으로 변환합니다.
    분류가 없으면 'Other', 선택 필드가 없으면 None 이 됩니다.
    이름이 없으면 ValueError를 발생시킵니다.
    """
    values = {field: pick_value(row, aliases) for field, aliases in HEADER_ALIASES.items()}
    if values["name"] is None:
        raise ValueError("missing name")
    if values["category"] is None:
        values["category"] = catalog_models.DEFAULT_CATEGORY
    try:
        return catalog_schemas.CatalogEntryCreate(**values)
    except PydanticValidationError as e:
        raise ValueError("; ".join(err["msg"] for err in e.errors())) from e


class CatalogImporter:
    """
    공유 카탈로그의 멱등 일괄 적재기.
    프로세스 전체에서 하나의 인스턴스(`catalog_importer`)를 사용합니다.
    """

    def __init__(self, batch_size: Optional[int] = None):
        self.batch_size = batch_size or settings.CATALOG_IMPORT_BATCH_SIZE
        self.state = catalog_schemas.ImportState.UNINITIALIZED
        self.last_result: Optional[catalog_schemas.CatalogImportResult] = None
        self.last_error: Optional[str] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_lock(self) -> asyncio.Lock:
        # 잠금은 현재 이벤트 루프에 묶어서 생성합니다.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def status(self) -> catalog_schemas.CatalogImportStatus:
        return catalog_schemas.CatalogImportStatus(
            state=self.state, last_result=self.last_result, last_error=self.last_error
        )

    def _finish(self, result: catalog_schemas.CatalogImportResult) -> catalog_schemas.CatalogImportResult:
        self.state = result.status
        self.last_result = result
        self.last_error = None
        return result

    def _fail(self, message: str, committed_count: int = 0) -> CatalogImportError:
        self.state = catalog_schemas.ImportState.FAILED
        self.last_error = message
        return CatalogImportError(message, committed_count=committed_count)

    async def _try_lock(self, db: AsyncSession) -> bool:
        """
        다른 프로세스의 동시 임포트를 막는 트랜잭션 범위 잠금을 기다리지 않고 시도합니다.
        이미 다른 트랜잭션이 쥐고 있으면 False. PostgreSQL 외의 백엔드에서는 항상 True입니다.
        """
        connection = await db.connection()
        if connection.dialect.name != "postgresql":
            return True
        result = await db.execute(
            text("SELECT pg_try_advisory_xact_lock(:key)"), {"key": CATALOG_IMPORT_LOCK_KEY}
        )
        return bool(result.scalar_one())

    async def bulk_load(
        self, db: AsyncSession, records: Iterable[Mapping[Optional[str], Any]]
    ) -> catalog_schemas.CatalogImportResult:
        """
        레코드 스트림을 카탈로그에 일괄 적재합니다.

        - 카탈로그가 비어 있지 않으면 아무것도 하지 않고 skipped_nonempty, 0건을 반환합니다.
        - 다른 프로세스가 임포트 중이면 기다리지 않고 skipped_in_progress, 0건을 반환합니다.
        - 잘못된 행은 경고 로그와 함께 건너뛰고 개수를 보고합니다.
        - 스트림을 읽을 수 없거나 백엔드에 닿을 수 없으면 CatalogImportError (0건 커밋).
        - 배치 삽입 실패 시 전체를 롤백하고 CatalogImportError (0건 커밋).
        """
        async with self._get_lock():
            self.state = catalog_schemas.ImportState.IMPORTING
            logger.info("카탈로그 임포트 시작 (batch_size=%s)", self.batch_size)
            try:
                return await self._load(db, records)
            except CatalogImportError:
                raise
            except Exception as e:
                await db.rollback()
                self.state = catalog_schemas.ImportState.FAILED
                self.last_error = f"Unexpected {e.__class__.__name__} during catalog import."
                raise

    async def _load(
        self, db: AsyncSession, records: Iterable[Mapping[Optional[str], Any]]
    ) -> catalog_schemas.CatalogImportResult:
        """잠금을 쥔 상태에서 '개수 확인 -> 파싱 -> 배치 삽입 -> 커밋'을 실행합니다."""
        try:
            locked = await run_with_timeout("catalog.lock", self._try_lock(db))
            existing = await catalog_crud.catalog_entry.count(db) if locked else 0
        except (PersistenceError, OSError) as e:
            await db.rollback()
            logger.error("카탈로그 임포트 중단: 백엔드에 접근할 수 없습니다 (%s)", e.__class__.__name__)
            raise self._fail("Catalog backend is unavailable; nothing was imported.") from e

        if not locked:
            await db.rollback()
            logger.info("다른 프로세스가 카탈로그 임포트를 진행 중이어서 건너뜁니다.")
            return self._finish(
                catalog_schemas.CatalogImportResult(status=catalog_schemas.ImportState.SKIPPED_IN_PROGRESS)
            )

        if existing > 0:
            await db.rollback()
            logger.info("카탈로그에 이미 %s건이 있어 임포트를 건너뜁니다.", existing)
            return self._finish(
                catalog_schemas.CatalogImportResult(status=catalog_schemas.ImportState.SKIPPED_NONEMPTY)
            )

        imported = 0
        skipped = 0
        errors: List[str] = []
        batch: List[Dict[str, Any]] = []
        try:
            # 데이터 행 번호는 헤더 다음인 2부터 셉니다.
            for row_num, row in enumerate(records, start=2):
                try:
                    entry = map_record(row)
                except ValueError as e:
                    skipped += 1
                    logger.warning("카탈로그 %s행을 건너뜁니다: %s", row_num, e)
                    if len(errors) < MAX_REPORTED_ERRORS:
                        errors.append(f"Row {row_num}: {e}")
                    continue

                batch.append(entry.model_dump())
                if len(batch) >= self.batch_size:
                    imported += await catalog_crud.catalog_entry.insert_batch(db, rows=batch)
                    batch = []
                    logger.info("지금까지 %s건 적재 (미커밋)", imported)

            imported += await catalog_crud.catalog_entry.insert_batch(db, rows=batch)
            await db.commit()
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            await db.rollback()
            logger.error("카탈로그 원본을 읽지 못해 임포트를 중단합니다: %s", e)
            raise self._fail("Catalog source could not be read; nothing was imported.") from e
        except PersistenceError as e:
            await db.rollback()
            logger.error("카탈로그 배치 삽입 실패, 전체 롤백 (%s건 미커밋)", imported)
            raise self._fail("Catalog insert failed; the import was rolled back and nothing was imported.") from e

        logger.info("카탈로그 임포트 완료: %s건 적재, %s행 건너뜀", imported, skipped)
        return self._finish(
            catalog_schemas.CatalogImportResult(
                status=catalog_schemas.ImportState.IMPORTED,
                imported_count=imported,
                skipped_rows=skipped,
                errors=errors,
            )
        )

    async def import_file(self, db: AsyncSession, csv_path: str) -> catalog_schemas.CatalogImportResult:
        """CSV 파일 경로에서 카탈로그를 적재합니다. 파일을 열 수 없으면 CatalogImportError."""
        try:
            stream = open(csv_path, newline="", encoding="utf-8-sig")
        except OSError as e:
            logger.error("카탈로그 파일을 열 수 없습니다: %s", csv_path)
            raise self._fail("Catalog source could not be opened; nothing was imported.") from e
        with stream:
            return await self.bulk_load(db, read_csv_records(stream))


#  프로세스 전역 임포터 인스턴스
catalog_importer = CatalogImporter()
