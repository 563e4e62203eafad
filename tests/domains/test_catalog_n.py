# tests/domains/test_catalog_n.py

"""
'catalog' 도메인 (공유 카탈로그)에 대한 테스트를 정의하는 모듈입니다.

- 헤더 별칭 매핑 (정확히 일치 우선, 대소문자 무시 보조)
- 일괄 적재의 멱등성, 잘못된 행 건너뛰기, 실패 시 전체 롤백
- 부분 문자열 검색 (모든 필드, 빈 검색어, 와일드카드 이스케이프)
- 임포트 API의 관리자 권한 및 상태 조회
"""

import asyncio
import io
import os
from contextlib import asynccontextmanager

import pytest
from arq.jobs import JobStatus
from httpx import AsyncClient
from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.exceptions import CatalogImportError, PersistenceError
from app.domains.catalog import crud as catalog_crud
from app.domains.catalog import routers as catalog_routers
from app.domains.catalog import tasks as catalog_tasks
from app.domains.catalog.importer import (
    CATALOG_IMPORT_LOCK_KEY,
    HEADER_ALIASES,
    CatalogImporter,
    catalog_importer,
    map_record,
    read_csv_records,
)
from app.domains.catalog.schemas import ImportState
from app.main import app as main_app


CATALOG_CSV = (
    "NAME,TYPE,WINE,SUBTYPE,PRODUCER,REGION,COUNTRY\n"
    "Barolo Cannubi,Red,Barolo,Nebbiolo,Borgogno,Piedmont,Italy\n"
    "Chianti Classico,Red,Chianti,Sangiovese,Fontodi,Tuscany,Italy\n"
    "Riserva Ducale,Red,,,Ruffino,Chianti,Italy\n"
    "Sancerre,White,Sancerre,Sauvignon Blanc,Vacheron,Loire,France\n"
    "\"Lagavulin 16, Islay\",Whisky,,,Lagavulin,Islay,Scotland\n"
)


def records(content: str):
    return read_csv_records(io.StringIO(content))


# --- 헤더 매핑 테스트 ---

def test_map_record_uses_alias_table():
    entry = map_record({"NAME": "Barolo", "TYPE": "Red", "SUBTYPE": "Nebbiolo", "COUNTRY": "Italy"})

    assert entry.name == "Barolo"
    assert entry.category == "Red"
    assert entry.sub_type == "Nebbiolo"
    assert entry.country == "Italy"
    assert entry.producer is None


def test_map_record_prefers_exact_alias_in_order():
    entry = map_record({"name": "Chablis", "TYPE": "White", "category": "Red", "subType": "Chardonnay"})

    assert entry.category == "White"
    assert entry.sub_type == "Chardonnay"


def test_map_record_falls_back_to_case_insensitive_headers():
    entry = map_record({"Name": "Rioja", "Type": "Red", "Sub_Type": "Tempranillo", "Region ": "Rioja"})

    assert entry.name == "Rioja"
    assert entry.category == "Red"
    assert entry.sub_type == "Tempranillo"
    assert entry.region == "Rioja"


def test_map_record_defaults_and_blanks():
    entry = map_record({"NAME": "  Mystery  ", "TYPE": "", "PRODUCER": "   "})

    assert entry.name == "Mystery"
    assert entry.category == "Other"
    assert entry.producer is None


def test_map_record_without_name_is_malformed():
    with pytest.raises(ValueError):
        map_record({"NAME": "  ", "TYPE": "Red"})
    with pytest.raises(ValueError):
        map_record({"TYPE": "Red"})


# --- 일괄 적재 테스트 ---

@pytest.mark.asyncio
async def test_bulk_load_imports_then_skips(db_session: AsyncSession):
    """두 번째 적재는 0건을 적재하고 행 수가 그대로입니다."""
    first = await catalog_importer.bulk_load(db_session, records(CATALOG_CSV))
    assert first.status == ImportState.IMPORTED
    assert first.imported_count == 5
    assert first.skipped_rows == 0
    assert catalog_importer.state == ImportState.IMPORTED

    second = await catalog_importer.bulk_load(db_session, records(CATALOG_CSV))
    assert second.status == ImportState.SKIPPED_NONEMPTY
    assert second.imported_count == 0
    assert catalog_importer.state == ImportState.SKIPPED_NONEMPTY

    assert await catalog_crud.catalog_entry.count(db_session) == 5


@pytest.mark.asyncio
async def test_bulk_load_skips_malformed_rows(db_session: AsyncSession):
    content = (
        "name,category,producer\n"
        "Barolo,Red,Borgogno\n"
        ",Red,Nameless\n"
        "Cidre Bouché,,Dupont\n"
    )

    result = await CatalogImporter(batch_size=1).bulk_load(db_session, records(content))

    assert result.status == ImportState.IMPORTED
    assert result.imported_count == 2
    assert result.skipped_rows == 1
    assert result.errors == ["Row 3: missing name"]

    entries = await catalog_crud.catalog_entry.list_all(db_session)
    assert [(e.name, e.category) for e in entries] == [("Barolo", "Red"), ("Cidre Bouché", "Other")]


@pytest.mark.asyncio
async def test_bulk_load_rolls_back_when_a_batch_fails(db_session: AsyncSession, monkeypatch):
    """중간 배치 삽입이 실패하면 앞서 삽입한 배치까지 모두 롤백됩니다."""
    original_insert = catalog_crud.catalog_entry.insert_batch
    calls = []

    async def _failing_insert(db, *, rows):
        calls.append(len(rows))
        if len(calls) > 1:
            raise PersistenceError("catalog.insert_batch")
        return await original_insert(db, rows=rows)

    monkeypatch.setattr(catalog_crud.catalog_entry, "insert_batch", _failing_insert)
    importer = CatalogImporter(batch_size=2)

    with pytest.raises(CatalogImportError) as exc_info:
        await importer.bulk_load(db_session, records(CATALOG_CSV))

    assert exc_info.value.committed_count == 0
    assert importer.state == ImportState.FAILED
    assert importer.last_error is not None
    assert calls[0] == 2
    monkeypatch.undo()
    assert await catalog_crud.catalog_entry.count(db_session) == 0


@pytest.mark.asyncio
async def test_bulk_load_aborts_when_stream_breaks(db_session: AsyncSession):
    def _broken_stream():
        yield {"NAME": "Barolo", "TYPE": "Red"}
        raise OSError("stream closed")

    importer = CatalogImporter(batch_size=1)
    with pytest.raises(CatalogImportError) as exc_info:
        await importer.bulk_load(db_session, _broken_stream())

    assert exc_info.value.committed_count == 0
    assert importer.state == ImportState.FAILED
    assert await catalog_crud.catalog_entry.count(db_session) == 0


@pytest.mark.asyncio
async def test_import_file_that_cannot_be_opened(db_session: AsyncSession, tmp_path):
    importer = CatalogImporter()

    with pytest.raises(CatalogImportError):
        await importer.import_file(db_session, str(tmp_path / "missing.csv"))
    assert importer.state == ImportState.FAILED


@pytest.mark.asyncio
async def test_concurrent_first_imports_do_not_double_import(session_factory):
    """동시에 두 번 첫 적재를 시작해도 한 번만 적재됩니다."""
    importer = CatalogImporter()

    async def _load():
        async with session_factory() as session:
            return await importer.bulk_load(session, records(CATALOG_CSV))

    results = await asyncio.gather(_load(), _load())

    assert sorted(r.status.value for r in results) == ["imported", "skipped_nonempty"]
    assert sum(r.imported_count for r in results) == 5
    async with session_factory() as session:
        assert await catalog_crud.catalog_entry.count(session) == 5


# --- 검색 테스트 ---

@pytest.mark.asyncio
async def test_search_matches_any_field_case_insensitively(db_session: AsyncSession):
    await catalog_importer.bulk_load(db_session, records(CATALOG_CSV))

    found = await catalog_crud.catalog_entry.search(db_session, query="chianti")
    assert sorted(e.name for e in found) == ["Chianti Classico", "Riserva Ducale"]

    found = await catalog_crud.catalog_entry.search(db_session, query="SCOT")
    assert [e.name for e in found] == ["Lagavulin 16, Islay"]

    found = await catalog_crud.catalog_entry.search(db_session, query="  sauvignon ")
    assert [e.name for e in found] == ["Sancerre"]

    assert await catalog_crud.catalog_entry.search(db_session, query="zinfandel") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   "])
async def test_blank_search_returns_full_catalog(db_session: AsyncSession, query):
    await catalog_importer.bulk_load(db_session, records(CATALOG_CSV))

    found = await catalog_crud.catalog_entry.search(db_session, query=query)
    assert len(found) == 5


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(db_session: AsyncSession):
    content = "name,category\n100% Agave,Spirits\nOld_Vine,Red\nPlain,White\n"
    await catalog_importer.bulk_load(db_session, records(content))

    assert [e.name for e in await catalog_crud.catalog_entry.search(db_session, query="%")] == ["100% Agave"]
    assert [e.name for e in await catalog_crud.catalog_entry.search(db_session, query="_")] == ["Old_Vine"]
    assert await catalog_crud.catalog_entry.search(db_session, query="' OR 1=1 --") == []


# --- 백그라운드 작업 테스트 ---

@pytest.mark.asyncio
async def test_import_catalog_task(session_factory, catalog_csv, monkeypatch):
    path = catalog_csv(CATALOG_CSV)

    @asynccontextmanager
    async def _session_context():
        async with session_factory() as session:
            yield session

    monkeypatch.setattr(catalog_tasks, "get_async_session_context", _session_context)

    result = await catalog_tasks.import_catalog_task({}, path)
    assert result["status"] == "imported"
    assert result["imported_count"] == 5

    result = await catalog_tasks.import_catalog_task({})
    assert result["status"] == "skipped_nonempty"


# --- API 테스트 ---

@pytest.mark.asyncio
async def test_import_requires_admin(client: AsyncClient, owner_client: AsyncClient, catalog_csv):
    catalog_csv(CATALOG_CSV)

    assert (await client.post("/api/v1/catalog/import")).status_code == 401
    assert (await owner_client.post("/api/v1/catalog/import")).status_code == 403


@pytest.mark.asyncio
async def test_import_runs_inline_without_redis(
    admin_client: AsyncClient, owner_client: AsyncClient, catalog_csv
):
    catalog_csv(CATALOG_CSV)

    response = await admin_client.post("/api/v1/catalog/import")
    assert response.status_code == 200
    assert response.json()["status"] == "imported"
    assert response.json()["imported_count"] == 5

    response = await admin_client.post("/api/v1/catalog/import")
    assert response.json()["status"] == "skipped_nonempty"
    assert response.json()["imported_count"] == 0

    response = await owner_client.get("/api/v1/catalog/import/status")
    assert response.status_code == 200
    assert response.json()["state"] == "skipped_nonempty"

    response = await owner_client.get("/api/v1/catalog")
    assert len(response.json()) == 5

    response = await owner_client.get("/api/v1/catalog/search", params={"q": "CHIANTI"})
    assert sorted(e["name"] for e in response.json()) == ["Chianti Classico", "Riserva Ducale"]


@pytest.mark.asyncio
async def test_import_is_queued_when_redis_is_available(admin_client: AsyncClient, catalog_csv, monkeypatch):
    path = catalog_csv(CATALOG_CSV)
    enqueued = []

    class _Job:
        job_id = "job-1"

    class _Pool:
        async def enqueue_job(self, function, *args):
            enqueued.append((function, args))
            return _Job()

    monkeypatch.setattr(main_app.state, "redis", _Pool(), raising=False)

    response = await admin_client.post("/api/v1/catalog/import")
    assert response.status_code == 202
    assert response.json() == {"status": "queued", "job_id": "job-1"}
    assert enqueued == [("import_catalog_task", (path,))]


@pytest.mark.asyncio
async def test_import_without_configured_source(admin_client: AsyncClient, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CATALOG_CSV_PATH", None)

    response = await admin_client.post("/api/v1/catalog/import")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_import_failure_is_reported(admin_client: AsyncClient, tmp_path, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CATALOG_CSV_PATH", str(tmp_path / "missing.csv"))

    response = await admin_client.post("/api/v1/catalog/import")
    assert response.status_code == 500
    body = response.json()
    assert body["kind"] == "catalog_import_error"
    assert body["committed_count"] == 0

    response = await admin_client.get("/api/v1/catalog/import/status")
    assert response.json()["state"] == "failed"


# --- 다른 프로세스와의 임포트 경합 테스트 ---

def _lock_held_elsewhere(importer: CatalogImporter, monkeypatch):
    """다른 프로세스가 임포트 잠금을 쥐고 있는 상황을 만듭니다."""
    async def _try_lock(db):
        await db.connection()
        return False

    monkeypatch.setattr(importer, "_try_lock", _try_lock)


@pytest.mark.asyncio
async def test_bulk_load_skips_when_import_is_in_progress_elsewhere(db_session: AsyncSession, monkeypatch):
    """잠금을 얻지 못하면 기다리거나 실패하지 않고 skipped_in_progress로 끝납니다."""
    importer = CatalogImporter()
    _lock_held_elsewhere(importer, monkeypatch)

    result = await importer.bulk_load(db_session, records(CATALOG_CSV))

    assert result.status == ImportState.SKIPPED_IN_PROGRESS
    assert result.imported_count == 0
    assert importer.state == ImportState.SKIPPED_IN_PROGRESS
    assert importer.last_error is None
    assert await catalog_crud.catalog_entry.count(db_session) == 0

    monkeypatch.undo()
    result = await importer.bulk_load(db_session, records(CATALOG_CSV))
    assert result.status == ImportState.IMPORTED
    assert result.imported_count == 5


@pytest.mark.asyncio
async def test_import_task_reports_in_progress_not_error(session_factory, catalog_csv, monkeypatch):
    path = catalog_csv(CATALOG_CSV)

    @asynccontextmanager
    async def _session_context():
        async with session_factory() as session:
            yield session

    monkeypatch.setattr(catalog_tasks, "get_async_session_context", _session_context)
    _lock_held_elsewhere(catalog_importer, monkeypatch)

    result = await catalog_tasks.import_catalog_task({}, path)
    assert result["status"] == "skipped_in_progress"
    assert result["imported_count"] == 0


@pytest.mark.asyncio
@pytest.mark.skipif(
    not (os.environ.get("TEST_DATABASE_URL") or "").startswith("postgresql"),
    reason="advisory 잠금은 PostgreSQL에서만 동작합니다.",
)
async def test_advisory_lock_held_by_other_transaction(session_factory):
    """다른 트랜잭션이 advisory 잠금을 쥐고 있으면 기다리지 않고 건너뜁니다."""
    async with session_factory() as holder, session_factory() as session:
        held = await holder.execute(
            text("SELECT pg_try_advisory_xact_lock(:key)"), {"key": CATALOG_IMPORT_LOCK_KEY}
        )
        assert held.scalar_one() is True

        result = await CatalogImporter().bulk_load(session, records(CATALOG_CSV))
        assert result.status == ImportState.SKIPPED_IN_PROGRESS
        await holder.rollback()

        result = await CatalogImporter().bulk_load(session, records(CATALOG_CSV))
        assert result.status == ImportState.IMPORTED


# --- 헤더 별칭 표 테스트 ---

def test_header_alias_table_is_fixed():
    assert HEADER_ALIASES["category"] == ("TYPE", "category")
    assert HEADER_ALIASES["sub_type"] == ("SUB_TYPE", "SUBTYPE", "subType")


def test_other_header_casings_use_case_insensitive_fallback():
    entry = map_record({"NAME": "Chinon", "CATEGORY": "Red", "sub_type": "Cabernet Franc"})

    assert entry.category == "Red"
    assert entry.sub_type == "Cabernet Franc"


# --- 비 ASCII 검색 테스트 ---

@pytest.mark.asyncio
async def test_search_matches_accented_text(db_session: AsyncSession):
    content = "name,category,producer\nCidre Bouché,Cider,Dupont\nSancerre,White,Vacheron\n"
    await catalog_importer.bulk_load(db_session, records(content))

    found = await catalog_crud.catalog_entry.search(db_session, query="Bouché")
    assert [e.name for e in found] == ["Cidre Bouché"]

    found = await catalog_crud.catalog_entry.search(db_session, query="cidre bou")
    assert [e.name for e in found] == ["Cidre Bouché"]


# --- 큐에 넣은 임포트 상태 테스트 ---

class _FakePool:
    async def enqueue_job(self, function, *args):
        class _Job:
            job_id = "job-7"
        return _Job()


@pytest.mark.asyncio
async def test_queued_import_leaves_process_status_unchanged(
    admin_client: AsyncClient, catalog_csv, monkeypatch
):
    """워커로 넘긴 임포트는 API 프로세스의 상태를 바꾸지 않습니다."""
    catalog_csv(CATALOG_CSV)
    monkeypatch.setattr(main_app.state, "redis", _FakePool(), raising=False)

    response = await admin_client.post("/api/v1/catalog/import")
    assert response.status_code == 202

    response = await admin_client.get("/api/v1/catalog/import/status")
    assert response.json()["state"] == "uninitialized"


@pytest.mark.asyncio
async def test_read_import_job_result(owner_client: AsyncClient, monkeypatch):
    class _Job:
        def __init__(self, job_id, redis):
            self.job_id = job_id

        async def status(self):
            return JobStatus.complete

        async def result_info(self):
            class _Info:
                success = True
                result = {"status": "imported", "imported_count": 5, "skipped_rows": 0, "errors": []}
            return _Info()

    monkeypatch.setattr(main_app.state, "redis", _FakePool(), raising=False)
    monkeypatch.setattr(catalog_routers, "Job", _Job)

    response = await owner_client.get("/api/v1/catalog/import/jobs/job-7")
    assert response.status_code == 200
    assert response.json() == {
        "job_id": "job-7",
        "status": "complete",
        "result": {"status": "imported", "imported_count": 5, "skipped_rows": 0, "errors": []},
    }


@pytest.mark.asyncio
async def test_read_import_job_unknown_or_without_redis(owner_client: AsyncClient, monkeypatch):
    response = await owner_client.get("/api/v1/catalog/import/jobs/job-7")
    assert response.status_code == 404

    class _MissingJob:
        def __init__(self, job_id, redis):
            pass

        async def status(self):
            return JobStatus.not_found

    monkeypatch.setattr(main_app.state, "redis", _FakePool(), raising=False)
    monkeypatch.setattr(catalog_routers, "Job", _MissingJob)

    response = await owner_client.get("/api/v1/catalog/import/jobs/missing")
    assert response.status_code == 404
