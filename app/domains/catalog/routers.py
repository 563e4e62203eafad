# app/domains/catalog/routers.py

"""
'catalog' 도메인의 API 엔드포인트를 정의하는 모듈입니다.

- 카탈로그 조회/검색은 인증된 모든 사용자에게 허용됩니다.
- 임포트 실행은 관리자 역할이 필요합니다. Redis 풀이 있으면 ARQ 작업으로 넘기고,
  없으면 요청 안에서 바로 실행합니다.
"""

import logging
from typing import List

from arq.jobs import Job, JobStatus
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.core.config import settings
from app.domains.catalog import crud as catalog_crud, schemas as catalog_schemas
from app.domains.catalog.importer import catalog_importer

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Reference Catalog (공유 카탈로그)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. catalog 조회 엔드포인트
# =============================================================================
@router.get("", response_model=List[catalog_schemas.CatalogEntryResponse])
async def read_catalog(
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """카탈로그 전체를 조회합니다."""
    return await catalog_crud.catalog_entry.list_all(db)


@router.get("/search", response_model=List[catalog_schemas.CatalogEntryResponse])
async def search_catalog(
    q: str = Query("", description="이름, 분류, 와인, 세부 유형, 생산자, 지역, 국가에 대한 부분 문자열"),
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """
    대소문자를 구분하지 않는 부분 문자열 검색.
    검색어가 비어 있으면 전체 카탈로그를 반환합니다.
    """
    return await catalog_crud.catalog_entry.search(db, query=q)


# =============================================================================
# 2. catalog 임포트 엔드포인트
# =============================================================================
@router.post("/import")
async def import_catalog(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(deps.get_db_session),
    admin_id: str = Depends(deps.get_current_admin_owner_id),
):
    """
    설정된 CSV 파일로 카탈로그 임포트를 실행합니다. 관리자 권한이 필요합니다.
    카탈로그가 이미 채워져 있으면 skipped_nonempty를 반환하고 아무것도 바꾸지 않습니다.
    """
    csv_path = settings.CATALOG_CSV_PATH
    if not csv_path:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Catalog source is not configured.",
        )

    arq_redis_pool = getattr(request.app.state, "redis", None)
    if arq_redis_pool is not None:
        job = await arq_redis_pool.enqueue_job("import_catalog_task", csv_path)
        logger.info("카탈로그 임포트 작업을 큐에 넣었습니다 (requested_by=%s)", admin_id)
        response.status_code = status.HTTP_202_ACCEPTED
        return {"status": "queued", "job_id": job.job_id if job else None}

    logger.info("Redis 풀이 없어 카탈로그 임포트를 요청 안에서 실행합니다 (requested_by=%s)", admin_id)
    return await catalog_importer.import_file(db, csv_path)


@router.get("/import/status", response_model=catalog_schemas.CatalogImportStatus)
async def read_import_status(
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """
    이 API 프로세스에서 관측한 카탈로그 임포트 상태를 조회합니다.
    임포트가 ARQ 워커로 넘어간 경우 결과는 워커 쪽에 남으므로, 여기서는 이전 상태가 그대로 보입니다.
    큐에 넣은 작업의 결과는 `GET /import/jobs/{job_id}`로 확인합니다.
    """
    return catalog_importer.status()


@router.get("/import/jobs/{job_id}")
async def read_import_job(
    job_id: str,
    request: Request,
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """ARQ 워커로 넘긴 임포트 작업의 진행 상태와 결과를 조회합니다."""
    arq_redis_pool = getattr(request.app.state, "redis", None)
    if arq_redis_pool is None:
        raise HTTPException(status_code=404, detail="Background jobs are not available.")

    job = Job(job_id, arq_redis_pool)
    job_status = await job.status()
    if job_status == JobStatus.not_found:
        raise HTTPException(status_code=404, detail="Import job not found.")

    result = None
    if job_status == JobStatus.complete:
        info = await job.result_info()
        if info is not None and info.success:
            result = info.result
    return {"job_id": job_id, "status": job_status.value, "result": result}
