import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager
from arq.connections import create_pool, RedisSettings
from redis.exceptions import RedisError

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# 핵심 설정 및 데이터베이스 모듈 임포트
from app.core.config import settings
from app.core.database import engine, get_session, run_with_timeout
from app.core.exceptions import CatalogImportError, CellarError, PersistenceError, ValidationError

from app import API_PREFIX

# 태스크 모듈 임포트
from app.core import tasks as core_tasks
from app.domains.catalog import tasks as catalog_tasks
from app.domains.catalog.importer import catalog_importer

# 도메인 라우터 임포트
from app.domains.cellar.routers import router as cellar_router
from app.domains.catalog.routers import router as catalog_router

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    catalog_tasks.import_catalog_task,
]


# ARQ 워커 설정 클래스
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    jobs = [
        {
            'name': 'daily_db_health_check',
            'function': 'app.core.tasks.health_check_database_task',
            'cron': '0 0 * * *',
            'timeout': 300,
            'keep_result': 600,
        },
    ]


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI 애플리케이션의 수명 주기 이벤트(데이터베이스, ARQ Redis, 카탈로그 임포트)를 함께 처리합니다.
    Redis에 연결할 수 없으면 풀 없이 시작하고, 임포트는 요청 안에서 실행됩니다.
    """
    logger.info("FastAPI 애플리케이션 시작 중...")
    app.state.redis = None
    try:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("ARQ Redis 커넥션 풀 생성 완료.")
    except (OSError, RedisError) as e:
        logger.warning("ARQ Redis 풀을 만들 수 없어 백그라운드 작업 없이 시작합니다: %s", e)

    if settings.CATALOG_IMPORT_ON_STARTUP and settings.CATALOG_CSV_PATH:
        if app.state.redis is not None:
            await app.state.redis.enqueue_job("import_catalog_task", settings.CATALOG_CSV_PATH)
            logger.info("시작 시 카탈로그 임포트 작업을 큐에 넣었습니다.")
        else:
            result = await catalog_tasks.import_catalog_task({}, settings.CATALOG_CSV_PATH)
            logger.info("시작 시 카탈로그 임포트 결과: %s", result.get("status"))

    yield  # 애플리케이션 실행

    logger.info("FastAPI 애플리케이션 종료 중...")
    if app.state.redis is not None:
        await app.state.redis.close()
        logger.info("ARQ Redis 연결 풀 종료 완료.")
    await engine.dispose()
    logger.info("데이터베이스 연결 풀 종료 완료.")


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -- CORS 미들웨어 설정 --
# 프로덕션에서는 allow_origins를 실제 프론트엔드 도메인으로 제한해야 합니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -- 오류 응답 변환 --
# 모든 오류는 {"kind", "detail"} 형태로 응답합니다. 백엔드 세부 정보는 노출하지 않습니다.
ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    CatalogImportError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@app.exception_handler(CellarError)
async def cellar_error_handler(request: Request, exc: CellarError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted(
        {".".join(str(part) for part in error["loc"][1:]) for error in exc.errors() if len(error["loc"]) > 1}
    )
    error = ValidationError("Request data is invalid.", fields=fields)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=error.to_dict())


# -- 도메인 라우터 포함 --
app.include_router(cellar_router, prefix=f"{API_PREFIX}/cellar", tags=["Cellar Inventory (개인 재고 관리)"])
app.include_router(catalog_router, prefix=f"{API_PREFIX}/catalog", tags=["Reference Catalog (공유 카탈로그)"])


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    """
    Cellar API의 루트 엔드포인트입니다.
    API의 시작점을 알리고 문서 링크를 제공합니다.
    """
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    애플리케이션의 헬스 체크 엔드포인트입니다.
    데이터베이스 연결과 카탈로그 임포트 상태를 함께 보고합니다.
    임포트 상태는 이 프로세스에서 실행한 임포트만 반영합니다.
    ARQ 워커로 넘긴 임포트는 `GET /api/v1/catalog/import/jobs/{job_id}`로 확인합니다.
    """
    result = await run_with_timeout("health_check", session.exec(select(1)))
    if not result.first():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database health check failed: No result from test query",
        )
    return {
        "status": "ok",
        "database_connection": "successful",
        "catalog_import": catalog_importer.state.value,
    }
