# tests/conftest.py

import os
from typing import AsyncGenerator, Callable, Optional
from contextlib import asynccontextmanager

# 앱 설정은 임포트 시점에 읽히므로, 앱을 임포트하기 전에 테스트용 기본값을 지정합니다.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./cellar_app_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-cellar")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# app.main을 임포트하여 FastAPI 앱 인스턴스에 접근합니다.
from app.main import app as main_app
from app.core import dependencies as deps
from app.core.config import settings
from app.core.database import get_session
from app.core.security import create_access_token
from app.domains.catalog import schemas as catalog_schemas
from app.domains.catalog.importer import catalog_importer

# --- 모든 모델 임포트 ---
#  SQLModel.metadata.create_all()이 모든 테이블을 인식하도록 모델을 한 번 임포트합니다.
from app.domains.models import *    # noqa: F401, F403


# --- 테스트용 데이터베이스 설정 ---
# TEST_DATABASE_URL이 없으면 테스트마다 새 SQLite 파일을 사용합니다.
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")


# --- 데이터베이스 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    테스트 함수마다 빈 데이터베이스를 만들고 모든 테이블을 생성합니다.
    테스트 종료 시 테이블을 삭제하고 엔진을 정리합니다.
    """
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'cellar_test.db'}"
    engine = create_async_engine(url, echo=False, future=True, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> sessionmaker:
    """서로 독립된 세션이 여러 개 필요한 테스트(동시 업데이트 등)를 위한 세션 팩토리."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트 함수에 비동기 데이터베이스 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_catalog_importer():
    """임포터는 프로세스 전역 인스턴스이므로 테스트마다 상태를 초기화합니다."""
    catalog_importer.state = catalog_schemas.ImportState.UNINITIALIZED
    catalog_importer.last_result = None
    catalog_importer.last_error = None
    yield


@pytest.fixture
def catalog_csv(tmp_path, monkeypatch) -> Callable[[str], str]:
    """
    주어진 CSV 텍스트를 임시 파일로 저장하고, CATALOG_CSV_PATH를 그 경로로 바꿉니다.
    """
    def _write(content: str) -> str:
        path = tmp_path / "catalog.csv"
        path.write_text(content, encoding="utf-8")
        monkeypatch.setattr(settings, "CATALOG_CSV_PATH", str(path))
        return str(path)

    return _write


# --- 인증된 클라이언트 팩토리 ---
# 역할: 소유자 ID(및 역할)를 담은 Bearer 토큰을 헤더에 넣은 AsyncClient를 만듭니다.
# 토큰 자체는 실제 검증 경로(get_current_owner_id)를 그대로 통과합니다.
@pytest.fixture(scope="function")
def authorized_client_factory(db_session: AsyncSession):
    """
    특정 소유자로 인증된 AsyncClient를 생성하는 팩토리 함수를 반환합니다.
    """
    @asynccontextmanager
    async def _create_client_context(
        owner_id: Optional[str], role: Optional[str] = None
    ) -> AsyncGenerator[AsyncClient, None]:
        def override_get_session():
            yield db_session

        original_overrides = main_app.dependency_overrides.copy()
        try:
            main_app.dependency_overrides.update({
                get_session: override_get_session,
                deps.get_db_session: override_get_session,
            })

            transport = ASGITransport(app=main_app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                if owner_id is not None:
                    token = create_access_token(owner_id, role=role)
                    client.headers["Authorization"] = f"Bearer {token}"
                yield client
        finally:
            # 테스트가 끝난 후 원래 의존성 상태로 되돌립니다.
            main_app.dependency_overrides.clear()
            main_app.dependency_overrides.update(original_overrides)

    return _create_client_context


@pytest_asyncio.fixture(scope="function")
async def client(authorized_client_factory) -> AsyncGenerator[AsyncClient, None]:
    """인증 헤더가 없는 클라이언트를 반환합니다."""
    async with authorized_client_factory(None) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def owner_client(authorized_client_factory) -> AsyncGenerator[AsyncClient, None]:
    """소유자 'alice'로 인증된 클라이언트를 반환합니다."""
    async with authorized_client_factory("alice") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def other_owner_client(authorized_client_factory) -> AsyncGenerator[AsyncClient, None]:
    """소유자 'bob'으로 인증된 클라이언트를 반환합니다."""
    async with authorized_client_factory("bob") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def admin_client(authorized_client_factory) -> AsyncGenerator[AsyncClient, None]:
    """관리자 역할로 인증된 클라이언트를 반환합니다."""
    async with authorized_client_factory("root", role=settings.ADMIN_ROLE) as client:
        yield client
