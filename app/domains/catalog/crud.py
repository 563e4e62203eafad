# app/domains/catalog/crud.py

"""
'catalog' 도메인의 조회/검색/배치 삽입 작업을 정의하는 모듈입니다.
카탈로그는 소유자 범위가 없으므로 OwnedCRUDBase를 사용하지 않습니다.
"""

import logging
from typing import Any, Dict, List, Sequence, Type

from sqlalchemy import func, insert, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import run_with_timeout
from app.domains.catalog import models as catalog_models

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# LIKE 패턴의 이스케이프 문자
LIKE_ESCAPE = "\\"


def like_pattern(query: str) -> str:
    """
    부분 문자열 검색용 LIKE 패턴을 만듭니다.
    사용자 입력의 %, _ 는 와일드카드가 아니라 글자 그대로 검색되도록 이스케이프합니다.
    패턴은 항상 바인드 파라미터로 전달되며 SQL 문자열에 이어 붙이지 않습니다.
    """
    escaped = (
        query.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class CatalogEntryCRUD:
    """CatalogEntry 모델의 읽기 및 일괄 삽입 작업을 처리합니다."""

    def __init__(self, model: Type[catalog_models.CatalogEntry]):
        self.model = model
        # 검색 대상 컬럼 (하나라도 포함하면 일치)
        self.search_columns = (
            model.name,
            model.category,
            model.wine,
            model.sub_type,
            model.producer,
            model.region,
            model.country,
        )

    async def count(self, db: AsyncSession) -> int:
        """카탈로그 전체 행 수를 조회합니다."""
        result = await run_with_timeout(
            "catalog.count", db.execute(select(func.count()).select_from(self.model))
        )
        return result.scalar_one()

    async def list_all(self, db: AsyncSession) -> List[catalog_models.CatalogEntry]:
        """카탈로그 전체를 id 순서로 조회합니다."""
        result = await run_with_timeout(
            "catalog.list_all", db.execute(select(self.model).order_by(self.model.id))
        )
        return list(result.scalars().all())

    async def search(self, db: AsyncSession, *, query: str) -> List[catalog_models.CatalogEntry]:
        """
        대소문자를 구분하지 않는 부분 문자열 검색.
        이름, 분류, 와인, 세부 유형, 생산자, 지역, 국가 중 하나라도 포함하면 반환합니다.
        빈 문자열이나 공백뿐인 검색어는 전체 카탈로그를 반환합니다.
        대소문자 무시는 백엔드를 따릅니다. PostgreSQL ILIKE는 유니코드 전체를 접지만,
        SQLite의 lower() LIKE 는 ASCII만 접으므로 "bouché" 로 "BOUCHÉ" 를 찾지 못합니다.
        """
        term = (query or "").strip()
        if not term:
            return await self.list_all(db)

        pattern = like_pattern(term)
        statement = (
            select(self.model)
            .where(or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in self.search_columns)))
            .order_by(self.model.id)
        )
        result = await run_with_timeout("catalog.search", db.execute(statement))
        return list(result.scalars().all())

    async def insert_batch(self, db: AsyncSession, *, rows: Sequence[Dict[str, Any]]) -> int:
        """
        한 배치의 행을 현재 트랜잭션 안에서 삽입합니다. (커밋은 호출자가 담당)
        """
        if not rows:
            return 0
        await run_with_timeout(
            "catalog.insert_batch",
            db.execute(insert(self.model), list(rows)),
            context={"rows": len(rows)},
        )
        return len(rows)


#  CRUD 클래스의 인스턴스 생성
catalog_entry = CatalogEntryCRUD(catalog_models.CatalogEntry)
