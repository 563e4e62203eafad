# app/domains/cellar/crud.py

"""
'cellar' 도메인의 CRUD 작업을 위한 클래스를 정의하는 모듈입니다.
모든 작업은 소유자 ID로 범위가 제한됩니다 (OwnedCRUDBase).
"""

import logging
from typing import List, Union

from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import OwnedCRUDBase
from app.domains.cellar import models as cellar_models
from app.domains.cellar import schemas as cellar_schemas

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class BottleCRUD(
    OwnedCRUDBase[
        cellar_models.Bottle,
        cellar_schemas.BottleCreate,
        cellar_schemas.BottleUpdate,
    ]
):
    """Bottle 모델에 특화된 CRUD 작업을 처리합니다."""

    async def get_multi_by_owner_and_category(
        self,
        db: AsyncSession,
        *,
        owner_id: str,
        category: Union[cellar_schemas.BottleCategory, str],
    ) -> List[cellar_models.Bottle]:
        """소유자의 병 중 분류가 정확히 일치하는 것만 조회합니다."""
        if isinstance(category, cellar_schemas.BottleCategory):
            category = category.value
        return await self.get_multi_by_owner(db, owner_id=owner_id, category=category)


#  CRUD 클래스의 인스턴스 생성
bottle = BottleCRUD(
    cellar_models.Bottle,
    cellar_schemas.BottleCreate,
    cellar_schemas.BottleUpdate,
)
