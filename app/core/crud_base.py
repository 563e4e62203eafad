# app/core/crud_base.py

"""
소유자(owner) 범위로 제한된 공통 비동기 CRUD 기본 클래스 모듈입니다.

- 모든 메서드는 `owner_id`를 필수 키워드 인자로 받습니다. 필터 옵션이 아니라
  시그니처의 일부이므로, 새 작업을 추가할 때도 소유자 조건을 빠뜨릴 수 없습니다.
- 부분 업데이트는 `WHERE id = :id AND owner_id = :owner` 조건을 가진
  단일 UPDATE ... RETURNING 문으로 실행됩니다. (읽기-병합-쓰기 왕복 없음)
- 모든 백엔드 호출은 상한 시간을 가지며, 실패는 PersistenceError로 전달됩니다.
"""

import logging
from typing import Any, Awaitable, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select, update
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import run_with_timeout
from app.core.exceptions import PersistenceError, ValidationError

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
T = TypeVar("T")


def validate_payload(
    schema: Type[BaseModel], obj_in: Union[BaseModel, Dict[str, Any]]
) -> BaseModel:
    """
    요청 데이터를 스키마로 검증합니다.
    dict가 들어오면 검증하고, 이미 스키마 인스턴스면 그대로 사용합니다.
    Pydantic 오류는 위반 필드 이름을 담은 ValidationError로 변환합니다.
    """
    if isinstance(obj_in, schema):
        return obj_in
    if isinstance(obj_in, BaseModel):
        obj_in = obj_in.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(obj_in)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors() if err["loc"]})
        reasons = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or '(payload)'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {schema.__name__} data: {reasons}", fields=fields) from e


class OwnedCRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    소유자 범위 CRUD 작업에 대한 기본 클래스를 정의합니다.
    모델은 `id`, `owner_id` 컬럼을 가져야 합니다.
    """

    def __init__(
        self,
        model: Type[ModelType],
        create_schema: Type[CreateSchemaType],
        update_schema: Type[UpdateSchemaType],
    ):
        self.model = model
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.name = model.__tablename__

    async def _run(
        self, db: AsyncSession, operation: str, work: Awaitable[T], **context: Any
    ) -> T:
        """백엔드 호출을 실행하고, 실패하면 세션을 롤백한 뒤 PersistenceError를 다시 던집니다."""
        try:
            return await run_with_timeout(f"{self.name}.{operation}", work, context=context)
        except PersistenceError:
            await db.rollback()
            raise

    async def get_by_owner(
        self, db: AsyncSession, *, id: int, owner_id: str
    ) -> Optional[ModelType]:
        """
        ID와 소유자 ID로 단일 레코드를 조회합니다.
        레코드가 없거나 다른 사용자의 레코드이면 똑같이 None을 반환합니다.
        """
        query = select(self.model).where(self.model.id == id, self.model.owner_id == owner_id)
        result = await self._run(db, "get", db.execute(query), id=id, owner_id=owner_id)
        return result.scalar_one_or_none()

    async def get_multi_by_owner(
        self, db: AsyncSession, *, owner_id: str, **filters: Any
    ) -> List[ModelType]:
        """
        소유자의 모든 레코드를 생성 순서(id 오름차순)로 조회합니다.
        키워드 인자로 정확히 일치하는 필드 필터를 추가할 수 있습니다.
        """
        query = select(self.model).where(self.model.owner_id == owner_id)
        for field, value in filters.items():
            if not hasattr(self.model, field):
                raise ValueError(f"Model {self.model.__name__} has no attribute '{field}'")
            query = query.where(getattr(self.model, field) == value)
        query = query.order_by(self.model.id)

        result = await self._run(db, "list", db.execute(query), owner_id=owner_id)
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        owner_id: str,
        obj_in: Union[CreateSchemaType, Dict[str, Any]],
    ) -> ModelType:
        """
        새로운 레코드를 생성합니다. id와 생성 일시는 저장소가 부여합니다.
        """
        if not owner_id:
            raise ValidationError("owner_id is required.", fields=["owner_id"])
        validated = validate_payload(self.create_schema, obj_in)
        db_obj = self.model(**validated.model_dump(mode="json"), owner_id=owner_id)
        db.add(db_obj)

        async def _commit() -> None:
            await db.commit()
            await db.refresh(db_obj)

        await self._run(db, "create", _commit(), owner_id=owner_id)
        logger.info("Created %s id=%s owner=%s", self.name, db_obj.id, owner_id)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        id: int,
        owner_id: str,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
    ) -> Optional[ModelType]:
        """
        기존 레코드를 부분 업데이트합니다.

        - 보낸 필드만 SET 절에 들어가고, 보내지 않은 필드는 그대로 유지됩니다.
        - 소유자 확인과 변경은 하나의 조건부 UPDATE 문으로 원자적으로 실행됩니다.
        - 변경할 필드가 없으면 아무것도 쓰지 않고 현재 레코드를 반환합니다.
        - id + owner_id 조합이 없으면 None을 반환합니다.
        """
        validated = validate_payload(self.update_schema, obj_in)
        update_data = validated.model_dump(exclude_unset=True, mode="json")
        if not update_data:
            return await self.get_by_owner(db, id=id, owner_id=owner_id)

        statement = (
            update(self.model)
            .where(self.model.id == id, self.model.owner_id == owner_id)
            .values(**update_data)
            .returning(self.model)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )

        async def _apply() -> Optional[ModelType]:
            result = await db.execute(statement)
            db_obj = result.scalar_one_or_none()
            await db.commit()
            return db_obj

        db_obj = await self._run(db, "update", _apply(), id=id, owner_id=owner_id)
        if db_obj is None:
            logger.info("Update matched no %s: id=%s owner=%s", self.name, id, owner_id)
        else:
            logger.info("Updated %s id=%s owner=%s fields=%s", self.name, id, owner_id, sorted(update_data))
        return db_obj

    async def delete(self, db: AsyncSession, *, id: int, owner_id: str) -> bool:
        """
        ID와 소유자 ID가 모두 일치하는 레코드를 삭제합니다.
        실제로 행이 삭제된 경우에만 True를 반환합니다.
        """
        statement = (
            delete(self.model)
            .where(self.model.id == id, self.model.owner_id == owner_id)
            .execution_options(synchronize_session="fetch")
        )

        async def _apply() -> int:
            result = await db.execute(statement)
            await db.commit()
            return result.rowcount or 0

        deleted = await self._run(db, "delete", _apply(), id=id, owner_id=owner_id)
        logger.info("Delete %s id=%s owner=%s removed=%s", self.name, id, owner_id, deleted)
        return deleted > 0
