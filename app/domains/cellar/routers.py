# app/domains/cellar/routers.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.cellar import crud as cellar_crud, schemas as cellar_schemas

router = APIRouter(
    tags=["Cellar Inventory (개인 재고 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. bottles 엔드포인트
# =============================================================================
@router.get("/bottles", response_model=List[cellar_schemas.BottleResponse])
async def read_bottles(
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """현재 사용자의 모든 병 목록을 조회합니다."""
    return await cellar_crud.bottle.get_multi_by_owner(db, owner_id=owner_id)


@router.get("/bottles/category/{category}", response_model=List[cellar_schemas.BottleResponse])
async def read_bottles_by_category(
    category: cellar_schemas.BottleCategory,
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """현재 사용자의 병 중 특정 분류만 조회합니다."""
    return await cellar_crud.bottle.get_multi_by_owner_and_category(
        db, owner_id=owner_id, category=category
    )


@router.get("/bottles/{bottle_id}", response_model=cellar_schemas.BottleResponse)
async def read_bottle(
    bottle_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """ID로 특정 병을 조회합니다. 다른 사용자의 병은 존재하지 않는 것과 같이 취급합니다."""
    db_bottle = await cellar_crud.bottle.get_by_owner(db, id=bottle_id, owner_id=owner_id)
    if db_bottle is None:
        raise HTTPException(status_code=404, detail="Bottle not found.")
    return db_bottle


@router.post(
    "/bottles",
    response_model=cellar_schemas.BottleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_bottle(
    bottle_create: cellar_schemas.BottleCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """새로운 병을 현재 사용자의 재고에 추가합니다."""
    return await cellar_crud.bottle.create(db, owner_id=owner_id, obj_in=bottle_create)


@router.patch("/bottles/{bottle_id}", response_model=cellar_schemas.BottleResponse)
async def update_bottle(
    bottle_id: int,
    bottle_update: cellar_schemas.BottleUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """보낸 필드만 변경합니다. 빈 본문은 변경 없이 현재 레코드를 반환합니다."""
    db_bottle = await cellar_crud.bottle.update(
        db, id=bottle_id, owner_id=owner_id, obj_in=bottle_update
    )
    if db_bottle is None:
        raise HTTPException(status_code=404, detail="Bottle not found.")
    return db_bottle


@router.delete("/bottles/{bottle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bottle(
    bottle_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    owner_id: str = Depends(deps.get_current_owner_id),
):
    """ID로 특정 병을 삭제합니다."""
    if not await cellar_crud.bottle.delete(db, id=bottle_id, owner_id=owner_id):
        raise HTTPException(status_code=404, detail="Bottle not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
