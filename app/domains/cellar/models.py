# app/domains/cellar/models.py

"""
'cellar' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
"""

from typing import Optional, List, Dict
from datetime import datetime, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import CheckConstraint, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# 빈티지별 재고 목록: 순서가 있는 [{"vintage": 2018, "stock": 2}, ...] 형태로 저장합니다.
# PostgreSQL에서는 JSONB, 그 외 백엔드(SQLite 등)에서는 일반 JSON 타입을 사용합니다.
VintageStocksType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# 1. bottles 테이블 모델
# =============================================================================
class BottleBase(SQLModel):
    name: str = Field(max_length=255, description="표시 이름")
    category: str = Field(max_length=50, index=True, description="병 분류 (Red, White, ...)")
    wine: Optional[str] = Field(default=None, description="와인/품종 명칭")
    sub_type: Optional[str] = Field(default=None, description="세부 유형")
    producer: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None)
    country: Optional[str] = Field(default=None)
    stock_level: int = Field(default=0, description="전체 재고 수량")
    vintage_stocks: List[Dict[str, int]] = Field(
        default_factory=list,
        sa_column=Column(VintageStocksType, nullable=False, default=list),
        description="빈티지별 재고 목록 (중복 빈티지 허용)"
    )
    image_url: Optional[str] = Field(default=None)
    rating: Optional[int] = Field(default=None, description="1~5 평점")
    notes: Optional[str] = Field(default=None, description="개인 시음 노트")


class Bottle(BottleBase, table=True):
    __tablename__ = "bottles"
    __table_args__ = (
        CheckConstraint("stock_level >= 0", name="ck_bottles_stock_level_non_negative"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_bottles_rating_range"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    # 소유자 ID는 생성 이후 변경되지 않습니다.
    owner_id: str = Field(max_length=255, index=True, nullable=False, description="소유 사용자 ID")
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False),
        description="레코드 생성 일시"
    )
