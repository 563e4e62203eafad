# app/domains/catalog/models.py

"""
'catalog' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
카탈로그 항목은 어떤 사용자에게도 속하지 않으며, 병(Bottle) 레코드와 연결되지 않습니다.
"""

from typing import Optional
from sqlmodel import Field, SQLModel

# 카탈로그 원본에 분류가 없을 때 사용하는 기본값
DEFAULT_CATEGORY = "Other"


# =============================================================================
# 1. catalog_entries 테이블 모델
# =============================================================================
class CatalogEntryBase(SQLModel):
    name: str = Field(description="표시 이름")
    category: str = Field(default=DEFAULT_CATEGORY, description="분류 (원본에 없으면 'Other')")
    wine: Optional[str] = Field(default=None)
    sub_type: Optional[str] = Field(default=None)
    producer: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None)
    country: Optional[str] = Field(default=None)


class CatalogEntry(CatalogEntryBase, table=True):
    __tablename__ = "catalog_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
