# app/domains/catalog/schemas.py

"""
'catalog' 도메인의 Pydantic 스키마를 정의하는 모듈입니다.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domains.catalog.models import DEFAULT_CATEGORY


class ImportState(str, Enum):
    """
    프로세스 수명 동안의 카탈로그 임포트 상태.
    uninitialized -> importing -> {imported | skipped_nonempty | skipped_in_progress | failed}
    상태는 이 값을 관측한 프로세스 안에서만 유효합니다. (ARQ 워커에서 실행된 임포트는 API 프로세스에 보이지 않음)
    """
    UNINITIALIZED = "uninitialized"
    IMPORTING = "importing"
    IMPORTED = "imported"
    SKIPPED_NONEMPTY = "skipped_nonempty"
    SKIPPED_IN_PROGRESS = "skipped_in_progress"
    FAILED = "failed"


# =============================================================================
# 1. catalog_entries 스키마
# =============================================================================
class CatalogEntryCreate(BaseModel):
    """CSV 한 행을 매핑한 결과. 이름이 비어 있으면 잘못된 행입니다."""
    name: str = Field(..., description="표시 이름 (필수)")
    category: str = Field(DEFAULT_CATEGORY, description="분류")
    wine: Optional[str] = None
    sub_type: Optional[str] = None
    producer: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value


class CatalogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="카탈로그 항목 고유 ID")
    name: str
    category: str
    wine: Optional[str] = None
    sub_type: Optional[str] = None
    producer: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None


# =============================================================================
# 2. 임포트 결과 스키마
# =============================================================================
class CatalogImportResult(BaseModel):
    status: ImportState = Field(..., description="이번 실행의 최종 상태")
    imported_count: int = Field(0, description="커밋된 행 수")
    skipped_rows: int = Field(0, description="잘못된 형식으로 건너뛴 행 수")
    errors: List[str] = Field(default_factory=list, description="건너뛴 행의 사유 (앞쪽 일부만)")


class CatalogImportStatus(BaseModel):
    state: ImportState
    last_result: Optional[CatalogImportResult] = None
    last_error: Optional[str] = None
