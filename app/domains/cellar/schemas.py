# app/domains/cellar/schemas.py

"""
'cellar' 도메인의 Pydantic 스키마를 정의하는 모듈입니다.

- 생성/수정 요청은 저장소에 닿기 전에 이 스키마로 검증됩니다.
- 수정(Update) 스키마는 '보내지 않은 필드'와 '명시적으로 비운 필드'를 구분합니다.
  (`model_dump(exclude_unset=True)` 사용)
"""

from enum import Enum
from typing import Annotated, Optional, List
from datetime import date, datetime
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictInt, field_validator

# 빈티지 연도의 하한. 상한은 '올해'이므로 검증 시점에 계산합니다.
MIN_VINTAGE_YEAR = 1900

# null 값을 허용하지 않는 컬럼 (부분 업데이트에서 None을 보내면 거부)
NON_NULLABLE_FIELDS = ("name", "category", "stock_level", "vintage_stocks")


class BottleCategory(str, Enum):
    """병 분류. DB에는 값(value) 문자열 그대로 저장됩니다."""
    RED = "Red"
    WHITE = "White"
    ROSE = "Rose"
    FORTIFIED = "Fortified"
    BEER = "Beer"
    CIDER = "Cider"
    WHISKIES = "Whiskies"
    WHISKY = "Whisky"
    SPIRITS = "Spirits"
    OTHER = "Other"


# =============================================================================
# 1. 빈티지별 재고
# =============================================================================
class VintageStock(BaseModel):
    vintage: StrictInt = Field(..., description="빈티지 연도 (1900 ~ 올해)")
    stock: StrictInt = Field(..., ge=0, description="해당 빈티지 재고 수량 (0 이상)")

    @field_validator("vintage")
    @classmethod
    def check_vintage_year(cls, value: int) -> int:
        current_year = date.today().year
        if not MIN_VINTAGE_YEAR <= value <= current_year:
            raise ValueError(f"vintage must be between {MIN_VINTAGE_YEAR} and {current_year}")
        return value


def _check_name(value: str) -> str:
    if not value.strip():
        raise ValueError("name must not be empty")
    return value


BottleName = Annotated[str, AfterValidator(_check_name)]


# =============================================================================
# 2. bottles 요청 스키마
# =============================================================================
class BottleCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: BottleName = Field(..., max_length=255, description="표시 이름 (필수)")
    category: BottleCategory = Field(..., description="병 분류")
    wine: Optional[str] = Field(None, description="와인/품종 명칭")
    sub_type: Optional[str] = Field(None, description="세부 유형")
    producer: Optional[str] = Field(None, description="생산자")
    region: Optional[str] = Field(None, description="지역")
    country: Optional[str] = Field(None, description="국가")
    stock_level: StrictInt = Field(0, ge=0, description="전체 재고 수량 (기본 0)")
    vintage_stocks: List[VintageStock] = Field(default_factory=list, description="빈티지별 재고 목록")
    image_url: Optional[str] = Field(None, description="이미지 URI 또는 경로")
    rating: Optional[StrictInt] = Field(None, ge=1, le=5, description="평점 (1~5)")
    notes: Optional[str] = Field(None, description="개인 시음 노트")


class BottleUpdate(BaseModel):
    """
    부분 업데이트 스키마. 모든 필드는 선택 사항입니다.
    보내지 않은 필드는 유지되고, 보낸 필드는 값이 비어 있어도 덮어씁니다.
    id, owner_id, created_at 은 변경할 수 없으므로 받지 않습니다.
    """
    model_config = ConfigDict(extra="forbid")

    name: Optional[BottleName] = Field(None, max_length=255)
    category: Optional[BottleCategory] = None
    wine: Optional[str] = None
    sub_type: Optional[str] = None
    producer: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    stock_level: Optional[StrictInt] = Field(None, ge=0)
    vintage_stocks: Optional[List[VintageStock]] = None
    image_url: Optional[str] = None
    rating: Optional[StrictInt] = Field(None, ge=1, le=5)
    notes: Optional[str] = None

    @field_validator(*NON_NULLABLE_FIELDS)
    @classmethod
    def reject_explicit_null(cls, value, info):
        # 기본값(None)에는 호출되지 않으므로, 여기 도달한 None은 호출자가 명시적으로 보낸 값입니다.
        if value is None:
            raise ValueError(f"{info.field_name} may be omitted but not set to null")
        return value


# =============================================================================
# 3. bottles 응답 스키마
# =============================================================================
class BottleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="병 레코드 고유 ID")
    owner_id: str = Field(..., description="소유 사용자 ID")
    name: str
    category: str
    wine: Optional[str] = None
    sub_type: Optional[str] = None
    producer: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    stock_level: int
    vintage_stocks: List[VintageStock]
    image_url: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime = Field(..., description="레코드 생성 일시")
