# app/domains/cellar/__init__.py

"""
FastAPI 애플리케이션의 'cellar' 도메인 패키지입니다.

'cellar' 도메인은 사용자별 개인 병(Bottle) 재고를 관리합니다.
모든 레코드는 단 한 명의 소유자(owner_id)에게 속하며, 모든 조회/수정/삭제는
소유자 ID를 필수 조건으로 하여 저장소 경계에서 범위가 제한됩니다.

주요 서브모듈:
- `models.py`: 'bottles' 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사를 위한 Pydantic 모델.
- `crud.py`: 소유자 범위의 비동기 CRUD 및 원자적 부분 업데이트 로직.
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "Cellar Inventory Domain"
__description__ = "Owner-scoped bottle inventory with atomic partial updates."
__version__ = "0.1.0"
__all__ = []
