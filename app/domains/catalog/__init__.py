# app/domains/catalog/__init__.py

"""
FastAPI 애플리케이션의 'catalog' 도메인 패키지입니다.

'catalog' 도메인은 모든 사용자가 공유하는 참조 카탈로그(CatalogEntry)를 관리합니다.
카탈로그는 외부 CSV 원본에서 한 번 일괄 적재되며, 이미 데이터가 있으면
재실행해도 아무것도 바꾸지 않습니다 (멱등 임포트).

주요 서브모듈:
- `models.py`: 'catalog_entries' 테이블 SQLModel 정의.
- `schemas.py`: 카탈로그 항목 및 임포트 결과 Pydantic 모델.
- `crud.py`: 개수 조회, 전체 조회, 부분 문자열 검색, 배치 삽입.
- `importer.py`: CSV 헤더 별칭 매핑과 멱등 일괄 적재 (CatalogImporter).
- `tasks.py`: 카탈로그 임포트 ARQ 태스크.
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "Cellar Catalog Domain"
__description__ = "Shared reference catalog with idempotent CSV import and search."
__version__ = "0.1.0"
__all__ = []
