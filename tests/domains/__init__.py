# tests/domains/__init__.py

"""
도메인별 테스트 모듈 패키지입니다.

- `test_cellar_n.py`: 'cellar' 도메인 (개인 병 재고)의 저장소 및 API 테스트.
- `test_catalog_n.py`: 'catalog' 도메인 (공유 카탈로그)의 임포트, 검색 및 API 테스트.
"""

__title__ = "Cellar Domain Tests"
__description__ = "Categorized tests for each business domain in Cellar FastAPI application."
__version__ = "0.1.0"
__all__ = []
