# tests/__init__.py

"""
Cellar FastAPI 애플리케이션의 테스트 스위트 패키지입니다.

- `conftest.py`: 테스트마다 새 데이터베이스, 세션, 인증된 AsyncClient 등 공용 픽스처.
- `test_main.py`: 루트, 헬스 체크, 공통 오류 응답 형식 테스트.
- `domains/`: 도메인(cellar, catalog)별 테스트 모듈.
"""

__title__ = "Cellar API Tests"
__description__ = "Test suite for Cellar FastAPI application."
__version__ = "0.1.0"
__all__ = []
