# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

주요 서브모듈은 다음과 같습니다:

- `config.py`: 애플리케이션의 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 데이터베이스 연결, 세션 관리, 타임아웃 래퍼 (SQLModel 및 AsyncSQLAlchemy).
- `crud_base.py`: 소유자(owner) 범위로 제한된 공통 비동기 CRUD 기본 클래스.
- `exceptions.py`: 호출자에게 노출되는 오류 분류 (ValidationError, PersistenceError 등).
- `security.py`: Bearer 토큰에서 현재 소유자 ID를 얻는 의존성.
- `dependencies.py`: FastAPI의 의존성 주입 시스템에서 사용될 공통 의존성 함수들.
- `tasks.py`: 주기적으로 실행되는 데이터베이스 헬스 체크 ARQ 태스크.
"""

__title__ = "Cellar Core"
__description__ = "Core components for Cellar FastAPI application."
__version__ = "0.1.0"
__all__ = []
