# app/core/exceptions.py

"""
호출자에게 노출되는 오류 분류를 정의하는 모듈입니다.

- 모든 오류는 안정적인 기계 판독용 `kind`와 사람이 읽을 수 있는 `message`를 가집니다.
- '레코드 없음'은 예외가 아니라 `None` 반환으로 표현합니다.
- 백엔드 내부 정보(SQL, 드라이버 메시지)는 `message`에 담지 않습니다.
"""

from typing import Dict, List, Optional


class CellarError(Exception):
    """애플리케이션 오류의 기본 클래스입니다."""

    kind: str = "cellar_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, object]:
        return {"kind": self.kind, "detail": self.message}


class ValidationError(CellarError):
    """
    호출자가 보낸 데이터가 필드 제약을 위반한 경우.
    항상 호출자의 잘못이며 재시도하지 않습니다. 위반한 필드 이름을 함께 전달합니다.
    """

    kind = "validation_error"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> Dict[str, object]:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class PersistenceError(CellarError):
    """백엔드 연결 실패, 제약 조건 위반, 타임아웃 등 저장소 오류."""

    kind = "persistence_error"

    def __init__(self, operation: str, message: str = "Storage operation failed."):
        super().__init__(message)
        self.operation = operation


class CatalogImportError(CellarError):
    """카탈로그 일괄 적재가 중단된 경우. 커밋된 행 수를 함께 보고합니다."""

    kind = "catalog_import_error"

    def __init__(self, message: str, committed_count: int = 0):
        super().__init__(message)
        self.committed_count = committed_count

    def to_dict(self) -> Dict[str, object]:
        data = super().to_dict()
        data["committed_count"] = self.committed_count
        return data
