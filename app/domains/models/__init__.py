# app/domains/models/__init__.py

"""
이 파일은 모든 도메인의 SQLModel 모델들을 한 곳에서 중앙 관리하여,
다른 모듈에서 쉽게 임포트할 수 있도록 하는 역할을 합니다.
SQLModel.metadata가 모든 테이블을 인식하도록 보장합니다.
"""

# cellar (Bottle)
from app.domains.cellar.models import Bottle

# catalog (CatalogEntry)
from app.domains.catalog.models import CatalogEntry

__all__ = ["Bottle", "CatalogEntry"]
