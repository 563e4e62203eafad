# app/domains/catalog/tasks.py

import logging
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.database import get_async_session_context
from app.core.exceptions import CatalogImportError
from app.domains.catalog.importer import catalog_importer

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def import_catalog_task(ctx, csv_path: Optional[str] = None) -> Dict[str, Any]:
    """
    설정된(또는 전달된) CSV 파일로 공유 카탈로그를 적재하는 백그라운드 작업.
    카탈로그가 이미 채워져 있으면 아무것도 하지 않습니다.
    """
    path = csv_path or settings.CATALOG_CSV_PATH
    if not path:
        logger.warning("CATALOG_CSV_PATH가 설정되지 않아 카탈로그 임포트를 실행하지 않습니다.")
        return {"status": "error", "message": "Catalog source is not configured."}

    logger.info("백그라운드 작업 시작: 카탈로그 임포트 (%s)", path)
    try:
        async with get_async_session_context() as db:
            result = await catalog_importer.import_file(db, path)
    except CatalogImportError as e:
        logger.error("백그라운드 카탈로그 임포트 실패: %s", e.message)
        return {"status": "error", "message": e.message, "committed_count": e.committed_count}

    logger.info("작업 완료! 상태=%s, 적재 %s건", result.status.value, result.imported_count)
    return result.model_dump(mode="json")
