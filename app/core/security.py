# app/core/security.py

"""
애플리케이션의 보안 관련 유틸리티 함수 및 의존성 주입을 정의하는 모듈입니다.

- 인증/세션 관리는 외부 시스템의 몫입니다. 이 서비스는 Bearer JWT를 검증하고
  `sub` 클레임을 불투명한 소유자 ID로 사용하기만 합니다.
- `role` 클레임을 이용한 관리자 권한 검사 (카탈로그 임포트용).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

#  로거 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# --- JWT 토큰 생성 및 검증 ---
def create_access_token(
    owner_id: str,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    소유자 ID를 `sub` 클레임으로 담은 Access Token을 생성합니다.
    (개발/테스트 도구용. 실제 토큰 발급은 외부 인증 시스템이 담당합니다.)
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))
    to_encode: Dict[str, Any] = {"sub": owner_id, "exp": expire}
    if role:
        to_encode["role"] = role
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """토큰을 디코딩하고 검증합니다. 실패하면 401을 발생시킵니다."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e.__class__.__name__)
        raise credentials_exception
    if not payload.get("sub"):
        raise credentials_exception
    return payload


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """요청의 Bearer 토큰에서 클레임을 꺼냅니다."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)


async def get_current_owner_id(claims: Dict[str, Any] = Depends(get_current_claims)) -> str:
    """현재 요청자의 소유자 ID(`sub`)를 반환합니다."""
    return str(claims["sub"])


async def get_current_admin_owner_id(claims: Dict[str, Any] = Depends(get_current_claims)) -> str:
    """
    관리자 역할을 가진 요청자의 ID를 반환합니다.
    관리자 권한이 없는 경우 403 Forbidden을 발생시킵니다.
    """
    if claims.get("role") != settings.ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions. Admin role required."
        )
    return str(claims["sub"])
