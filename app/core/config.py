# app/core/config.py

from typing import Any, Optional
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# 프로젝트의 루트 디렉토리 경로를 계산합니다.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    애플리케이션의 모든 설정을 정의하는 Pydantic BaseSettings 모델입니다.
    환경 변수 및 .env 파일에서 값을 자동으로 로드합니다.
    """

    # --- Pydantic Settings 설정 ---
    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),  # 프로젝트 루트의 .env 파일을 명시적으로 지정
        env_file_encoding='utf-8',
        extra='ignore',                      # .env 파일에 정의되었지만 모델에 없는 변수는 무시
        case_sensitive=True                  # 환경 변수 이름 대소문자 구분
    )

    # --- 애플리케이션 기본 설정 ---
    APP_NAME: str = "Cellar FastAPI API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Personal wine & spirits cellar inventory API"
    APP_ENV: str = Field("development", description="Application environment (e.g., development, production, testing)")
    DEBUG_MODE: bool = Field(False, description="Enable debug mode for detailed logging and error messages")

    # --- 데이터베이스 설정 ---
    DATABASE_URL: SecretStr = Field(..., description="Async database connection URL (postgresql+asyncpg://...)")
    # 모든 백엔드 호출에 적용되는 상한 시간(초). 초과 시 PersistenceError로 보고합니다.
    DB_TIMEOUT_SECONDS: float = Field(10.0, gt=0, description="Upper bound for a single backend call, in seconds")

    # --- JWT (JSON Web Token) 설정 ---
    SECRET_KEY: SecretStr = Field(..., description="Secret key used to verify bearer tokens")
    ALGORITHM: str = Field("HS256", description="Algorithm used for JWT signing (e.g., HS256)")
    ADMIN_ROLE: str = Field("admin", description="Value of the 'role' claim allowed to trigger catalog imports")

    # --- 카탈로그 임포트 설정 ---
    CATALOG_CSV_PATH: Optional[str] = Field(None, description="CSV file used for the catalog import")
    CATALOG_IMPORT_ON_STARTUP: bool = Field(False, description="Run the catalog import once when the app starts")
    CATALOG_IMPORT_BATCH_SIZE: int = Field(1000, gt=0, description="Rows per INSERT batch during catalog import")

    # --- ARQ (Redis) 설정 ---
    REDIS_HOST: str = Field("localhost", description="Redis host for the ARQ worker pool")
    REDIS_PORT: int = Field(6379, description="Redis port for the ARQ worker pool")

    def model_post_init(self, __context: Any) -> None:  # noqa: ANN001
        # 상대 경로로 주어진 CSV 경로는 프로젝트 루트를 기준으로 해석합니다.
        if self.CATALOG_CSV_PATH and not os.path.isabs(self.CATALOG_CSV_PATH):
            self.CATALOG_CSV_PATH = os.path.join(BASE_DIR, self.CATALOG_CSV_PATH)


settings = Settings()
