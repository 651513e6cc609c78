from typing import List, Optional
from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "dev-secret-change-me-in-production"


class Settings(BaseSettings):
    PROJECT_NAME: str = "PolicyFlow"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
    ]

    # Database
    DB_PATH: str = "policyflow.db"
    DATABASE_URL: Optional[str] = None
    SQLITE_BUSY_TIMEOUT_MS: int = 5000
    WRITE_LOCK_TIMEOUT_SECONDS: float = 5.0

    # Auth
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    MAGIC_LINK_EXPIRE_MINUTES: int = 60 * 24
    BASE_URL: str = "http://localhost:8080"

    # Seeding
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_NAME: str = "Policy Admin"

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite+aiosqlite:///{self.DB_PATH}"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

settings = Settings()
