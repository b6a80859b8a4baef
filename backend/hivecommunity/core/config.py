from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Hive Community"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str = "CHANGE_ME"
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database (document store backing tables)
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./hivecommunity.db"
    DB_ECHO: bool = False

    # ==========================================
    # Redis (optional session backend)
    # ==========================================
    REDIS_URL: str = ""

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str = "CHANGE_ME"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)
    ADMIN_API_TOKEN: str = ""  # Empty disables admin endpoints

    # ==========================================
    # Credentials
    # ==========================================
    MEMBER_CREDENTIAL_DOMAIN: str = "members.hivecommunity.com"
    HIVE_CREDENTIAL_DOMAIN: str = "hives.hivecommunity.com"
    CREDENTIAL_MAX_ATTEMPTS: int = 5  # Re-draws of the identifier suffix on collision

    # ==========================================
    # Client sessions
    # ==========================================
    SESSION_STORAGE_KEY: str = "userSession"
    SESSION_BACKEND: str = "file"  # "memory", "file" or "redis"
    SESSION_DIR: str = "~/.hivecommunity"

    # ==========================================
    # Workflows
    # ==========================================
    NOTIFICATION_BATCH_SIZE: int = 400
    PENDING_PAGE_SIZE: int = 20
    RECENT_APPLICATION_DAYS: int = 7

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    @property
    def SESSION_PATH(self) -> Path:
        return Path(self.SESSION_DIR).expanduser()

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def credential_domain(self, kind: str) -> str:
        """Domain suffix for generated login identifiers ("member" or "hive")"""
        if kind == "hive":
            return self.HIVE_CREDENTIAL_DOMAIN
        return self.MEMBER_CREDENTIAL_DOMAIN


# Create settings instance
settings = Settings()
