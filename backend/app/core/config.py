from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any
import json


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
    APP_NAME: str = "CampusQA"
    ENVIRONMENT: str = "development"  # development, test, production
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 4000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./campusqa.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False

    # ==========================================
    # Security
    # ==========================================
    JWT_ACCESS_SECRET: str
    JWT_REFRESH_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_SECONDS: int = 900  # 15 minutes
    REFRESH_TOKEN_TTL_SECONDS: int = 60 * 60 * 24 * 7  # 7 days
    BCRYPT_ROUNDS: int = 12  # 4 for tests (fast), 12 for prod (secure)
    TOKEN_HASH_ROUNDS: int = 12

    # Refresh cookie
    REFRESH_COOKIE_NAME: str = "refresh_token"
    # Scoped to /api/auth, not /api/auth/refresh: logout must receive the
    # cookie to clear the stored token hash
    REFRESH_COOKIE_PATH: str = "/api/auth"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CLIENT_ORIGIN: str = "http://localhost:5173"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CLIENT_ORIGIN)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 120
    AUTH_RATE_LIMIT: str = "10/minute"
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    MAX_REQUEST_BYTES: int = 200 * 1024  # 200kb JSON bodies

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @field_validator("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET")
    @classmethod
    def secret_min_length(cls, v: str) -> str:
        if len(v) < 20:
            raise ValueError("JWT secrets must be at least 20 characters")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
