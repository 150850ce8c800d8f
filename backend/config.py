# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_agriconnect.db"

    FRONTEND_URL: str = "http://localhost:3000"

    # Remote order service; when unset orders are handled in-process
    ORDER_API_URL: Optional[str] = None
    ORDER_API_TIMEOUT: float = 10.0

    # Refresh period for buyer/farmer order views
    ORDER_POLL_INTERVAL_SECONDS: float = 3.0

    CURRENCY_LOCALE: str = "en_IN"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
