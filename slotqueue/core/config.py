# slotqueue/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra='forbid')

    # Application Settings
    APP_NAME: str = "Clinic Slot Queue API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./slotqueue.db")

    # CORS Settings
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")

    # Scheduling Settings
    APPOINTMENT_INTERVAL_MINUTES: int = 40  # 30 min consult + 10 min buffer
    APPOINTMENT_DURATION_MINUTES: int = 30
    CLINIC_TIMEZONE: str = "Asia/Kolkata"

    # Per-slot serialization: "memory", "database" or "redis"
    SLOT_LOCK_BACKEND: str = "memory"
    SLOT_LOCK_TIMEOUT_SECONDS: int = 30
    REDIS_URL: Optional[str] = os.environ.get("REDIS_URL", None)

    # Badge counts may lag by this much
    PENDING_COUNT_CACHE_SECONDS: int = 15

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings: Settings = get_settings()
