from datetime import time
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SENSOR_API_URL = "https://iot-backend-6oxx.onrender.com/api/sensor-data/latest"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database Configuration - required, startup fails without it
    DATABASE_URL: str

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Twilio credentials - required, startup fails without them
    TWILIO_ACCOUNT_SID: str
    TWILIO_AUTH_TOKEN: str
    TWILIO_PHONE_NUMBER: str

    # Sensor API
    SENSOR_API_URL: str = DEFAULT_SENSOR_API_URL
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Alerting
    MOISTURE_THRESHOLD: float = 30
    COUNTRY_CODE: str = "+91"

    # Scheduling, in TIMEZONE (IANA name) or host local time when unset
    DAILY_CHECK_TIME: time = time(9, 0)
    RUN_CHECK_ON_STARTUP: bool = True
    SCHEDULER_ENABLED: bool = True
    TIMEZONE: Optional[str] = None

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
