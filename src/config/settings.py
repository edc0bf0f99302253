from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    A configuration class for managing environment variables.

    Values are read from the process environment first and fall back to a `.env`
    file in the working directory, so local runs and container deployments share
    the same variable names.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    GOOGLE_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash-image-preview"
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: Optional[float] = None

    CORS_ALLOW_ORIGINS: List[str] = ["https://millerman1723-spec.github.io"]

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    MAX_REQUEST_BODY_BYTES: int = 20 * 1024 * 1024

    API_LOGGING_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"

    HOST: str = "0.0.0.0"
    PORT: int = 10000


@lru_cache
def get_settings() -> Settings:
    return Settings()
