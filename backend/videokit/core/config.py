"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "videokit"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: list[str] = []

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Transcoding engine
    # FFMPEG_PATH: explicit ffmpeg executable, otherwise looked up on PATH
    FFMPEG_PATH: Optional[str] = None
    # ENGINE_WORK_DIR: parent of the engine's working storage (system temp dir when unset)
    ENGINE_WORK_DIR: Optional[str] = None
    ENGINE_LOAD_TIMEOUT_SECONDS: float = 180.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
