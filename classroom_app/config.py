"""Application configuration loaded from environment variables."""

from typing import List

from pydantic_settings import BaseSettings

from classroom_app.constants.about import APP_NAME
from classroom_app.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_MESSAGE_SIZE_MB,
    DEFAULT_PORT,
)
from classroom_app.constants.room_constants import (
    DEFAULT_TRANSFER_SWEEP_INTERVAL_SECONDS,
    DEFAULT_TRANSFER_TIMEOUT_SECONDS,
)


class Settings(BaseSettings):
    # App
    APP_NAME: str = APP_NAME
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = DEFAULT_HOST
    PORT: int = DEFAULT_PORT
    CORS_ORIGINS: str = "*"
    MAX_MESSAGE_SIZE_MB: int = DEFAULT_MAX_MESSAGE_SIZE_MB

    # Snapshot transfers
    TRANSFER_TIMEOUT_SECONDS: float = DEFAULT_TRANSFER_TIMEOUT_SECONDS
    TRANSFER_SWEEP_INTERVAL_SECONDS: float = DEFAULT_TRANSFER_SWEEP_INTERVAL_SECONDS

    # Send the full roster to the teacher only; students still get attention changes
    ROSTER_BROADCAST_TEACHER_ONLY: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def max_message_size_bytes(self) -> int:
        return self.MAX_MESSAGE_SIZE_MB * 1024 * 1024

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


settings = Settings()
