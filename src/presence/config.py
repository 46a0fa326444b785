"""Central configuration loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Server
    host: str = Field(default="127.0.0.1", alias="PRESENCE_HOST")
    port: int = Field(default=3000, alias="PRESENCE_PORT")
    allowed_origins: str = Field(default="*", alias="PRESENCE_ALLOWED_ORIGINS")
    static_dir: Path = Field(default=_PROJECT_ROOT / "public", alias="PRESENCE_STATIC_DIR")

    # Shared secret for sockets and the admin report
    admin_token: str = Field(default="secret123", alias="ADMIN_TOKEN")

    # Persistence
    memory_path: Path = Field(
        default=_PROJECT_ROOT / "data" / "memory.json", alias="PRESENCE_MEMORY_PATH"
    )

    # Recognition
    match_threshold: float = Field(
        default=0.6, alias="PRESENCE_MATCH_THRESHOLD",
        description="Maximum (exclusive) euclidean distance for a face match",
    )
    greeting_emotion: str = Field(
        default="happy", alias="PRESENCE_GREETING_EMOTION",
        description="Emotion label that makes the assistant greet the viewer",
    )

    # Relay
    room: str = Field(default="room1", alias="PRESENCE_ROOM")

    # Logging
    log_level: str = Field(default="INFO", alias="PRESENCE_LOG_LEVEL")

    model_config = {
        "env_file": str(_PROJECT_ROOT / ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def origins(self) -> list[str]:
        """Return the CORS origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def get_settings() -> Settings:
    """Return a cached Settings instance."""
    if not hasattr(get_settings, "_instance"):
        get_settings._instance = Settings()  # type: ignore[attr-defined]
    return get_settings._instance  # type: ignore[attr-defined]
