"""Service configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from the environment or a .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 3000

    # "production" redacts unexpected error messages
    environment: str = "development"

    # Persistence
    notes_file: Path = Path("notes.json")
    atomic_writes: bool = False

    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production mode."""
        return self.environment.strip().lower() == "production"
