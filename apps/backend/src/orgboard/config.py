from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings

from .whiteboard.schema import BoardKind


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    # Directory holding one JSON file per board. Defaults to
    # apps/backend/whiteboards when unset.
    data_dir: Optional[Path] = None

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    default_board_kind: BoardKind = BoardKind.ORGANISATION
    history_limit: int = 100  # undo steps kept per session

    # ------------------------------------------------------------------
    # HTTP / logging
    # ------------------------------------------------------------------
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
