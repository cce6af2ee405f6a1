"""Configuration module for vocab-sync."""

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from vocab_sync import __version__
from vocab_sync.exceptions import ConfigurationError, ErrorCode

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, shared by every checkout
_USER_ENV = Path.home() / ".vocab_sync" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)


def _env_path_list(name: str) -> List[Path]:
    """Read a comma-separated list of directories from an environment variable."""
    raw = os.getenv(name, "")
    return [Path(part.strip()) for part in raw.split(",") if part.strip()]


def _env_optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


class VocabSyncConfig(BaseModel):
    """Configuration for the import/export driver."""

    # Base directory that relative paths are resolved against
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("VOCAB_SYNC_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("VOCAB_SYNC_DATABASE_PATH", "data/db/vocab.db")
        )
    )
    # Source directories
    story_dirs: List[Path] = Field(
        default_factory=lambda: _env_path_list("VOCAB_SYNC_STORY_DIRS")
    )
    flashcard_dirs: List[Path] = Field(
        default_factory=lambda: _env_path_list("VOCAB_SYNC_FLASHCARD_DIRS")
    )
    learning_dir: Optional[Path] = Field(
        default_factory=lambda: _env_optional_path("VOCAB_SYNC_LEARNING_DIR")
    )
    dictionary_cache_dir: Optional[Path] = Field(
        default_factory=lambda: _env_optional_path("VOCAB_SYNC_DICTIONARY_CACHE_DIR")
    )
    # Export target
    export_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("VOCAB_SYNC_EXPORT_DIR", "data/export"))
    )
    # Logging
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("VOCAB_SYNC_LOG_DIR", str(Path.home() / ".vocab_sync" / "logs"))
        )
    )
    app_version: str = Field(default=__version__)

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate_sources(self) -> "VocabSyncConfig":
        """Warn about source directories that share a path."""
        seen = set()
        for path in [*self.story_dirs, *self.flashcard_dirs]:
            if path in seen:
                logger.warning(
                    "Source directory %s is configured more than once; "
                    "its notebooks will be read twice.",
                    path,
                )
            seen.add(path)
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite, creating the parent directory.

        Raises:
            ConfigurationError: If the database path is empty, names a
                directory, or its parent directory cannot be created.
        """
        db_path = self.get_absolute_path(self.database_path)
        if not self.database_path.name or db_path.is_dir():
            raise ConfigurationError(
                "Database path must name a file",
                config_key="database_path",
                value=db_path,
                code=ErrorCode.CONFIG_MISSING,
            )
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot create database directory {db_path.parent}",
                config_key="database_path",
                value=db_path,
                original_error=e,
            ) from e
        return f"sqlite:///{db_path}"


# Create a global config instance
config = VocabSyncConfig()
