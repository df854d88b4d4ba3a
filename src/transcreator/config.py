"""
Configuration management for the translation pipeline.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import InputError


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InputError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise InputError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise InputError(f"{name} must be a number, got {raw!r}") from None
    if value < minimum:
        raise InputError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass
class AppConfig:
    """Configuration loaded from environment variables."""

    app_env: str = "development"

    # OpenAI-compatible provider
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    blueprint_model: str = "gpt-4o"
    translation_model: str = "gpt-4o-mini"
    sync_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    temperature: float = 0.5

    # Gateway retry envelope
    max_retries: int = 3
    initial_backoff: float = 0.2  # seconds

    # Batching
    batch_size: int = 10
    context_lines: int = 3
    context_max_chars: int = 600
    show_progress: bool = True

    # Pacing
    cps_threshold: float = 22.0

    target_language: str = "Persian"
    store_dir: Path = Path(".transcreator")
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        return cls(
            app_env=os.getenv("APP_ENV", "development"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            blueprint_model=os.getenv("TRANSCREATOR_BLUEPRINT_MODEL", "gpt-4o"),
            translation_model=os.getenv("TRANSCREATOR_TRANSLATION_MODEL", "gpt-4o-mini"),
            sync_model=os.getenv("TRANSCREATOR_SYNC_MODEL", "gpt-4o-mini"),
            embedding_model=os.getenv("TRANSCREATOR_EMBEDDING_MODEL", "text-embedding-3-small"),
            temperature=_env_float("TRANSCREATOR_TEMPERATURE", 0.5, 0.0),
            max_retries=_env_int("TRANSCREATOR_MAX_RETRIES", 3, 1),
            initial_backoff=_env_float("TRANSCREATOR_INITIAL_BACKOFF", 0.2, 0.0),
            batch_size=_env_int("TRANSCREATOR_BATCH_SIZE", 10, 1),
            context_lines=_env_int("TRANSCREATOR_CONTEXT_LINES", 3, 0),
            context_max_chars=_env_int("TRANSCREATOR_CONTEXT_MAX_CHARS", 600, 0),
            cps_threshold=_env_float("TRANSCREATOR_CPS_THRESHOLD", 22.0, 1.0),
            target_language=os.getenv("TRANSCREATOR_TARGET_LANGUAGE", "Persian"),
            store_dir=Path(os.getenv("TRANSCREATOR_STORE_DIR", ".transcreator")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
