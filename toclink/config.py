"""Configuration utilities for TocLink."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


def _env_flag(name: str, default: bool) -> bool:
    """Return a boolean flag derived from environment variables."""

    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent


def _load_environment() -> None:
    """Load environment variables from a ``.env`` file if present."""

    explicit_path = os.getenv("TOCLINK_ENV_FILE")
    candidates = []

    if explicit_path:
        candidates.append(Path(explicit_path))

    candidates.append(PROJECT_ROOT / ".env")

    for candidate in candidates:
        try_path = candidate.expanduser()
        if try_path.exists():
            load_dotenv(try_path, override=False)


_load_environment()


# Extractor selection
PARSER_ENGINE: str = os.getenv("PARSER_ENGINE", "auto")

# Heuristics for "auto" engine fallback
PARSER_NOISE_SPACED_DOT_THRESH: float = float(
    os.getenv("PARSER_NOISE_SPACED_DOT_THRESH", "0.18")
)
PARSER_NOISE_CONFUSABLE_1_THRESH: float = float(
    os.getenv("PARSER_NOISE_CONFUSABLE_1_THRESH", "0.12")
)

PARSER_ENGINES = ("auto", "fitz", "pdfium")


class Settings(BaseModel):
    """Application configuration loaded from environment variables."""

    parser_engine: str = Field(
        default_factory=lambda: os.getenv("PARSER_ENGINE", PARSER_ENGINE)
    )
    verify_radius: int = Field(
        default_factory=lambda: int(os.getenv("TOCLINK_VERIFY_RADIUS", "2"))
    )
    gap_inference: bool = Field(
        default_factory=lambda: _env_flag("TOCLINK_GAP_INFERENCE", True)
    )
    progress_every: int = Field(
        default_factory=lambda: int(os.getenv("TOCLINK_PROGRESS_EVERY", "50"))
    )
    min_chars_per_page: int = Field(
        default_factory=lambda: int(os.getenv("TOCLINK_MIN_CHARS_PER_PAGE", "50"))
    )
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "info"))
    trace_enabled: bool = Field(
        default_factory=lambda: _env_flag("TOCLINK_TRACE", False)
    )
    trace_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("TOCLINK_TRACE_DIR", "logs/toclink"))
    )
    llm_provider: str = Field(
        default_factory=lambda: os.getenv("LLM_PROVIDER", "openai")
    )
    openai_api_key: str | None = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY")
    )
    openai_model: str = Field(
        default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-5-mini")
    )
    openai_url: str = Field(
        default_factory=lambda: os.getenv(
            "OPENAI_URL", "https://api.openai.com/v1/chat/completions"
        )
    )
    ollama_host: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_HOST", "localhost")
    )
    ollama_port: int = Field(
        default_factory=lambda: int(os.getenv("OLLAMA_PORT", "11434"))
    )
    ollama_model: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_MODEL", "llama3")
    )
    llm_timeout_s: int = Field(
        default_factory=lambda: int(os.getenv("LLM_TIMEOUT_S", "300"))
    )
    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "7600")))
    max_upload_size: int = Field(
        default_factory=lambda: int(os.getenv("MAX_UPLOAD_SIZE", str(200 * 1024 * 1024)))
    )

    @field_validator("parser_engine", mode="after")
    @classmethod
    def _normalise_engine(cls, value: str) -> str:
        value = (value or "auto").strip().lower()
        return value if value in PARSER_ENGINES else "auto"

    @field_validator("llm_provider", mode="after")
    @classmethod
    def _normalise_provider(cls, value: str) -> str:
        return (value or "openai").strip().lower()

    @field_validator("verify_radius", "progress_every", "min_chars_per_page", mode="after")
    @classmethod
    def _clamp_non_negative(cls, value: int) -> int:
        return max(0, value)

    @field_validator("openai_api_key", mode="after")
    @classmethod
    def _blank_key_is_missing(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def ollama_url(self) -> str:
        return f"http://{self.ollama_host}:{self.ollama_port}/api/chat"


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached settings so that subsequent calls reload from the environment."""

    get_settings.cache_clear()
