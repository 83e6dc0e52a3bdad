from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

ApiKeyProvider = Callable[[], Optional[str]]

MAX_VARIATIONS = 10


class GeminiImageConfig(BaseModel):
    """Settings required to reach the Gemini image editing model."""

    api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language REST API",
    )
    model: str = Field(
        default="gemini-2.5-flash-image",
        description="Model identifier used for image edits",
    )
    api_key_env: str = Field(
        default="GEMINI_API_KEY",
        description="Environment variable holding the API key; read on every call",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Optional HTTP timeout; unset leaves requests unbounded",
    )


class BatchConfig(BaseModel):
    """Limits applied to hairstyle variation batches."""

    max_variations: int = Field(default=MAX_VARIATIONS, ge=1, le=MAX_VARIATIONS)
    default_variations: int = Field(default=5, ge=1, le=MAX_VARIATIONS)

    @model_validator(mode="after")
    def _validate_default(self) -> "BatchConfig":
        if self.default_variations > self.max_variations:
            raise ValueError("default_variations cannot exceed max_variations")
        return self


class OutputConfig(BaseModel):
    """Where the terminal front-end writes generated styles."""

    root_dir: Path = Field(default_factory=lambda: Path("output"))


class AppConfig(BaseModel):
    """Top-level configuration consumed by the client, runner and session."""

    gemini: GeminiImageConfig = Field(default_factory=GeminiImageConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def env_api_key_provider(env_var: str = "GEMINI_API_KEY") -> ApiKeyProvider:
    """Return a provider that looks the key up in ``os.environ`` each time it is called."""

    def _provider() -> Optional[str]:
        value = os.getenv(env_var)
        if value is None or not value.strip():
            return None
        return value.strip()

    return _provider


def _float_from_env(value: Optional[str], default: Optional[float]) -> Optional[float]:
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value: {value}") from exc


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value: {value}") from exc


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from environment variables (optionally seeded by a .env file).

    The API key itself is not part of the returned object; clients resolve it
    per request through :func:`env_api_key_provider`.

    Raises
    ------
    RuntimeError
        If a value is malformed or out of range.
    """
    env_path = Path(dotenv_path) if dotenv_path else Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    data = {
        "gemini": {
            "api_base": os.getenv(
                "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
            ),
            "model": os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
            "api_key_env": os.getenv("GEMINI_API_KEY_ENV", "GEMINI_API_KEY"),
            "timeout_seconds": _float_from_env(os.getenv("GEMINI_TIMEOUT_SECONDS"), None),
        },
        "batch": {
            "max_variations": _int_from_env(
                os.getenv("HAIRSTYLIST_MAX_VARIATIONS"), MAX_VARIATIONS
            ),
            "default_variations": _int_from_env(
                os.getenv("HAIRSTYLIST_DEFAULT_VARIATIONS"), 5
            ),
        },
        "output": {
            "root_dir": Path(os.getenv("OUTPUT_ROOT_DIR", "output")),
        },
    }

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        invalid = {
            "/".join(str(part) for part in err["loc"]) or err["msg"] for err in exc.errors()
        }
        invalid_str = ", ".join(sorted(invalid))
        raise RuntimeError(f"Invalid configuration values: {invalid_str}") from exc
