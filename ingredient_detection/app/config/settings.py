"""Configuration utilities for ingredient detection."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models import ModelVariant


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(env_prefix="INGREDIENT_", case_sensitive=False, protected_namespaces=())

    variants_path: Path = Field(
        default=Path(__file__).resolve().parent / "model_variants.yaml",
        description="Manifest pairing each bundled model file with its output layout.",
    )
    model_variant: str = Field(default="yolov5s", description="Variant name in the manifest.")
    confidence_threshold: float = Field(default=0.5, gt=0.0, le=1.0)
    iou_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    num_threads: int = Field(default=4, ge=1, description="CPU threads when no GPU is used.")
    use_gpu: bool = Field(default=True, description="Prefer a GPU execution provider when present.")
    log_format: str = Field(default="text")
    log_level: str = Field(default="INFO", description="Root logger level name, e.g. DEBUG.")

    @field_validator("variants_path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in {"text", "json"}:
            raise ValueError("log_format must be 'text' or 'json'")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    def resolve_variant(self) -> ModelVariant:
        """Return the configured model variant from the manifest."""

        return ModelVariant.from_yaml(self.variants_path, self.model_variant)


def load_settings(**overrides: Any) -> AppSettings:
    """Return settings from the environment, with explicit overrides taking precedence.

    Overrides left as ``None`` (e.g. unset command-line options) fall back to
    the environment or the field default.
    """

    return AppSettings(**{key: value for key, value in overrides.items() if value is not None})
