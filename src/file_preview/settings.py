"""Preview settings from YAML, an optional .env file and FILE_PREVIEW_* variables."""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

_ENV_PREFIX = "FILE_PREVIEW_"


class RasterSettings(BaseModel):
    """Encoding knobs for the raster engine."""

    jpeg_quality: int = Field(default=85, ge=1, le=95)
    pdf_zoom: float = 1.5
    background: str = "white"
    stream_chunk_size: int = 65536

    @field_validator("pdf_zoom")
    @classmethod
    def _positive_zoom(cls, value: float) -> float:  # noqa: D401
        if value <= 0:
            raise ValueError("pdf_zoom must be > 0")
        return float(value)

    @field_validator("stream_chunk_size")
    @classmethod
    def _positive_chunk(cls, value: int) -> int:  # noqa: D401
        if value <= 0:
            raise ValueError("stream_chunk_size must be > 0")
        return int(value)


class ConverterSettings(BaseModel):
    """Document-to-PDF backend selection."""

    backend: str = "auto"
    soffice_path: Optional[str] = None
    timeout: float = 120.0
    page_width: float = 595.0
    page_height: float = 842.0
    margin: float = 56.0
    font_size: float = 11.0

    @field_validator("backend")
    @classmethod
    def _normalize_backend(cls, value: str) -> str:  # noqa: D401
        normalized = value.strip().lower() or "auto"
        if normalized not in {"auto", "libreoffice", "docx"}:
            raise ValueError("backend must be one of: auto, libreoffice, docx")
        return normalized

    @field_validator("timeout", "page_width", "page_height", "font_size")
    @classmethod
    def _positive(cls, value: float) -> float:  # noqa: D401
        if value <= 0:
            raise ValueError("Converter timings and page geometry must be > 0")
        return float(value)

    @field_validator("margin")
    @classmethod
    def _non_negative_margin(cls, value: float) -> float:  # noqa: D401
        if value < 0:
            raise ValueError("margin must be >= 0")
        return float(value)

    @field_validator("soffice_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str]) -> Optional[str]:  # noqa: D401
        if not value:
            return None
        return str(Path(value).expanduser())


class TempSettings(BaseModel):
    """Where intermediate PDFs go and what happens to them afterwards."""

    directory: Optional[str] = None
    prefix: str = "FilePreview"
    disposal: str = "delete"

    @field_validator("disposal")
    @classmethod
    def _normalize_disposal(cls, value: str) -> str:  # noqa: D401
        normalized = value.strip().lower() or "delete"
        if normalized not in {"delete", "atexit", "keep"}:
            raise ValueError("disposal must be one of: delete, atexit, keep")
        return normalized

    @field_validator("directory", mode="before")
    @classmethod
    def _expand_directory(cls, value: Optional[str]) -> Optional[str]:  # noqa: D401
        if not value:
            return None
        return str(Path(value).expanduser())

    @property
    def resolved_directory(self) -> Path:
        if self.directory:
            return Path(self.directory)
        return Path(tempfile.gettempdir())


class PreviewSettings(BaseModel):
    """All preview settings, one section per collaborator."""

    raster: RasterSettings = Field(default_factory=RasterSettings)
    converter: ConverterSettings = Field(default_factory=ConverterSettings)
    temp: TempSettings = Field(default_factory=TempSettings)


_PACKAGE_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_SETTINGS_PATH = _PACKAGE_ROOT / "configs" / "settings.yaml"
_DEFAULT_DOTENV_PATH = _PACKAGE_ROOT / ".env"


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings YAML at {path} must contain a dictionary")
    return data


def _resolve_settings_path(explicit: Optional[str | Path]) -> Path:
    candidate = explicit or os.getenv("FILE_PREVIEW_SETTINGS_PATH")
    if candidate:
        return Path(candidate).expanduser()
    return _DEFAULT_SETTINGS_PATH


def _resolve_env_path() -> Optional[Path]:
    candidate = os.getenv("FILE_PREVIEW_DOTENV")
    if candidate:
        return Path(candidate).expanduser()
    return _DEFAULT_DOTENV_PATH if _DEFAULT_DOTENV_PATH.exists() else None


def _collect_env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        *sections, field = key[len(_ENV_PREFIX) :].lower().split("__")
        if not sections:
            # FILE_PREVIEW_SETTINGS_PATH and friends are not section keys
            continue
        cursor = overrides
        for section in sections:
            cursor = cursor.setdefault(section, {})
        cursor[field] = value
    return overrides


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@lru_cache(maxsize=1)
def get_settings(path: Path | None = None) -> PreviewSettings:
    """Load the global preview settings, caching the resulting object."""

    env_path = _resolve_env_path()
    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)
    data = _read_yaml(_resolve_settings_path(path))
    merged = _deep_merge(data, _collect_env_overrides())
    return PreviewSettings.model_validate(merged)


def reset_settings_cache() -> None:
    """Clear the cached settings instance (useful for tests)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ConverterSettings",
    "PreviewSettings",
    "RasterSettings",
    "TempSettings",
    "get_settings",
    "reset_settings_cache",
]
