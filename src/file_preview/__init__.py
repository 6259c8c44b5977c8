# SPDX-License-Identifier: AGPL-3.0-or-later
"""Public interface for :mod:`file_preview` with lightweight imports."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__all__ = [
    "ConversionBackendError",
    "ConversionPipeline",
    "FunctionHandler",
    "Handler",
    "HandlerRegistry",
    "InputFile",
    "MimeClassifier",
    "NoFileError",
    "NotReadyError",
    "PreviewError",
    "PreviewOutput",
    "PreviewSession",
    "Route",
    "UnimplementedRouteError",
    "UnsupportedMimeError",
    "from_file",
    "from_path",
    "get_default_registry",
    "register_handler",
]

_LAZY_ATTRS: Dict[str, Tuple[str, str]] = {
    "ConversionBackendError": (".errors", "ConversionBackendError"),
    "NoFileError": (".errors", "NoFileError"),
    "NotReadyError": (".errors", "NotReadyError"),
    "PreviewError": (".errors", "PreviewError"),
    "UnimplementedRouteError": (".errors", "UnimplementedRouteError"),
    "UnsupportedMimeError": (".errors", "UnsupportedMimeError"),
    "InputFile": (".files", "InputFile"),
    "MimeClassifier": (".classifier", "MimeClassifier"),
    "PreviewOutput": (".models", "PreviewOutput"),
    "FunctionHandler": (".registry", "FunctionHandler"),
    "Handler": (".registry", "Handler"),
    "HandlerRegistry": (".registry", "HandlerRegistry"),
    "get_default_registry": (".registry", "get_default_registry"),
    "register_handler": (".registry", "register_handler"),
    "ConversionPipeline": (".pipeline", "ConversionPipeline"),
    "Route": (".pipeline", "Route"),
    "PreviewSession": (".session", "PreviewSession"),
    "from_file": (".session", "from_file"),
    "from_path": (".session", "from_path"),
}

if TYPE_CHECKING:  # pragma: no cover - import-time only for type checkers
    from .classifier import MimeClassifier
    from .errors import (
        ConversionBackendError,
        NoFileError,
        NotReadyError,
        PreviewError,
        UnimplementedRouteError,
        UnsupportedMimeError,
    )
    from .files import InputFile
    from .models import PreviewOutput
    from .pipeline import ConversionPipeline, Route
    from .registry import FunctionHandler, Handler, HandlerRegistry, get_default_registry, register_handler
    from .session import PreviewSession, from_file, from_path


def __getattr__(name: str) -> Any:
    try:
        module_name, attr_name = _LAZY_ATTRS[name]
    except KeyError as exc:  # pragma: no cover
        raise AttributeError(name) from exc
    module = import_module(module_name, package=__name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - simple delegation
    return sorted(__all__)
