# SPDX-License-Identifier: AGPL-3.0-or-later
"""Registry of caller-supplied preview handlers."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Protocol, Tuple, runtime_checkable

from . import mime_types
from .classifier import MimeClassifier
from .files import InputFile
from .models import PreviewOutput

__all__ = [
    "FunctionHandler",
    "Handler",
    "HandlerRegistry",
    "get_default_registry",
    "register_handler",
    "reset_default_registry",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class Handler(Protocol):
    """Replaces the built-in route for one exact MIME value."""

    def convert(self, file: InputFile) -> PreviewOutput:
        ...


HandlerFunc = Callable[[InputFile], PreviewOutput]


class FunctionHandler:
    """Adapter turning a plain callable into a :class:`Handler`."""

    def __init__(self, func: HandlerFunc) -> None:
        self.func = func

    def __repr__(self) -> str:
        name = getattr(self.func, "__qualname__", repr(self.func))
        return f"FunctionHandler({name})"

    def convert(self, file: InputFile) -> PreviewOutput:
        return self.func(file)


def _coerce_handler(handler: Handler | HandlerFunc) -> Handler:
    if isinstance(handler, Handler):
        return handler
    if callable(handler):
        return FunctionHandler(handler)
    raise TypeError("Handler must be callable or expose a convert(file) method")


class HandlerRegistry:
    """Map MIME patterns to handlers and feed them into eligibility checks.

    Eligibility honours wildcards, dispatch does not: registering ``text/*``
    makes every text type previewable, but :meth:`resolve` only returns the
    handler for the literal MIME value ``text/*``.
    """

    def __init__(self, classifier: Optional[MimeClassifier] = None) -> None:
        self.classifier = classifier if classifier is not None else MimeClassifier()
        self._handlers: Dict[str, Handler] = {}

    def register(self, pattern: str, handler: Handler | HandlerFunc) -> None:
        coerced = _coerce_handler(handler)
        self.classifier.allow(pattern)
        key = mime_types.normalize_mime(pattern)
        if key in self._handlers:
            logger.debug("Replacing preview handler for %s", key)
        self._handlers[key] = coerced

    def resolve(self, mime: Optional[str]) -> Optional[Handler]:
        return self._handlers.get(mime_types.normalize_mime(mime))

    def is_eligible(self, mime: Optional[str]) -> bool:
        return self.classifier.is_eligible(mime)

    def registered_patterns(self) -> Tuple[str, ...]:
        return tuple(self._handlers)

    def __contains__(self, mime: object) -> bool:
        return isinstance(mime, str) and mime_types.normalize_mime(mime) in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


_default_registry: HandlerRegistry | None = None


def get_default_registry() -> HandlerRegistry:
    """Return the process-wide registry, creating it on first use."""

    global _default_registry
    if _default_registry is None:
        _default_registry = HandlerRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry (useful for tests)."""

    global _default_registry
    _default_registry = None


def register_handler(pattern: str, handler: Handler | HandlerFunc) -> None:
    """Register *handler* for *pattern* on the process-wide registry."""

    get_default_registry().register(pattern, handler)
