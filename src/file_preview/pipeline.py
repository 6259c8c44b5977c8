# SPDX-License-Identifier: AGPL-3.0-or-later
"""Route selection and execution for preview generation."""

from __future__ import annotations

import atexit
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Tuple

from PIL import Image

from . import mime_types
from .classifier import ExactMatcher, MimeMatcher, PrefixMatcher
from .converters import DocumentConverter, create_converter
from .errors import NoFileError, UnimplementedRouteError, UnsupportedMimeError
from .files import InputFile
from .models import JPEG_CONTENT_TYPE, PreviewOutput
from .raster import RasterEngine
from .registry import HandlerRegistry, get_default_registry
from .settings import PreviewSettings, TempSettings, get_settings

__all__ = ["BUILTIN_ROUTES", "ConversionPipeline", "MimeRoute", "Route"]

logger = logging.getLogger(__name__)


class Route(str, Enum):
    CUSTOM = "custom"
    PDF = "pdf"
    IMAGE = "image"
    OFFICE_WORD = "office-word"


@dataclass(frozen=True)
class MimeRoute:
    matcher: MimeMatcher
    route: Route


# Checked in order after custom handlers; the PDF route must precede images.
BUILTIN_ROUTES: Tuple[MimeRoute, ...] = (
    MimeRoute(ExactMatcher(mime_types.PDF), Route.PDF),
    MimeRoute(PrefixMatcher(mime_types.IMAGE_PREFIX), Route.IMAGE),
    *(MimeRoute(ExactMatcher(mime), Route.OFFICE_WORD) for mime in mime_types.WORD_PROCESSING),
)


class ConversionPipeline:
    """Turn an :class:`InputFile` into a :class:`PreviewOutput`.

    Custom handlers win over every built-in route. Word-processing documents are
    converted to a temporary PDF which is then fed back through :meth:`generate`,
    so the whole chain is at most one hop deep.
    """

    def __init__(
        self,
        registry: Optional[HandlerRegistry] = None,
        *,
        raster: Optional[RasterEngine] = None,
        converter: Optional[DocumentConverter] = None,
        settings: Optional[PreviewSettings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else get_default_registry()
        self.raster = raster or RasterEngine(self.settings.raster)
        self._converter = converter

    @property
    def converter(self) -> DocumentConverter:
        # resolved lazily so image-only hosts never probe for LibreOffice
        if self._converter is None:
            self._converter = create_converter(self.settings.converter)
        return self._converter

    def route_for(self, mime: Optional[str]) -> Optional[Route]:
        """Return the route :meth:`generate` would take for *mime*, if any."""

        value = mime_types.normalize_mime(mime)
        if not value:
            return None
        if self.registry.resolve(value) is not None:
            return Route.CUSTOM
        return _builtin_route(value)

    def generate(self, file: Optional[InputFile]) -> PreviewOutput:
        if file is None:
            raise NoFileError()

        mime = mime_types.normalize_mime(file.mime)
        if not self.registry.is_eligible(mime):
            raise UnsupportedMimeError(mime)

        handler = self.registry.resolve(mime)
        if handler is not None:
            logger.debug("Previewing %s (%s) with custom handler %r", file.path, mime, handler)
            return handler.convert(file)

        route = _builtin_route(mime)
        logger.debug("Previewing %s (%s) via %s route", file.path, mime, route.value if route else None)
        if route is Route.PDF:
            return self._encode(self.raster.load(file.path, page_index=0))
        if route is Route.IMAGE:
            return self._encode(self.raster.load(file.path))
        if route is Route.OFFICE_WORD:
            return self._generate_office_word(file)
        raise UnimplementedRouteError(mime)

    def _encode(self, image: Image.Image) -> PreviewOutput:
        return PreviewOutput(JPEG_CONTENT_TYPE, self.raster.reencode(image, "JPEG"))

    def _generate_office_word(self, file: InputFile) -> PreviewOutput:
        with _temporary_pdf(self.settings.temp) as pdf_path:
            self.converter.convert(file.path, pdf_path)
            return self.generate(InputFile(pdf_path))


def _builtin_route(mime: str) -> Optional[Route]:
    for entry in BUILTIN_ROUTES:
        if entry.matcher.matches(mime):
            return entry.route
    return None


@contextmanager
def _temporary_pdf(settings: TempSettings) -> Iterator[Path]:
    directory = settings.resolved_directory
    directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix=settings.prefix, suffix=".pdf", dir=str(directory))
    os.close(fd)
    path = Path(name)
    logger.debug("Allocated intermediate PDF %s (disposal=%s)", path, settings.disposal)
    try:
        yield path
    finally:
        if settings.disposal == "delete":
            _remove_quietly(path)
        elif settings.disposal == "atexit":
            atexit.register(_remove_quietly, path)


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove intermediate PDF %s: %s", path, exc)
