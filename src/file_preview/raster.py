# SPDX-License-Identifier: AGPL-3.0-or-later
"""Decode images and PDF pages and re-encode them for previews."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image

from .errors import ConversionBackendError
from .settings import RasterSettings

__all__ = ["RasterEngine"]

logger = logging.getLogger(__name__)

_ALPHA_MODES = {"RGBA", "LA", "PA"}


class RasterEngine:
    """Pillow-backed image codec with PyMuPDF for paged documents."""

    name = "raster"

    def __init__(self, settings: Optional[RasterSettings] = None) -> None:
        self.settings = settings or RasterSettings()

    def load(self, path: str | Path, page_index: Optional[int] = None) -> Image.Image:
        """Decode *path*; with *page_index* render that page of a paged document."""

        source = Path(path)
        if page_index is not None:
            return self._render_page(source, page_index)
        try:
            with Image.open(str(source)) as im:
                im.seek(0)
                im.load()
                return im.copy()
        except Exception as exc:
            raise ConversionBackendError(
                self.name, f"cannot decode {source.name}: {type(exc).__name__}: {exc}"
            ) from exc

    def _render_page(self, source: Path, page_index: int) -> Image.Image:
        zoom = self.settings.pdf_zoom
        try:
            with fitz.open(str(source)) as doc:
                if page_index < 0 or page_index >= doc.page_count:
                    raise IndexError(
                        f"page {page_index} does not exist ({doc.page_count} pages)"
                    )
                page = doc.load_page(page_index)
                pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
                image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        except Exception as exc:
            raise ConversionBackendError(
                self.name, f"cannot render page {page_index} of {source.name}: {exc}"
            ) from exc
        logger.debug("Rendered page %d of %s at %sx", page_index, source, zoom)
        return image

    def _flatten(self, image: Image.Image) -> Image.Image:
        if image.mode == "P" and "transparency" in image.info:
            image = image.convert("RGBA")
        if image.mode in _ALPHA_MODES:
            rgba = image.convert("RGBA")
            canvas = Image.new("RGB", rgba.size, self.settings.background)
            canvas.paste(rgba, mask=rgba.getchannel("A"))
            return canvas
        if image.mode != "RGB":
            return image.convert("RGB")
        return image

    def reencode(self, image: Image.Image, fmt: str = "JPEG") -> bytes:
        """Encode *image* as *fmt* and return the bytes."""

        buffer = io.BytesIO()
        target = fmt.upper()
        try:
            if target in {"JPEG", "JPG"}:
                self._flatten(image).save(
                    buffer, format="JPEG", quality=self.settings.jpeg_quality
                )
            else:
                image.save(buffer, format=target)
        except Exception as exc:
            raise ConversionBackendError(self.name, f"cannot encode {target}: {exc}") from exc
        return buffer.getvalue()
