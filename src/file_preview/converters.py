# SPDX-License-Identifier: AGPL-3.0-or-later
"""Word-processing document to PDF converters."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import docx
import fitz  # PyMuPDF
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from .errors import ConversionBackendError
from .settings import ConverterSettings

__all__ = [
    "DocumentConverter",
    "DocxRenderer",
    "LibreOfficeConverter",
    "create_converter",
    "find_soffice",
]

logger = logging.getLogger(__name__)


class DocumentConverter(ABC):
    """Writes a PDF rendition of a word-processing document."""

    name = "converter"

    def __init__(self, settings: Optional[ConverterSettings] = None) -> None:
        self.settings = settings or ConverterSettings()

    @abstractmethod
    def convert(self, source: str | Path, destination: str | Path) -> None:
        """Render *source* into a PDF written at *destination*."""


def find_soffice(explicit: Optional[str] = None) -> Optional[str]:
    """Locate the LibreOffice binary, preferring an explicit path."""

    if explicit:
        return explicit if Path(explicit).is_file() else None
    return shutil.which("soffice") or shutil.which("libreoffice")


class LibreOfficeConverter(DocumentConverter):
    """Delegates rendering to ``soffice --headless --convert-to pdf``."""

    name = "libreoffice"

    def __init__(self, settings: Optional[ConverterSettings] = None) -> None:
        super().__init__(settings)
        self.binary = find_soffice(self.settings.soffice_path)

    @property
    def available(self) -> bool:
        return self.binary is not None

    def convert(self, source: str | Path, destination: str | Path) -> None:
        if not self.binary:
            raise ConversionBackendError(self.name, "LibreOffice (soffice) is not installed")
        src = Path(source)
        dest = Path(destination)
        with tempfile.TemporaryDirectory(prefix="file_preview_lo_") as workdir:
            work = Path(workdir)
            # a private profile keeps parallel soffice processes from locking each other
            cmd = [
                self.binary,
                f"-env:UserInstallation={(work / 'profile').as_uri()}",
                "--headless",
                "--convert-to",
                "pdf",
                "--outdir",
                str(work),
                str(src),
            ]
            logger.info("Converting %s to PDF with LibreOffice", src)
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.settings.timeout,
                    stdin=subprocess.DEVNULL,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise ConversionBackendError(
                    self.name, f"timed out after {self.settings.timeout:.0f}s converting {src.name}"
                ) from exc
            except OSError as exc:
                raise ConversionBackendError(self.name, f"cannot run {self.binary}: {exc}") from exc
            produced = work / f"{src.stem}.pdf"
            if result.returncode != 0 or not produced.exists():
                detail = (result.stderr or result.stdout or "").strip()
                raise ConversionBackendError(
                    self.name,
                    f"did not produce a PDF for {src.name} (exit {result.returncode}): {detail}",
                )
            shutil.move(str(produced), str(dest))


class DocxRenderer(DocumentConverter):
    """Pure-Python renderer: paragraphs and tables laid out as plain text.

    Only OpenXML documents can be read; legacy ``.doc`` files need LibreOffice.
    """

    name = "docx"

    _BODY_FONT = "helv"
    _HEADING_FONT = "hebo"
    _LINE_SPACING = 1.4

    def _iter_lines(self, document: "docx.document.Document") -> Iterator[Tuple[str, bool]]:
        # body children in source order so tables stay where the author put them
        for child in document.element.body.iterchildren():
            if child.tag == qn("w:p"):
                paragraph = Paragraph(child, document)
                style = paragraph.style.name.lower() if paragraph.style is not None and paragraph.style.name else ""
                is_heading = style.startswith("heading") or style == "title"
                yield paragraph.text.strip(), is_heading
            elif child.tag == qn("w:tbl"):
                for row in Table(child, document).rows:
                    yield " | ".join(cell.text.strip() for cell in row.cells), False

    def _wrap(self, text: str, fontname: str, fontsize: float, width: float) -> List[str]:
        if not text:
            return [""]
        lines: List[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if current and fitz.get_text_length(candidate, fontname=fontname, fontsize=fontsize) > width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
        return lines

    def _layout(self, pdf: "fitz.Document", document: "docx.document.Document") -> None:
        cfg = self.settings
        usable_width = cfg.page_width - 2 * cfg.margin
        bottom = cfg.page_height - cfg.margin
        page = pdf.new_page(width=cfg.page_width, height=cfg.page_height)
        y = cfg.margin
        for text, is_heading in self._iter_lines(document):
            fontname = self._HEADING_FONT if is_heading else self._BODY_FONT
            fontsize = cfg.font_size * (1.5 if is_heading else 1.0)
            line_height = fontsize * self._LINE_SPACING
            for line in self._wrap(text, fontname, fontsize, usable_width):
                if y + line_height > bottom:
                    page = pdf.new_page(width=cfg.page_width, height=cfg.page_height)
                    y = cfg.margin
                y += line_height
                if line:
                    page.insert_text((cfg.margin, y), line, fontname=fontname, fontsize=fontsize)

    def convert(self, source: str | Path, destination: str | Path) -> None:
        src = Path(source)
        try:
            document = docx.Document(str(src))
        except Exception as exc:
            raise ConversionBackendError(
                self.name, f"unsupported document dialect for {src.name}: {type(exc).__name__}"
            ) from exc

        pdf = fitz.open()
        try:
            self._layout(pdf, document)
            page_count = pdf.page_count
            pdf.save(str(destination))
        except Exception as exc:
            raise ConversionBackendError(
                self.name, f"cannot render {src.name} to PDF: {type(exc).__name__}: {exc}"
            ) from exc
        finally:
            pdf.close()
        logger.debug("Rendered %s into %d PDF page(s)", src, page_count)


def create_converter(settings: Optional[ConverterSettings] = None) -> DocumentConverter:
    """Build the converter selected by ``settings.backend``."""

    settings = settings or ConverterSettings()
    if settings.backend == "docx":
        return DocxRenderer(settings)
    office = LibreOfficeConverter(settings)
    if settings.backend == "libreoffice" or office.available:
        logger.info("Using LibreOffice converter (%s)", office.binary or "not installed")
        return office
    logger.info("LibreOffice not found; falling back to the built-in DOCX renderer")
    return DocxRenderer(settings)
