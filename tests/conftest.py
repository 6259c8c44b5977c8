# SPDX-License-Identifier: AGPL-3.0-or-later
from __future__ import annotations

import os
import zipfile
from pathlib import Path
from typing import Callable, Sequence, Tuple

import pytest
from docx import Document as DocxDocument
from PIL import Image
from pypdf import PdfWriter

from file_preview.registry import reset_default_registry
from file_preview.settings import reset_settings_cache

_CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
<Default Extension="xml" ContentType="application/xml"/>
<Override PartName="/{part}" ContentType="application/vnd.openxmlformats-officedocument.{kind}+xml"/>
</Types>
"""


@pytest.fixture(autouse=True)
def _isolated_state(monkeypatch: pytest.MonkeyPatch):
    for key in [key for key in os.environ if key.startswith("FILE_PREVIEW_")]:
        monkeypatch.delenv(key, raising=False)
    # never shell out to a locally installed LibreOffice during tests
    monkeypatch.setenv("FILE_PREVIEW_CONVERTER__BACKEND", "docx")
    reset_default_registry()
    reset_settings_cache()
    yield
    reset_default_registry()
    reset_settings_cache()


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    def _make(
        name: str = "sample.png",
        *,
        size: Tuple[int, int] = (64, 48),
        mode: str = "RGB",
        color: object = "red",
        fmt: str | None = None,
    ) -> Path:
        path = tmp_path / name
        Image.new(mode, size, color=color).save(str(path), format=fmt)
        return path

    return _make


@pytest.fixture
def make_pdf(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str = "sample.pdf", pages: Sequence[Tuple[float, float]] = ((72, 72),)) -> Path:
        writer = PdfWriter()
        for width, height in pages:
            writer.add_blank_page(width=width, height=height)
        path = tmp_path / name
        with path.open("wb") as handle:
            writer.write(handle)
        return path

    return _make


@pytest.fixture
def make_docx(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str = "sample.docx", paragraphs: Sequence[str] = ("Body text",)) -> Path:
        doc = DocxDocument()
        doc.add_heading("Example Document", level=1)
        for text in paragraphs:
            doc.add_paragraph(text)
        path = tmp_path / name
        doc.save(str(path))
        return path

    return _make


@pytest.fixture
def make_openxml(tmp_path: Path) -> Callable[[str, str, str], Path]:
    """Write a minimal OpenXML container declaring ``kind`` for ``part``."""

    def _make(name: str, part: str, kind: str) -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(str(path), "w") as archive:
            archive.writestr("[Content_Types].xml", _CONTENT_TYPES.format(part=part, kind=kind))
            archive.writestr(part, "<root/>")
        return path

    return _make
