# SPDX-License-Identifier: AGPL-3.0-or-later
"""Catalogue of the application MIME types the previewer knows about."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

__all__ = [
    "PDF",
    "IMAGE_PREFIX",
    "DOCX",
    "OFFICE_MIME_TYPES",
    "WORD_PROCESSING",
    "normalize_mime",
    "office_family",
]

PDF = "application/pdf"
IMAGE_PREFIX = "image/"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOTX = "application/vnd.openxmlformats-officedocument.wordprocessingml.template"
DOC = "application/msword"

XLS = "application/vnd.ms-excel"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLTX = "application/vnd.openxmlformats-officedocument.spreadsheetml.template"

PPT = "application/vnd.ms-powerpoint"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

OFFICE_MIME_TYPES: Dict[str, Tuple[str, ...]] = {
    "word": (DOC, DOCX, DOTX),
    "excel": (XLS, XLSX, XLTX),
    "powerpoint": (PPT, PPTX),
}

WORD_PROCESSING: Tuple[str, ...] = OFFICE_MIME_TYPES["word"]


def normalize_mime(mime: Optional[str]) -> str:
    """Drop parameters such as ``; charset=binary`` and lower-case the value."""

    if not mime:
        return ""
    return mime.split(";", 1)[0].strip().lower()


def office_family(mime: Optional[str]) -> Optional[str]:
    """Return ``word``/``excel``/``powerpoint`` for Office MIME types."""

    value = normalize_mime(mime)
    for family, members in OFFICE_MIME_TYPES.items():
        if value in members:
            return family
    return None
