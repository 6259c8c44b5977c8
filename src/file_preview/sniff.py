"""Content-based MIME detection used by :class:`~file_preview.files.InputFile`."""

from __future__ import annotations

import zipfile
from pathlib import Path

import magic

from . import mime_types

__all__ = ["sniff_mime", "sniff_bytes"]

_HEAD_BYTES = 8192
_OLE_SCAN_BYTES = 1 << 20

_ZIP_SIGNATURE = b"PK\x03\x04"
_OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# libmagic spellings that differ between releases
_ALIASES = {
    "image/x-ms-bmp": "image/bmp",
    "inode/x-empty": "application/x-empty",
    "application/x-zip-compressed": "application/zip",
}

# libmagic answers for zip containers it could not pin down
_GENERIC_ZIP = {"application/zip", "application/octet-stream", "application/x-zip"}

_OPENXML_PREFIX = "application/vnd.openxmlformats-officedocument."

# [Content_Types].xml markers, checked in order (templates before documents)
_OPENXML_MARKERS = (
    ("wordprocessingml.template.main+xml", mime_types.DOTX),
    ("wordprocessingml.document.main+xml", mime_types.DOCX),
    ("spreadsheetml.template.main+xml", mime_types.XLTX),
    ("spreadsheetml.sheet.main+xml", mime_types.XLSX),
    ("presentationml.presentation.main+xml", mime_types.PPTX),
)

_OPENXML_FOLDERS = (
    ("word/", mime_types.DOCX),
    ("xl/", mime_types.XLSX),
    ("ppt/", mime_types.PPTX),
)

_OLE_STREAMS = (
    ("WordDocument", mime_types.DOC),
    ("Workbook", mime_types.XLS),
    ("Book", mime_types.XLS),
    ("PowerPoint Document", mime_types.PPT),
)


def _normalize(mime: str | None) -> str:
    value = mime_types.normalize_mime(mime) or "application/octet-stream"
    return _ALIASES.get(value, value)


def _sniff_zip(path: Path, fallback: str) -> str:
    try:
        with zipfile.ZipFile(str(path)) as archive:
            names = archive.namelist()
            if "mimetype" in names:
                declared = archive.read("mimetype").decode("ascii", errors="ignore").strip()
                if declared:
                    return declared
            if "[Content_Types].xml" in names:
                content_types = archive.read("[Content_Types].xml").decode("utf-8", errors="ignore")
                for marker, mime in _OPENXML_MARKERS:
                    if marker in content_types:
                        return mime
            for folder, mime in _OPENXML_FOLDERS:
                if any(name.startswith(folder) for name in names):
                    return mime
    except (zipfile.BadZipFile, KeyError, OSError):
        pass
    return fallback


def _sniff_ole(path: Path, fallback: str) -> str:
    with path.open("rb") as handle:
        blob = handle.read(_OLE_SCAN_BYTES)
    for stream, mime in _OLE_STREAMS:
        if stream.encode("utf-16-le") + b"\x00\x00" in blob:
            return mime
    return fallback


def sniff_bytes(head: bytes) -> str:
    """Return the MIME type libmagic reports for the buffer *head*."""

    return _normalize(magic.from_buffer(head, mime=True))


def sniff_mime(path: str | Path) -> str:
    """Detect the MIME type of *path* by inspecting its content.

    libmagic does the detection. Office containers get a second look: libmagic
    guesses OpenXML types from member names, while ``[Content_Types].xml`` is
    authoritative (templates included), and legacy OLE files are told apart by
    their stream names.
    """

    path = Path(path)
    with path.open("rb") as handle:
        head = handle.read(_HEAD_BYTES)
    mime = _normalize(magic.from_file(str(path), mime=True))
    if head.startswith(_ZIP_SIGNATURE) and (mime in _GENERIC_ZIP or mime.startswith(_OPENXML_PREFIX)):
        return _sniff_zip(path, mime if mime.startswith(_OPENXML_PREFIX) else "application/zip")
    if head.startswith(_OLE_SIGNATURE) and mime_types.office_family(mime) is None:
        return _sniff_ole(path, mime)
    return mime
