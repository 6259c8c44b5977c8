# SPDX-License-Identifier: AGPL-3.0-or-later
"""Path-addressed file abstraction used as preview input."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from . import mime_types
from .sniff import sniff_mime

__all__ = ["FileStats", "InputFile"]

_SIZE_UNITS = ("B", "kB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


@dataclass(frozen=True)
class FileStats:
    """Size and last-action timestamps of a file or link."""

    size: int
    atime: float
    mtime: float
    ctime: float

    @classmethod
    def from_path(cls, path: Path) -> "FileStats":
        stat = os.lstat(path)
        return cls(size=stat.st_size, atime=stat.st_atime, mtime=stat.st_mtime, ctime=stat.st_ctime)


def _as_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class InputFile:
    """A single source file identified by its path.

    Metadata is captured when the file exists at construction time and refreshed
    after :meth:`write`. The MIME type is sniffed from the content on every
    access so that rewritten files are never reported with a stale type.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._stats: Optional[FileStats] = None
        if self.path.exists():
            self._stats = FileStats.from_path(self.path)

    def __repr__(self) -> str:
        return f"InputFile({str(self.path)!r})"

    # ------------------------------------------------------------------ content
    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> bytes:
        return self.path.read_bytes()

    def write(self, data: bytes) -> int:
        """Replace the file content with *data* and return the bytes written."""

        written = self.path.write_bytes(data)
        self._stats = FileStats.from_path(self.path)
        return written

    # ----------------------------------------------------------------- metadata
    @property
    def stats(self) -> FileStats:
        if self._stats is None:
            if not self.path.exists():
                raise FileNotFoundError(f"File not found: {self.path}")
            self._stats = FileStats.from_path(self.path)
        return self._stats

    @property
    def size(self) -> int:
        return self.stats.size

    def human_size(self, places: int = 2) -> str:
        """Return the size as a human readable string such as ``1.50kB``."""

        size = self.size
        factor = min(int(math.floor((len(str(size)) - 1) / 3)), len(_SIZE_UNITS) - 1)
        return f"{size / math.pow(1024, factor):.{places}f}{_SIZE_UNITS[factor]}"

    @property
    def accessed_at(self) -> datetime:
        return _as_datetime(self.stats.atime)

    @property
    def modified_at(self) -> datetime:
        return _as_datetime(self.stats.mtime)

    @property
    def changed_at(self) -> datetime:
        """Time of the last inode/metadata change."""

        return _as_datetime(self.stats.ctime)

    def is_file(self) -> bool:
        return self.path.is_file()

    def is_link(self) -> bool:
        return self.path.is_symlink()

    # --------------------------------------------------------------------- mime
    @property
    def mime(self) -> str:
        return sniff_mime(self.path)

    def is_(self, mimes: str | Iterable[str]) -> bool:
        """Return ``True`` if the sniffed MIME equals any of *mimes*."""

        if isinstance(mimes, str):
            mimes = (mimes,)
        current = mime_types.normalize_mime(self.mime)
        return any(current == mime_types.normalize_mime(mime) for mime in mimes)

    def is_pdf(self) -> bool:
        return self.is_(mime_types.PDF)

    def is_image(self) -> bool:
        return self.mime.startswith(mime_types.IMAGE_PREFIX)
