# SPDX-License-Identifier: AGPL-3.0-or-later
"""Preview sessions: one bound file, at most one rendered preview."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Optional, Tuple

from .errors import NotReadyError
from .files import InputFile
from .models import PreviewOutput
from .pipeline import ConversionPipeline
from .registry import HandlerRegistry
from .settings import PreviewSettings

__all__ = ["PreviewSession", "from_file", "from_path"]

logger = logging.getLogger(__name__)


class PreviewSession:
    """Holds the current input file and the preview produced for it.

    Binding a new file discards any previous output. A failed :meth:`preview`
    leaves the session without output, so :meth:`stream` never exposes a
    half-built result.
    """

    def __init__(
        self,
        file: Optional[InputFile] = None,
        *,
        pipeline: Optional[ConversionPipeline] = None,
        registry: Optional[HandlerRegistry] = None,
        settings: Optional[PreviewSettings] = None,
    ) -> None:
        self.pipeline = pipeline or ConversionPipeline(registry, settings=settings)
        self.file = file
        self._output: Optional[PreviewOutput] = None

    @classmethod
    def from_path(cls, path: str | Path, **kwargs: Any) -> "PreviewSession":
        return cls(**kwargs).bind_path(path)

    @classmethod
    def from_file(cls, file: InputFile, **kwargs: Any) -> "PreviewSession":
        return cls(**kwargs).bind_file(file)

    # ------------------------------------------------------------------ binding
    def bind_path(self, path: str | Path) -> "PreviewSession":
        return self.bind_file(InputFile(path))

    def bind_file(self, file: InputFile) -> "PreviewSession":
        self.file = file
        self._output = None
        return self

    # --------------------------------------------------------------- generation
    def preview(self) -> "PreviewSession":
        """Run the conversion pipeline for the bound file and keep the result."""

        self._output = None
        output = self.pipeline.generate(self.file)
        if not isinstance(output, PreviewOutput):
            raise TypeError(
                f"Preview handlers must return PreviewOutput, got {type(output).__name__}"
            )
        self._output = output
        logger.debug("Preview ready for %s: %s", self.file, output.to_dict())
        return self

    @property
    def output(self) -> Optional[PreviewOutput]:
        return self._output

    @property
    def is_ready(self) -> bool:
        return self._output is not None and self._output.is_complete

    # ---------------------------------------------------------------- streaming
    def stream(self) -> Tuple[str, Iterator[bytes]]:
        """Return the content type and an iterator over the payload bytes.

        The stored payload is not consumed; every call yields the same data.
        """

        output = self._output
        if output is None or not output.is_complete:
            raise NotReadyError()
        chunk_size = self.pipeline.settings.raster.stream_chunk_size
        return output.content_type, output.iter_chunks(chunk_size)

    def write_to(self, destination: str | Path | BinaryIO) -> str:
        """Write the payload to a path, ``"-"`` (stdout) or a binary handle.

        Returns the content type so callers can emit it as a header.
        """

        content_type, chunks = self.stream()
        handle: BinaryIO
        must_close = False
        if isinstance(destination, (str, Path)):
            if str(destination) == "-":
                handle = sys.stdout.buffer
            else:
                path = Path(destination)
                path.parent.mkdir(parents=True, exist_ok=True)
                handle = path.open("wb")
                must_close = True
        elif hasattr(destination, "write"):
            handle = destination
        else:
            raise TypeError("destination must be a path, '-', or a binary IO handle")

        try:
            for chunk in chunks:
                handle.write(chunk)
            handle.flush()
        finally:
            if must_close:
                handle.close()
        return content_type


def from_path(path: str | Path, **kwargs: Any) -> PreviewSession:
    """Create a fresh session bound to *path*."""

    return PreviewSession.from_path(path, **kwargs)


def from_file(file: InputFile, **kwargs: Any) -> PreviewSession:
    """Create a fresh session bound to *file*."""

    return PreviewSession.from_file(file, **kwargs)
