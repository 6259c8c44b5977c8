# SPDX-License-Identifier: AGPL-3.0-or-later
"""Exceptions raised while generating and streaming previews."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "PreviewError",
    "NoFileError",
    "UnsupportedMimeError",
    "UnimplementedRouteError",
    "ConversionBackendError",
    "NotReadyError",
]


class PreviewError(RuntimeError):
    """Base class for every preview failure."""


class NoFileError(PreviewError):
    """Raised when a preview is requested without a bound file."""

    def __init__(self, message: str = "No file has been set.") -> None:
        super().__init__(message)


class UnsupportedMimeError(PreviewError):
    """Raised when a MIME type is not eligible for previews."""

    def __init__(self, mime: Optional[str]) -> None:
        self.mime = mime or ""
        super().__init__(f"Unable to generate preview for file of MIME [{self.mime}].")


class UnimplementedRouteError(PreviewError):
    """Raised when an eligible MIME type has no conversion route yet."""

    def __init__(self, mime: str) -> None:
        self.mime = mime
        super().__init__(
            f"Although it is possible to create a preview of the MIME type [{mime}], "
            "no method for handling it has been implemented yet."
        )


class ConversionBackendError(PreviewError):
    """Raised when the raster engine or document converter fails."""

    def __init__(self, backend: str, message: str) -> None:
        self.backend = backend
        super().__init__(f"{backend}: {message}")


class NotReadyError(PreviewError):
    """Raised when streaming is attempted before a successful preview."""

    def __init__(self, message: str = "Preview is not ready to stream") -> None:
        super().__init__(message)
