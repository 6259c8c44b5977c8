"""Lightweight data structures shared by the pipeline and sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator

JPEG_CONTENT_TYPE = "image/jpg"


@dataclass(frozen=True, slots=True)
class PreviewOutput:
    """Rendered preview: a content type plus the encoded payload."""

    content_type: str
    payload: bytes

    @property
    def is_complete(self) -> bool:
        return bool(self.content_type) and bool(self.payload)

    def iter_chunks(self, chunk_size: int = 65536) -> Iterator[bytes]:
        """Yield the payload in slices of at most *chunk_size* bytes."""

        size = max(1, chunk_size)
        view = memoryview(self.payload)
        for start in range(0, len(view), size):
            yield bytes(view[start : start + size])

    def to_dict(self) -> Dict[str, Any]:
        return {"content_type": self.content_type, "size": len(self.payload)}
