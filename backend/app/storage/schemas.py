"""Pydantic schemas for staged uploads and retention sweeps.

- UploadRecord: one photo staged in the uploads directory
- SweepReport: outcome of a single retention sweep

Uploads are stored as ``plant-<epoch_millis><ext>``. The creation instant is
kept on the record itself so nothing has to parse it back out of the name.
"""
import time
from typing import List

from pydantic import BaseModel, Field

FILENAME_PREFIX = "plant"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def build_filename(created_at_ms: int, extension: str) -> str:
    """Build the stored name for an upload created at *created_at_ms*.

    Examples:
        >>> build_filename(1700000000000, ".jpg")
        'plant-1700000000000.jpg'
    """
    return f"{FILENAME_PREFIX}-{created_at_ms}{extension}"


class UploadRecord(BaseModel):
    """A photo staged on disk for analysis.

    The record is not persisted; it lives for the duration of one request.
    ``path`` is absolute so the analysis step can read it regardless of the
    process working directory.
    """
    filename: str = Field(..., description="Stored filename (plant-<millis><ext>)")
    path: str = Field(..., description="Absolute path on disk")
    mime_type: str = Field(..., description="MIME type reported by the client")
    size_bytes: int = Field(..., description="Payload size in bytes")
    created_at_ms: int = Field(..., description="Creation instant, epoch milliseconds")

    @property
    def url(self) -> str:
        """Link used by the rendered page."""
        return f"/uploads/{self.filename}"


class SweepReport(BaseModel):
    """Result of one pass over the uploads directory."""
    scanned: int = 0
    deleted: List[str] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
