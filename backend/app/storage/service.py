"""Upload staging service.

Handles writing uploaded photos into the uploads directory and creating the
public directory tree at startup. Files are stored as
``public/uploads/plant-<epoch_millis><ext>``.
"""
import asyncio
import logging
import threading
from pathlib import Path
from typing import Iterable, List, Optional

from .schemas import UploadRecord, build_filename, now_ms

logger = logging.getLogger(__name__)

# Give up after this many consecutive name collisions.
_MAX_NAME_ATTEMPTS = 1000


class UploadFailure(Exception):
    """Raised when a photo could not be accepted or written to disk."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BootstrapFailure(Exception):
    """A public directory could not be created at startup."""
    def __init__(self, path: Path, cause: BaseException):
        self.path = path
        self.cause = cause
        self.message = f"Could not create directory {path}: {cause}"
        super().__init__(self.message)


async def bootstrap_directories(
    directories: Iterable[Path],
    placeholder: Optional[Path] = None,
) -> List[BootstrapFailure]:
    """Create *directories* concurrently if they are missing.

    Failures are logged and returned, never raised: the service should start
    even if, say, the css directory is read-only. When *placeholder* is given
    it is touched once the directories exist.
    """
    directories = [Path(d) for d in directories]
    results = await asyncio.gather(
        *(asyncio.to_thread(d.mkdir, parents=True, exist_ok=True) for d in directories),
        return_exceptions=True,
    )

    failures: List[BootstrapFailure] = []
    for directory, result in zip(directories, results):
        if isinstance(result, BaseException):
            failure = BootstrapFailure(directory, result)
            logger.error(failure.message)
            failures.append(failure)
        else:
            logger.debug("Directory ready: %s", directory)

    if placeholder is not None:
        try:
            await asyncio.to_thread(Path(placeholder).touch, exist_ok=True)
        except OSError as e:
            failure = BootstrapFailure(Path(placeholder), e)
            logger.error(failure.message)
            failures.append(failure)

    return failures


class UploadStorage:
    """Service for staging uploaded photos on disk."""

    _instance: Optional["UploadStorage"] = None

    def __init__(
        self,
        upload_dir: Path,
        max_upload_bytes: int = 20 * 1024 * 1024,
        allowed_mime_types: Optional[Iterable[str]] = None,
    ):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_upload_bytes = max_upload_bytes
        self.allowed_mime_types = frozenset(allowed_mime_types or ())
        self._last_ms = 0
        self._name_lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> "UploadStorage":
        """Get the instance configured at startup."""
        if cls._instance is None:
            raise RuntimeError("UploadStorage has not been initialised")
        return cls._instance

    @classmethod
    def set_instance(cls, storage: Optional["UploadStorage"]) -> None:
        cls._instance = storage

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    def _next_ms(self) -> int:
        """Return a millisecond stamp strictly greater than the previous one."""
        with self._name_lock:
            stamp = max(now_ms(), self._last_ms + 1)
            self._last_ms = stamp
            return stamp

    def check_size(self, size_bytes: int) -> None:
        """Raise UploadFailure if a payload of *size_bytes* exceeds the limit."""
        if size_bytes > self.max_upload_bytes:
            raise UploadFailure(
                f"Image is too large ({size_bytes} bytes). "
                f"The limit is {self.max_upload_bytes // (1024 * 1024)}MB."
            )

    def _validate(self, content: bytes, mime_type: str) -> None:
        self.check_size(len(content))
        if self.allowed_mime_types and mime_type not in self.allowed_mime_types:
            raise UploadFailure(
                f"Unsupported file type '{mime_type}'. Please upload a photo."
            )

    def save_upload(self, filename: Optional[str], content: bytes, mime_type: Optional[str]) -> UploadRecord:
        """Write an uploaded photo into the uploads directory.

        Args:
            filename: Original filename from the client; only its extension is kept
            content: File content as bytes
            mime_type: MIME type reported by the client

        Returns:
            UploadRecord describing the staged file

        Raises:
            UploadFailure: If no file was supplied, it fails validation, or the
                write fails. A partially written file is left for the sweeper.
        """
        if not filename:
            raise UploadFailure("Please select an image to analyze.")
        mime_type = mime_type or "application/octet-stream"
        self._validate(content, mime_type)

        ext = Path(filename).suffix.lower()

        for _ in range(_MAX_NAME_ATTEMPTS):
            created_at_ms = self._next_ms()
            stored_filename = build_filename(created_at_ms, ext)
            file_path = self.upload_dir / stored_filename
            try:
                # "xb" never clobbers a file another process already wrote
                with file_path.open("xb") as fh:
                    fh.write(content)
            except FileExistsError:
                continue
            except OSError as e:
                logger.error(f"Failed to write upload {file_path}: {e}")
                raise UploadFailure("Error uploading file. Please try again.") from e
            break
        else:
            raise UploadFailure("Error uploading file. Please try again.")

        logger.info(f"Saved upload: {file_path} ({len(content)} bytes, {mime_type})")

        return UploadRecord(
            filename=stored_filename,
            path=str(file_path),
            mime_type=mime_type,
            size_bytes=len(content),
            created_at_ms=created_at_ms,
        )

    def resolve(self, filename: str) -> Optional[Path]:
        """Return the on-disk path for a stored filename, or None.

        Names that would escape the uploads directory resolve to None.
        """
        candidate = (self.upload_dir / filename).resolve()
        if candidate.parent != self.upload_dir or not candidate.is_file():
            return None
        return candidate
