"""Reusable wrapper for calling the active plant identifier.

This module holds the process-wide identifier and adds timeout management,
error translation and logging around a single identification call.

Usage:
    from app.identify.wrapper import identify_upload

    text = await identify_upload(record)
"""
import asyncio
import logging
from typing import Optional

from app.storage.schemas import UploadRecord

from .base import ImagePart, PlantIdentifier
from .errors import AnalysisFailure

logger = logging.getLogger(__name__)

# Default timeout for identification calls (in seconds)
DEFAULT_TIMEOUT_SECONDS = 60.0

_identifier: Optional[PlantIdentifier] = None


def get_identifier() -> Optional[PlantIdentifier]:
    return _identifier


def set_identifier(identifier: Optional[PlantIdentifier]) -> None:
    global _identifier
    _identifier = identifier


async def identify_upload(
    record: UploadRecord,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Identify the plant in a staged upload.

    The blocking SDK call runs in a worker thread. On timeout the request is
    answered straight away; the thread itself is left to finish in the
    background.

    Args:
        record: The staged upload to analyse.
        timeout_seconds: Upper bound on the model call.

    Returns:
        str: The identification text.

    Raises:
        AnalysisFailure: If no identifier is configured, the call fails,
            times out, or returns nothing usable. Single attempt, no retry.
    """
    identifier = get_identifier()
    if identifier is None:
        logger.warning("Identification requested but no identifier is configured")
        raise AnalysisFailure("No plant identifier configured")

    name = type(identifier).__name__
    logger.info(f"Identifying {record.filename} ({record.size_bytes} bytes) with {name}")

    try:
        image = await asyncio.to_thread(ImagePart.from_file, record.path, record.mime_type)
        text = await asyncio.wait_for(
            asyncio.to_thread(identifier.identify, image),
            timeout=timeout_seconds,
        )

    except AnalysisFailure as e:
        logger.error(f"{name} returned no usable result for {record.filename}: {e.message}")
        raise

    except asyncio.TimeoutError:
        logger.error(f"{name} timed out after {timeout_seconds}s for {record.filename}")
        raise AnalysisFailure(f"Timed out after {timeout_seconds}s")

    except Exception as e:
        # Catch-all for provider errors (API errors, network issues, unreadable file)
        logger.error(f"{name} error while identifying {record.filename}: {e}")
        raise AnalysisFailure(str(e)) from e

    logger.info(f"Identified {record.filename} ({len(text)} characters)")
    return text
