"""FastAPI router for the upload form and identification endpoint.

Every outcome of ``POST /upload`` renders the same page with HTTP 200:
either the identification text and a link to the staged photo, or a
human-readable error message.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from markdown_it import MarkdownIt
from markupsafe import Markup
from starlette.datastructures import UploadFile

from app.config import get_config
from app.storage.service import UploadFailure, UploadStorage

from .errors import AnalysisFailure
from .wrapper import identify_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["identify"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

# Name of the file input in the upload form
UPLOAD_FIELD = "plantImage"

# Raw HTML in the model output is escaped, not passed through
_markdown = MarkdownIt("commonmark", {"html": False})


def render_markdown(text: str) -> Markup:
    """Convert the identification text to HTML safe to embed in the page."""
    return Markup(_markdown.render(text))


def render_index(
    request: Request,
    result: Optional[str] = None,
    image: Optional[str] = None,
    error: Optional[str] = None,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "index.html",
        {"result": result, "image": image, "error": error},
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Render the upload form with no result."""
    return render_index(request)


@router.post("/upload", response_class=HTMLResponse)
async def upload(request: Request):
    """Stage the posted photo, identify it and render the result.

    The staged file is kept on disk even if identification fails; the
    retention sweeper removes it later.
    """
    try:
        try:
            form = await request.form()
        except Exception as e:
            logger.warning(f"Could not parse upload form: {e}")
            raise UploadFailure("Error uploading file. Please try again.") from e

        file = form.get(UPLOAD_FIELD)
        if not isinstance(file, UploadFile) or not file.filename:
            raise UploadFailure("Please select an image to analyze.")

        storage = UploadStorage.get_instance()
        # Reject oversized bodies before reading them into memory
        if file.size is not None:
            storage.check_size(file.size)
        content = await file.read()
        record = await asyncio.to_thread(
            storage.save_upload, file.filename, content, file.content_type
        )

        result = await identify_upload(
            record, timeout_seconds=get_config().analysis.timeout_seconds
        )

    except UploadFailure as e:
        logger.info(f"Upload rejected: {e.message}")
        return render_index(request, error=e.message)

    except AnalysisFailure as e:
        return render_index(request, error=e.user_message)

    return render_index(request, result=render_markdown(result), image=record.url)
