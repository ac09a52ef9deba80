"""FastAPI router serving staged uploads and stylesheets."""
import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from app.config import get_config

from .service import UploadStorage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


@router.get("/uploads/{filename}")
async def get_upload(filename: str):
    """Serve a staged upload so the result page can show it.

    Raises:
        HTTPException 404: If the file is gone (e.g. swept) or the name is invalid
    """
    file_path = UploadStorage.get_instance().resolve(filename)
    if file_path is None:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path=file_path)


@router.get("/css/{filename}")
async def get_stylesheet(filename: str):
    """Serve a stylesheet from the public css directory."""
    css_dir = get_config().storage.css_path.resolve()
    file_path = (css_dir / filename).resolve()
    if file_path.parent != css_dir or not file_path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path=file_path, media_type="text/css")
