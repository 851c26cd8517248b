"""File upload endpoint: extract question text from .txt and .docx files."""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel

from response_agent.files.extraction import UnsupportedFileTypeError, extract_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


class ExtractResponse(BaseModel):
    """Extracted text for one uploaded file."""

    filename: str
    text: str


@router.post("/extract", response_model=ExtractResponse)
async def extract(file: UploadFile = File(...)) -> ExtractResponse:  # noqa: B008
    """Return the text of an uploaded .txt or .docx file."""
    filename = file.filename or ""
    data = await file.read()

    try:
        text = extract_text(data, filename)
    except UnsupportedFileTypeError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(
            status_code=422,
            detail=f"Could not read {filename}: {exc}",
        ) from exc

    logger.info("Extracted %d characters from %s", len(text), filename)
    return ExtractResponse(filename=filename, text=text)
