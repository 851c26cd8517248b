"""Text extraction from uploaded question files (.txt and .docx)."""

import io
import logging
from pathlib import PurePath

from docx import Document
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".txt", ".docx"})


class UnsupportedFileTypeError(ValueError):
    """The uploaded file's extension is not one we can read."""


def extract_text(data: bytes, filename: str) -> str:
    """Return the text content of an uploaded file.

    Raises:
        UnsupportedFileTypeError: If the extension is not .txt or .docx.
    """
    extension = PurePath(filename).suffix.lower()
    try:
        if extension == ".txt":
            return _extract_plain_text(data)
        if extension == ".docx":
            return _extract_word_text(data)
        msg = f"Unsupported file type: {extension or '(none)'}"
        raise UnsupportedFileTypeError(msg)
    except Exception:
        logger.exception("File processing failed: %s", filename)
        raise


def _extract_plain_text(data: bytes) -> str:
    # utf-8-sig drops a leading BOM if present
    return data.decode("utf-8-sig")


def _extract_word_text(data: bytes) -> str:
    """Collect every non-blank paragraph in the body, table cells included."""
    document = Document(io.BytesIO(data))
    lines: list[str] = []
    for element in document.element.body.iter(qn("w:p")):
        text = Paragraph(element, document).text
        if text.strip():
            lines.append(text)
    return "".join(f"{line}\n" for line in lines)
