"""
Text Extraction Service

Extracts plain text from uploaded files (TXT, Markdown, PDF, DOCX, HTML).
Binary formats are cleaned of control characters and whitespace noise while
keeping line breaks, so paragraph boundaries survive into chunking.
"""

import io
import logging
import re

import docx
import fitz  # PyMuPDF
from bs4 import BeautifulSoup

from src.core.exceptions import ExtractionFailedError, UnsupportedFormatError

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HORIZONTAL_SPACE = re.compile(r"[^\S\n]+")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")

MIME_TYPES: dict[str, str] = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".html": "text/html",
    ".htm": "text/html",
}


def clean_extracted_text(text: str) -> str:
    """Normalize extracted text.

    Removes control characters, collapses runs of spaces/tabs, trims every
    line and caps blank-line runs at one empty line.

    Args:
        text: Raw extracted text.

    Returns:
        Cleaned text (may be empty).
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def normalize_extension(file_name_or_ext: str) -> str:
    """Return the lower-cased extension with its leading dot ("" if none)."""
    value = file_name_or_ext.strip().lower()
    if "." not in value:
        return ""
    return "." + value.rsplit(".", 1)[1]


class DocumentTextExtractor:
    """Extracts text from file bytes by extension.

    Raises UnsupportedFormatError for unknown extensions and
    ExtractionFailedError for corrupt, empty or image-only files.
    """

    def __init__(self) -> None:
        self._handlers = {
            ".txt": self._extract_plain,
            ".md": self._extract_plain,
            ".pdf": self._extract_pdf,
            ".docx": self._extract_docx,
            ".html": self._extract_html,
            ".htm": self._extract_html,
        }

    @property
    def supported_extensions(self) -> list[str]:
        """Extensions this extractor can handle."""
        return sorted(self._handlers)

    def extract(self, file_bytes: bytes, file_extension: str) -> str:
        """Extract plain text from file content.

        Args:
            file_bytes: Raw file content.
            file_extension: Extension (".pdf") or file name ("ley.pdf").

        Returns:
            Non-empty extracted text.

        Raises:
            UnsupportedFormatError: If the extension is not supported.
            ExtractionFailedError: If no usable text could be extracted.
        """
        extension = normalize_extension(file_extension)
        handler = self._handlers.get(extension)
        if handler is None:
            raise UnsupportedFormatError(extension)

        if not file_bytes:
            raise ExtractionFailedError("File is empty", {"extension": extension})

        text = handler(file_bytes)
        if not text.strip():
            raise ExtractionFailedError(
                "No readable text found (the file may be scanned or image-only)",
                {"extension": extension, "bytes": len(file_bytes)},
            )

        logger.info("Extracted %d characters from %s content", len(text), extension)
        return text

    @staticmethod
    def _extract_plain(file_bytes: bytes) -> str:
        try:
            return file_bytes.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.debug("Content is not UTF-8, decoding as latin-1")
            return file_bytes.decode("latin-1")

    @staticmethod
    def _extract_pdf(file_bytes: bytes) -> str:
        try:
            pdf = fitz.open(stream=file_bytes, filetype="pdf")
        except Exception as exc:
            raise ExtractionFailedError(f"Could not open PDF: {exc}") from exc

        pages: list[str] = []
        try:
            for page_num in range(len(pdf)):
                try:
                    page_text = pdf[page_num].get_text("text")
                except Exception:
                    logger.warning("Skipping unreadable PDF page %d", page_num + 1, exc_info=True)
                    continue
                if page_text.strip():
                    pages.append(page_text)
        finally:
            pdf.close()

        logger.debug("PDF pages with text: %d", len(pages))
        return clean_extracted_text("\n\n".join(pages))

    @staticmethod
    def _extract_docx(file_bytes: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(file_bytes))
        except Exception as exc:
            raise ExtractionFailedError(f"Could not open DOCX: {exc}") from exc

        blocks = [para.text for para in document.paragraphs if para.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))

        return clean_extracted_text("\n\n".join(blocks))

    @staticmethod
    def _extract_html(file_bytes: bytes) -> str:
        soup = BeautifulSoup(file_bytes, "lxml")
        for tag in soup(["script", "style", "nav", "header", "footer"]):
            tag.decompose()
        return clean_extracted_text(soup.get_text(separator="\n"))
