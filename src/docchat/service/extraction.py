"""Format detection and plain-text extraction for ingested documents.

Supported formats:
- PDF via PyMuPDF
- Plain text / Markdown (passed through as UTF-8)
- HTML via BeautifulSoup, whitespace collapsed
- Word (.docx) via python-docx
- Legacy Word (.doc) via headless LibreOffice

The format is resolved once with :func:`detect_format` and dispatched through
:func:`extract_text`, which never raises: it returns :class:`Extracted`,
:class:`Unsupported` or :class:`ExtractionFailed`.
"""

import io
import logging
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import fitz  # PyMuPDF
from bs4 import BeautifulSoup
from docx import Document as DocxDocument

logger = logging.getLogger(__name__)

LIBREOFFICE_TIMEOUT_SECONDS = 120


class DocumentFormat(str, Enum):
    """Closed set of document formats understood by the extractor."""

    PDF = "pdf"
    PLAIN_TEXT = "text"
    HTML = "html"
    LEGACY_WORD = "doc"
    MODERN_WORD = "docx"
    UNSUPPORTED = "unsupported"


# Extension and content-type tables, checked in this order.
EXTENSION_FORMATS = {
    ".pdf": DocumentFormat.PDF,
    ".txt": DocumentFormat.PLAIN_TEXT,
    ".md": DocumentFormat.PLAIN_TEXT,
    ".markdown": DocumentFormat.PLAIN_TEXT,
    ".html": DocumentFormat.HTML,
    ".htm": DocumentFormat.HTML,
    ".doc": DocumentFormat.LEGACY_WORD,
    ".docx": DocumentFormat.MODERN_WORD,
}

CONTENT_TYPE_FORMATS = {
    "application/pdf": DocumentFormat.PDF,
    "text/plain": DocumentFormat.PLAIN_TEXT,
    "text/markdown": DocumentFormat.PLAIN_TEXT,
    "text/html": DocumentFormat.HTML,
    "application/msword": DocumentFormat.LEGACY_WORD,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (
        DocumentFormat.MODERN_WORD
    ),
}


@dataclass(frozen=True)
class Extracted:
    """Successful extraction."""

    text: str


@dataclass(frozen=True)
class Unsupported:
    """The format is not indexable. Callers treat this as a no-op."""

    reason: str


@dataclass(frozen=True)
class ExtractionFailed:
    """Extraction of a supported format failed."""

    reason: str


ExtractionResult = Extracted | Unsupported | ExtractionFailed


def detect_format(filename: str | None, content_type: str | None = None) -> DocumentFormat:
    """Resolve the document format from a file name and optional content type.

    The file extension is checked first, the content type second; the first
    match wins.

    Args:
        filename: Original or stored file name
        content_type: Declared MIME type, parameters such as charset are ignored

    Returns:
        DocumentFormat: The detected format, or UNSUPPORTED
    """
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in EXTENSION_FORMATS:
            return EXTENSION_FORMATS[suffix]

    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime in CONTENT_TYPE_FORMATS:
            return CONTENT_TYPE_FORMATS[mime]

    return DocumentFormat.UNSUPPORTED


def extract_text_from_pdf(data: bytes) -> str:
    """Extract visible text from PDF bytes in page order.

    Args:
        data: Raw PDF bytes

    Returns:
        str: Concatenated text from all pages
    """
    doc = fitz.open(stream=data, filetype="pdf")
    if doc.page_count == 0:
        doc.close()
        raise ValueError("PDF has no pages")
    text = ""

    for page in doc:
        text += page.get_text()

    doc.close()
    return text


def extract_text_from_html(data: bytes) -> str:
    """Strip markup from HTML bytes and collapse whitespace to single spaces."""
    soup = BeautifulSoup(data.decode("utf-8", errors="replace"), "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def extract_text_from_docx(data: bytes) -> str:
    """Extract paragraph run text from a .docx file, ignoring tables and images."""
    document = DocxDocument(io.BytesIO(data))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def extract_text_from_doc(data: bytes) -> str:
    """Extract text from a legacy binary .doc file via headless LibreOffice.

    Raises:
        RuntimeError: If LibreOffice is not installed or produced no output
    """
    lo_cmd = shutil.which("libreoffice") or shutil.which("soffice")
    if not lo_cmd:
        raise RuntimeError(
            "LibreOffice not installed. Install via: apt install libreoffice (Linux) "
            "or brew install --cask libreoffice (macOS)"
        )

    with tempfile.TemporaryDirectory() as workdir:
        source = Path(workdir) / "document.doc"
        source.write_bytes(data)
        subprocess.run(
            [lo_cmd, "--headless", "--convert-to", "txt:Text", "--outdir", workdir, str(source)],
            capture_output=True,
            timeout=LIBREOFFICE_TIMEOUT_SECONDS,
            check=False,
        )
        output = Path(workdir) / "document.txt"
        if not output.exists():
            raise RuntimeError("LibreOffice conversion produced no output")
        return output.read_text(encoding="utf-8", errors="replace")


def extract_text_from_plain(data: bytes) -> str:
    """Decode plain text or Markdown verbatim as UTF-8."""
    return data.decode("utf-8")


_EXTRACTORS = {
    DocumentFormat.PDF: extract_text_from_pdf,
    DocumentFormat.PLAIN_TEXT: extract_text_from_plain,
    DocumentFormat.HTML: extract_text_from_html,
    DocumentFormat.LEGACY_WORD: extract_text_from_doc,
    DocumentFormat.MODERN_WORD: extract_text_from_docx,
}


def extract_text(data: bytes, fmt: DocumentFormat) -> ExtractionResult:
    """Convert raw document bytes of a detected format into plain text.

    Args:
        data: Raw file contents
        fmt: Format resolved by :func:`detect_format`

    Returns:
        ExtractionResult: Extracted text, Unsupported, or ExtractionFailed
    """
    extractor = _EXTRACTORS.get(fmt)
    if extractor is None:
        return Unsupported(reason=f"Unsupported format: {fmt.value}")

    try:
        return Extracted(text=extractor(data))
    except Exception as e:
        logger.debug(f"Extraction error for {fmt.value}", exc_info=True)
        return ExtractionFailed(reason=f"{type(e).__name__}: {e}")
