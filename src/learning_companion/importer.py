"""Text extraction for uploaded documents."""
import io
from pathlib import Path

from learning_companion.errors import ExtractionError

SUPPORTED_TYPES = ("pdf", "txt", "md", "docx", "html", "htm")


def _read_pdf(data: bytes) -> str:
    from PyPDF2 import PdfReader
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _read_docx(data: bytes) -> str:
    from docx import Document
    doc = Document(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs)


def _read_html(data: bytes) -> str:
    from bs4 import BeautifulSoup
    return BeautifulSoup(data, "html.parser").get_text()


def _read_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


READERS = {
    "pdf": _read_pdf,
    "txt": _read_text,
    "md": _read_text,
    "docx": _read_docx,
    "html": _read_html,
    "htm": _read_html,
}


def file_type_of(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def extract(data: bytes, file_type: str) -> str:
    """Extract plain text from raw file bytes of the given type."""
    reader = READERS.get(file_type.lower().lstrip("."))
    if reader is None:
        raise ExtractionError(
            f"Unsupported file type {file_type!r}. Please upload PDF, TXT, or DOCX files."
        )
    try:
        content = reader(data)
    except Exception as e:
        raise ExtractionError(f"Failed to parse document: {e}") from e
    if not content.strip():
        raise ExtractionError("Document appears to be empty")
    return content


def import_file(file_path: str) -> dict:
    """Read and extract a file from disk."""
    path = Path(file_path)
    if not path.is_file():
        raise ExtractionError(f"File not found: {file_path}")
    content = extract(path.read_bytes(), file_type_of(path.name))
    return {"filename": path.name, "content": content, "length": len(content)}
