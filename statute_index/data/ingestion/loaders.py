from __future__ import annotations

from pathlib import Path

from .text_processing import clean_text, html_to_text

SUPPORTED_EXTENSIONS = {".txt", ".htm", ".html", ".pdf"}


def load_statute_text(path: str | Path) -> str:
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Statute file does not exist: {file_path}")

    ext = file_path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported statute file type: {ext or '<none>'}")

    if ext == ".pdf":
        return clean_text(_read_pdf(file_path))

    text = file_path.read_text(encoding="utf-8", errors="replace")
    if ext in {".htm", ".html"}:
        return html_to_text(text)
    return clean_text(text)


def _read_pdf(path: Path) -> str:
    try:
        from pypdf import PdfReader
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "PDF loading requires 'pypdf'. Install it to ingest PDF statute files."
        ) from exc

    reader = PdfReader(str(path))
    pages = [(page.extract_text() or "") for page in reader.pages]
    return "\n".join(pages)
