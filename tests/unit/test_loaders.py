from __future__ import annotations

import sys
import types
from pathlib import Path

import pytest

from statute_index.data.ingestion.loaders import load_statute_text


def test_plain_text_is_cleaned(tmp_path: Path) -> None:
    path = tmp_path / "fees.txt"
    path.write_text("§ 12-1  Fees.\r\n\r\n\r\n\r\nA permit\tcosts $50.\r\n", encoding="utf-8")

    assert load_statute_text(path) == "§ 12-1 Fees.\n\nA permit costs $50."


def test_html_markup_is_reduced_to_paragraphs(tmp_path: Path) -> None:
    path = tmp_path / "code.html"
    path.write_text(
        "<html><head><style>p { color: red; }</style></head><body>"
        "<h2>Section 240-12 Trees</h2><p>No tree shall be removed &amp; no stump ground.</p>"
        "<script>track();</script></body></html>",
        encoding="utf-8",
    )

    assert load_statute_text(path) == "Section 240-12 Trees\n\nNo tree shall be removed & no stump ground."


def test_pdf_pages_are_joined(tmp_path: Path, monkeypatch) -> None:
    class _FakePage:
        def __init__(self, text: str | None) -> None:
            self._text = text

        def extract_text(self) -> str | None:
            return self._text

    class _FakeReader:
        def __init__(self, path: str) -> None:
            self.pages = [_FakePage("Chapter 12.  Fees."), _FakePage(None), _FakePage("A permit costs $50.")]

    fake_pypdf = types.ModuleType("pypdf")
    fake_pypdf.PdfReader = _FakeReader
    monkeypatch.setitem(sys.modules, "pypdf", fake_pypdf)
    path = tmp_path / "code.pdf"
    path.write_bytes(b"%PDF-1.4")

    assert load_statute_text(path) == "Chapter 12. Fees.\n\nA permit costs $50."


def test_missing_file_is_reported(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="does not exist"):
        load_statute_text(tmp_path / "absent.txt")


def test_unsupported_extension_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "code.docx"
    path.write_bytes(b"PK")

    with pytest.raises(ValueError, match="Unsupported statute file type: .docx"):
        load_statute_text(path)
