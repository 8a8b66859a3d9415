from __future__ import annotations

import math
import re

from bs4 import BeautifulSoup

PERIOD_BLANK_LINE_RE = re.compile(r"\.\n\s*\n")
PERIOD_NEWLINE_RE = re.compile(r"\.\n")
BLANK_LINE_RE = re.compile(r"\n\s*\n")
SECTION_MARKER_RE = re.compile(r"(?=(?:§|Section|SECTION)\s*\d+)", re.IGNORECASE)
SECTION_LABEL_RE = re.compile(r"(?:§|Section|SECTION)\s*(\d+[\w\-]*)", re.IGNORECASE)
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

# Legal symbols such as § (U+00A7) and © (U+00A9) are outside these ranges.
BINARY_CONTENT_RE = re.compile(r"[\x00-\x08\x0e-\x1f\x7f-\x9f\u2000-\u200f\ufeff]")
BINARY_SNIFF_CHARS = 1000

HTML_DROP_TAGS = ["script", "style", "noscript", "title"]
HTML_BLOCK_TAGS = [
    "p", "div", "li", "tr", "table", "section", "article", "blockquote", "pre",
    "h1", "h2", "h3", "h4", "h5", "h6",
]


def clean_text(text: str) -> str:
    text = normalize_newlines(text)
    text = re.sub(r"[\t\f\v]+", " ", text)
    text = re.sub(r" +", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def html_to_text(markup: str) -> str:
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(HTML_DROP_TAGS):
        tag.decompose()
    for tag in soup.find_all("br"):
        tag.replace_with("\n")
    # Inline markup stays on its line; block elements end a paragraph.
    for tag in soup.find_all(HTML_BLOCK_TAGS):
        tag.append("\n\n")
    return clean_text(soup.get_text())


def looks_binary(text: str) -> bool:
    """Return True when the leading characters contain control bytes."""
    return bool(BINARY_CONTENT_RE.search(text[:BINARY_SNIFF_CHARS]))


def split_sentences(text: str) -> list[str]:
    return [s for s in SENTENCE_SPLIT_RE.split(text) if s]


def extract_section_label(text: str) -> str | None:
    match = SECTION_LABEL_RE.search(text)
    return match.group(1) if match else None


def estimate_tokens(text: str) -> int:
    # Roughly four characters per token for OpenAI models.
    return math.ceil(len(text) / 4)
