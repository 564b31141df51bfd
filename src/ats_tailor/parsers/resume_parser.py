"""Résumé file loading: PDF, DOCX, TXT and Markdown to clean plain text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import fitz  # pymupdf
from docx import Document

from ats_tailor.errors import InvalidInput

logger = logging.getLogger(__name__)

FILE_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".md": "text/markdown",
}

# Contact-line icons exported by Google Docs and résumé builders
ICON_PATTERN = (
    r"[\U0001f4e7\U0001f4de\U0001f4cd\U0001f4bc\U0001f4c5\U0001f393"
    r"\U0001f3e2\U0001f4dd\U0001f4c4\U0001f517\U0001f310\U0001f4f1"
    r"\u260e\u2709\u2706]\s*"
)


@dataclass
class ParsedResume:
    text: str
    file_name: str
    file_type: str


def parse_resume(file_path: str | Path) -> ParsedResume:
    """Read a résumé file and return its cleaned text with file metadata.

    Raises:
        InvalidInput: unsupported extension or no extractable text.
    """
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix not in FILE_TYPES:
        raise InvalidInput(f"Unsupported file format: {path.suffix}")

    if suffix == ".pdf":
        raw = _read_pdf(path)
    elif suffix == ".docx":
        raw = _read_docx(path)
    else:
        raw = path.read_text(encoding="utf-8")

    text = clean_text(raw)
    if not text:
        raise InvalidInput(f"No text could be extracted from {path.name}")
    logger.debug("Parsed %s: %d chars", path.name, len(text))
    return ParsedResume(text=text, file_name=path.name, file_type=FILE_TYPES[suffix])


def clean_text(text: str) -> str:
    """Normalize extracted résumé text.

    Drops BOM/zero-width characters and contact icons, turns bullet glyphs
    into "- ", squeezes runs of spaces and collapses 3+ blank lines.
    """
    text = text.lstrip("\ufeff")
    text = re.sub(r"[\u200b\u200c\u200d\u00ad\u2060\ufeff]", "", text)
    text = re.sub(ICON_PATTERN, "", text)

    text = re.sub(r"^(\s*)[●•◦◆■▪★○]\s*", r"\1- ", text, flags=re.MULTILINE)
    text = re.sub(r"^(\s*)\*\s{2,}", r"\1- ", text, flags=re.MULTILINE)

    lines = []
    for line in text.splitlines():
        stripped = line.lstrip()
        indent = " " * len(line[: len(line) - len(stripped)].replace("\t", "    "))
        stripped = re.sub(r"[ \t]{2,}", " ", stripped).rstrip()
        lines.append(f"{indent}{stripped}" if stripped else "")
    text = "\n".join(lines)

    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _read_pdf(path: Path) -> str:
    with fitz.open(str(path)) as doc:
        return "\n".join(page.get_text() for page in doc)


def _read_docx(path: Path) -> str:
    doc = Document(str(path))
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    # Résumé templates often lay out skills and dates in tables
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                parts.append(" | ".join(dict.fromkeys(cells)))
    return "\n".join(parts)
