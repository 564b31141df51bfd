import re
from pathlib import Path

from ats_tailor.errors import InvalidInput


def clean_jd(text: str) -> str:
    """Normalize pasted job-posting text without dropping content."""
    text = text.replace("\r\n", "\n").replace("\u00a0", " ")
    text = re.sub(r"[ \t]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def load_jd_file(file_path: str | Path) -> str:
    """Load a job posting from a UTF-8 text file."""
    path = Path(file_path)
    if not path.exists():
        raise InvalidInput(f"Job description file not found: {path}")
    return clean_jd(path.read_text(encoding="utf-8"))
