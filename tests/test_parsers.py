"""Tests for résumé and job-posting parsers."""

import fitz
import pytest
from docx import Document

from ats_tailor.errors import InvalidInput
from ats_tailor.parsers.jd_parser import clean_jd, load_jd_file
from ats_tailor.parsers.resume_parser import FILE_TYPES, clean_text, parse_resume


class TestCleanText:
    def test_bullet_glyphs_normalized(self):
        assert clean_text("● Led migration\n  • Tuned queries") == "- Led migration\n  - Tuned queries"

    def test_invisible_characters_removed(self):
        assert clean_text("\ufeffJordan\u200b Rivera\u00ad") == "Jordan Rivera"

    def test_icons_removed(self):
        assert clean_text("\U0001f4e7 jordan@example.com | \U0001f4de 602-555-0100") == (
            "jordan@example.com | 602-555-0100"
        )

    def test_whitespace_squeezed(self):
        text = "SQL   Server\t\tDBA   \n\n\n\n\nExperience"
        assert clean_text(text) == "SQL Server DBA\n\nExperience"


class TestParseResume:
    def test_txt(self, tmp_path, sample_resume_text):
        path = tmp_path / "resume.txt"
        path.write_text(sample_resume_text, encoding="utf-8")

        parsed = parse_resume(path)

        assert parsed.file_name == "resume.txt"
        assert parsed.file_type == "text/plain"
        assert "Banner Health" in parsed.text

    def test_markdown(self, tmp_path):
        path = tmp_path / "resume.MD"
        path.write_text("# Jordan Rivera\n\n* Senior DBA", encoding="utf-8")
        assert parse_resume(path).file_type == FILE_TYPES[".md"]

    def test_docx_paragraphs_and_tables(self, tmp_path):
        doc = Document()
        doc.add_paragraph("Jordan Rivera")
        doc.add_paragraph("Senior Database Administrator")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "SQL Server"
        table.rows[0].cells[1].text = "PowerShell"
        path = tmp_path / "resume.docx"
        doc.save(str(path))

        parsed = parse_resume(path)

        assert parsed.text.splitlines() == [
            "Jordan Rivera",
            "Senior Database Administrator",
            "SQL Server | PowerShell",
        ]

    def test_pdf(self, tmp_path):
        path = tmp_path / "resume.pdf"
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Jordan Rivera")
        page.insert_text((72, 90), "Senior Database Administrator")
        doc.save(str(path))
        doc.close()

        parsed = parse_resume(path)

        assert parsed.file_type == "application/pdf"
        assert "Jordan Rivera" in parsed.text
        assert "Senior Database Administrator" in parsed.text

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "resume.rtf"
        path.write_text("{\\rtf1}")
        with pytest.raises(InvalidInput, match="Unsupported file format"):
            parse_resume(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "resume.txt"
        path.write_text("\ufeff  \n\n", encoding="utf-8")
        with pytest.raises(InvalidInput, match="No text"):
            parse_resume(path)


class TestJobPosting:
    def test_clean_jd(self):
        text = "Senior DBA\r\n\r\n\r\n\r\nMust know T-SQL   and  SSIS  "
        assert clean_jd(text) == "Senior DBA\n\nMust know T-SQL and SSIS"

    def test_load_jd_file(self, tmp_path, sample_jd_text):
        path = tmp_path / "jd.txt"
        path.write_text(sample_jd_text, encoding="utf-8")
        assert "SQL Server" in load_jd_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidInput, match="not found"):
            load_jd_file(tmp_path / "missing.txt")
