"""Render TailoredResumeContent into a plain ATS-friendly .docx."""

from __future__ import annotations

import logging
from pathlib import Path

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from ats_tailor.models.resume import TailoredResumeContent

logger = logging.getLogger(__name__)

HEADING_COLOR = RGBColor(0x1A, 0x1A, 0x1A)


class DocxRenderer:
    """DocumentRenderer that writes one .docx file per call.

    Single column, standard fonts, no tables or text boxes, so ATS parsers
    read it in order.
    """

    def __init__(self, output_path: str | Path, *, font_name: str = "Calibri", font_size: int = 10):
        self.output_path = Path(output_path)
        self.font_name = font_name
        self.font_size = font_size

    def __call__(self, content: TailoredResumeContent) -> Path:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = self.font_name
        style.font.size = Pt(self.font_size)

        self._header(doc, content)
        if content.summary:
            self._heading(doc, "Professional Summary")
            doc.add_paragraph(content.summary.strip())
        if content.skills:
            self._heading(doc, "Technical Skills")
            self._bullets(doc, content.skills)
        if content.experience:
            self._heading(doc, "Professional Experience")
            for entry in content.experience:
                p = doc.add_paragraph()
                p.add_run(entry.title).bold = True
                if entry.company:
                    p.add_run(f" | {entry.company}")
                if entry.duration:
                    p.add_run(f" | {entry.duration}").italic = True
                self._bullets(doc, entry.achievements)
        for label, items in (
            ("Certifications", content.certifications),
            ("Professional Development", content.professional_development),
            ("Education", content.education),
        ):
            if items:
                self._heading(doc, label)
                self._bullets(doc, items)

        doc.save(str(self.output_path))
        logger.info("Wrote %s", self.output_path)
        return self.output_path

    def _header(self, doc: Document, content: TailoredResumeContent) -> None:
        contact = content.contact
        if contact.name:
            name = doc.add_paragraph()
            name.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = name.add_run(contact.name)
            run.bold = True
            run.font.size = Pt(self.font_size + 6)
        title = doc.add_paragraph(contact.title)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER

        location = ", ".join(part for part in (contact.city, contact.state) if part)
        details = " | ".join(
            part for part in (contact.phone, contact.email, location, contact.linkedin) if part
        )
        if details:
            line = doc.add_paragraph(details)
            line.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _heading(self, doc: Document, label: str) -> None:
        heading = doc.add_heading(label, level=2)
        heading.runs[0].font.color.rgb = HEADING_COLOR

    def _bullets(self, doc: Document, items: list[str]) -> None:
        for item in items:
            if item.strip():
                doc.add_paragraph(item.strip(), style="List Bullet")
