from ats_tailor.export.docx_renderer import DocxRenderer

__all__ = ["DocxRenderer"]
