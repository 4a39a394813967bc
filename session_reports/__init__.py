from __future__ import annotations  # Session report package exports

from .pdf import ReportPDF, generate_result_pdf, render_report

__all__ = ["ReportPDF", "generate_result_pdf", "render_report"]
