from __future__ import annotations  # Styled PDF rendering for completed interview results

import math
from datetime import datetime
from pathlib import Path
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from interview_session import InterviewResult, QuestionResult, SessionLifecycleManager


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background
GOOD = (30, 140, 80)  # Met key point
WEAK = (200, 70, 60)  # Missed key point


def _format_datetime(value: datetime | None) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p UTC").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def _section_title(pdf: "ReportPDF", title: str) -> None:  # Render styled section title
    if pdf.get_y() + 20 > pdf.page_break_trigger:
        pdf.add_page()
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: "ReportPDF", rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.cell(col, line, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, line, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _calc_text_height(pdf: FPDF, width: float, text: str, line_height: float) -> float:  # Estimate multi-cell height
    if not text:
        return line_height
    lines = pdf.multi_cell(width, line_height, text, dry_run=True, output="LINES")
    if isinstance(lines, (list, tuple)):
        return line_height * max(1, len(lines))
    return max(1, math.ceil(len(text) / 90)) * line_height


class ReportPDF(FPDF):  # PDF with custom header/footer styling
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Interview Results"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False

    def use_unicode_fonts(self) -> None:  # Switch to DejaVu when the system ships it
        if not (Path(DEJAVU_SANS).exists() and Path(DEJAVU_SANS_BOLD).exists()):
            return
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self.font_regular = "DejaVu"
        self.font_bold = "DejaVu"
        self.supports_unicode = True

    @property
    def bullet(self) -> str:
        return "•" if self.supports_unicode else "-"

    def _prepare_text(self, text: Any) -> str:  # Core fonts only cover latin-1
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        cleaned = value.replace("•", "-").replace("’", "'").replace("“", '"').replace("”", '"')
        return cleaned.encode("latin-1", "ignore").decode("latin-1")

    def cell(self, w=None, h=None, text="", *args, **kwargs):  # Wrap base cell with text sanitisation
        return super().cell(w, h, self._prepare_text(text), *args, **kwargs)

    def multi_cell(self, w, h=None, text="", *args, **kwargs):  # Wrap base multi_cell with text sanitisation
        return super().multi_cell(w, h, self._prepare_text(text), *args, **kwargs)

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            line_height = 8
            self.set_font(self.font_bold, "B", 16)
            trial = self.multi_cell(usable, line_height, self.header_title, dry_run=True, output="LINES")
            lines = len(trial) if isinstance(trial, (list, tuple)) else 1
            banner = 6 + lines * line_height + 4
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, banner, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, line_height, self.header_title)
            self.set_text_color(*TEXT)
            self.ln(4)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self.font_bold, "B", 12)
            self.multi_cell(usable, 6, self.header_title)
            mark = self.get_y()
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _render_score_box(pdf: ReportPDF, score: int) -> None:  # Highlighted overall score
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, pdf.get_y(), _effective_width(pdf), 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, pdf.get_y() + 4)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(_effective_width(pdf) - 12, 6, "Overall Score")
    pdf.set_xy(pdf.l_margin, pdf.get_y() - 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 14)
    pdf.cell(_effective_width(pdf) - 6, 8, f"{score}/100", align="R")
    pdf.ln(14)
    pdf.set_text_color(*TEXT)


def _render_bullets(pdf: ReportPDF, items: Sequence[str], empty: str) -> None:  # Bulleted statement list
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_regular, "", 11)
    if not items:
        pdf.set_text_color(*MUTED)
        pdf.multi_cell(_effective_width(pdf), 6, empty, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.ln(2)
        return
    pdf.set_text_color(*TEXT)
    for item in items:
        pdf.multi_cell(_effective_width(pdf), 6, f"{pdf.bullet} {item}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _key_point_tally(question: QuestionResult) -> str:
    if not question.key_points:
        return "-"
    met = sum(1 for point in question.key_points if point.met)
    return f"{met}/{len(question.key_points)}"


def _render_score_table(pdf: ReportPDF, questions: Sequence[QuestionResult]) -> None:  # Per-question scores table
    headers = ["#", "Question", "Score", "Key points"]
    total = _effective_width(pdf)
    widths = [total * 0.07, total * 0.63, total * 0.13, total * 0.17]
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf.font_bold, "B", 10)
    for idx, title in enumerate(headers):
        pdf.cell(widths[idx], 8, title, align="L", fill=True)
    pdf.ln(8)
    pdf.set_text_color(*TEXT)
    if not questions:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(total, 6, "No answers were submitted for this interview.", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.ln(4)
        return
    pdf.set_font(pdf.font_regular, "", 10)
    for idx, question in enumerate(questions, start=1):
        fill = idx % 2 == 1
        if fill:
            pdf.set_fill_color(247, 250, 255)
        text = " ".join(question.text.split())
        if pdf.get_string_width(pdf._prepare_text(text)) > widths[1] - 2:
            while text and pdf.get_string_width(pdf._prepare_text(text + "...")) > widths[1] - 2:
                text = text[:-1]
            text = text.rstrip() + "..."
        pdf.set_x(pdf.l_margin)
        pdf.cell(widths[0], 7, str(idx), fill=fill)
        pdf.cell(widths[1], 7, text, fill=fill)
        pdf.cell(widths[2], 7, f"{question.score}/100", fill=fill)
        pdf.cell(widths[3], 7, _key_point_tally(question), fill=fill)
        pdf.ln(7)
    pdf.ln(2)


def _render_answer(pdf: ReportPDF, index: int, question: QuestionResult) -> None:  # Question, answer and feedback block
    width = _effective_width(pdf)
    line = 5.5
    prompt = f"Q{index}: {question.text.strip()}"
    answer = f"Your answer: {question.user_answer.strip() or '(no answer)'}"
    feedback = f"Feedback: {question.feedback.strip() or '-'}"
    estimate = sum(_calc_text_height(pdf, width - 4, part, line) for part in (prompt, answer, feedback))
    estimate += line * len(question.key_points) + 10
    if pdf.get_y() + min(estimate, 80) > pdf.page_break_trigger:
        pdf.add_page()

    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.multi_cell(width, line, f"{prompt}  ({question.score}/100)", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(60, 60, 60)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(width, line, answer, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.multi_cell(width, line, feedback, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(pdf.font_regular, "", 9)
    for point in question.key_points:
        pdf.set_text_color(*(GOOD if point.met else WEAK))
        label = "Covered" if point.met else "Missed"
        pdf.multi_cell(width, line, f"{pdf.bullet} {label}: {point.text}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y() + 1
    pdf.line(pdf.l_margin, y, pdf.l_margin + width, y)
    pdf.set_y(y + 3)
    pdf.set_text_color(*TEXT)


def generate_result_pdf(result: InterviewResult) -> bytes:  # Build PDF payload for a completed interview
    pdf = ReportPDF()
    pdf.use_unicode_fonts()
    pdf.alias_nb_pages()
    pdf.header_title = f"{result.category.value} Interview ({result.difficulty.value}) - Results"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    _meta_block(
        pdf,
        [
            ("Interview ID", result.id),
            ("Category", result.category.value),
            ("Difficulty", result.difficulty.value),
            ("Duration", result.duration),
            ("Started", _format_datetime(result.date)),
            ("Completed", _format_datetime(result.completed_at)),
            ("Questions answered", f"{len(result.questions)} of {result.total_questions}"),
        ],
    )
    _render_score_box(pdf, result.overall_score)

    _section_title(pdf, "Strengths")
    _render_bullets(pdf, result.strengths, "No strengths recorded.")

    _section_title(pdf, "Areas for Improvement")
    _render_bullets(pdf, result.improvements, "No improvement areas recorded.")

    _section_title(pdf, "Question Scores")
    _render_score_table(pdf, result.questions)

    if result.questions:
        _section_title(pdf, "Answer Details")
        for index, question in enumerate(result.questions, start=1):
            _render_answer(pdf, index, question)

    return bytes(pdf.output())


def render_report(manager: SessionLifecycleManager, session_id: str, caller_id: str) -> bytes:
    """Render the results PDF for a completed session owned by ``caller_id``."""

    return generate_result_pdf(manager.get_result(session_id, caller_id))


__all__ = ["ReportPDF", "generate_result_pdf", "render_report"]
