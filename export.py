"""Spreadsheet (openpyxl), slide deck (python-pptx) and Word (python-docx) exports.

Each exporter takes finished in-memory data and returns the file as bytes.
"""

from __future__ import annotations

import io
import re
from datetime import date

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches as DocxInches, Pt as DocxPt, RGBColor as DocxRGB
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from pptx import Presentation
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE, XL_LABEL_POSITION, XL_LEGEND_POSITION
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Inches, Pt

import stats
from models import Dataset

APP_NAME = "EduSmart AI"

COLORS = {
    "primary": "6366F1",
    "primary_dark": "4F46E5",
    "secondary": "EC4899",
    "white": "FFFFFF",
    "dark": "1E293B",
    "gray": "64748B",
    "light_gray": "F1F5F9",
    "border": "E2E8F0",
    "muted": "94A3B8",
    "success": "10B981",
    "warning": "F59E0B",
    "danger": "EF4444",
}

BAND_COLORS = {
    "excellent": COLORS["success"],
    "good": COLORS["primary"],
    "average": COLORS["warning"],
    "weak": COLORS["danger"],
}


class ExportFailure(Exception):
    """An exporter could not build its file from the given data."""


def safe_filename(title: str) -> str:
    """Keep letters (incl. Vietnamese), digits and spaces; everything else becomes '_'."""
    return re.sub(r"[^a-zA-Z0-9\u00C0-\u024F\u1E00-\u1EFF\s]", "_", title)


# ── Spreadsheet ──────────────────────────────────────────────

STUDENT_HEADERS = ["ID", "Họ và tên", "Lớp", "Email"]
SCORE_HEADERS = ["Học sinh", "Môn học", "Điểm", "Loại", "Ngày"]


def score_rows(dataset: Dataset) -> list[list]:
    """Flatten scores to [student name, subject name, score, type, date]."""
    students = {s.id: s.name for s in dataset.students}
    subjects = {s.id: s.name for s in dataset.subjects}
    return [
        [
            students.get(s.student_id, "N/A"),
            subjects.get(s.subject_id, "N/A"),
            s.score,
            s.type,
            s.date,
        ]
        for s in dataset.scores
    ]


def _write_sheet(ws, headers: list[str], rows: list[list]) -> None:
    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color=COLORS["primary"], end_color=COLORS["primary"], fill_type="solid")
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    for col_idx, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")
        cell.border = border

    for row_idx, row in enumerate(rows, 2):
        for col_idx, value in enumerate(row, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = border

    for col_idx, header in enumerate(headers, 1):
        width = max([len(str(header))] + [len(str(r[col_idx - 1])) for r in rows if r[col_idx - 1] is not None])
        ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 4, 50)
    ws.freeze_panes = "A2"


def export_scores_xlsx(dataset: Dataset) -> bytes:
    """Two sheets: the student list and every score with resolved names."""
    wb = Workbook()
    ws_students = wb.active
    ws_students.title = "Học sinh"
    _write_sheet(
        ws_students,
        STUDENT_HEADERS,
        [[s.id, s.name, s.grade, s.email or ""] for s in dataset.students],
    )
    _write_sheet(wb.create_sheet("Điểm số"), SCORE_HEADERS, score_rows(dataset))

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ── Slide deck ───────────────────────────────────────────────

SLIDE_W = Inches(10)
SLIDE_H = Inches(5.625)


def _rgb(key: str) -> RGBColor:
    return RGBColor.from_string(COLORS.get(key, key))


def _fill_shape(slide, shape_type, left, top, width, height, color: str):
    shape = slide.shapes.add_shape(shape_type, left, top, width, height)
    shape.fill.solid()
    shape.fill.fore_color.rgb = _rgb(color)
    shape.line.fill.background()
    return shape


def _text(slide, text: str, left, top, width, height, *, size: int = 14, bold: bool = False,
          color: str = "dark", align=PP_ALIGN.LEFT, anchor=MSO_ANCHOR.TOP):
    box = slide.shapes.add_textbox(left, top, width, height)
    tf = box.text_frame
    tf.word_wrap = True
    tf.vertical_anchor = anchor
    p = tf.paragraphs[0]
    p.alignment = align
    run = p.add_run()
    run.text = text
    run.font.size = Pt(size)
    run.font.bold = bold
    run.font.color.rgb = _rgb(color)
    return box


def _slide_header(slide, title: str, subtitle: str) -> None:
    _fill_shape(slide, MSO_SHAPE.RECTANGLE, 0, 0, SLIDE_W, Inches(1.3), "light_gray")
    _text(slide, title, Inches(0.6), Inches(0.2), Inches(8.8), Inches(0.6), size=24, bold=True)
    _text(slide, subtitle, Inches(0.6), Inches(0.75), Inches(8.8), Inches(0.4), size=13, color="gray")


def _dark_slide(prs):
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    _fill_shape(slide, MSO_SHAPE.RECTANGLE, 0, 0, SLIDE_W, SLIDE_H, "dark")
    return slide


def _title_slide(prs, dataset: Dataset) -> None:
    slide = _dark_slide(prs)
    _fill_shape(slide, MSO_SHAPE.OVAL, Inches(7), Inches(-1), Inches(4.5), Inches(4.5), "primary_dark")
    _text(slide, APP_NAME, Inches(0.8), Inches(1.6), Inches(7), Inches(0.9), size=44, bold=True, color="white")
    _text(slide, "Tổng kết học kỳ", Inches(0.8), Inches(2.5), Inches(7), Inches(0.6), size=28, color="muted")
    _text(
        slide,
        f"{len(dataset.students)} học sinh · {len(dataset.scores)} đánh giá · {date.today().strftime('%d/%m/%Y')}",
        Inches(0.8), Inches(4.3), Inches(8), Inches(0.5), size=14, color="muted",
    )


def _overview_slide(prs, dataset: Dataset) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    _slide_header(slide, "Tổng quan", "Số liệu tổng hợp")
    s = stats.summary(dataset)
    cards = [
        ("Tổng học sinh", str(s["total_students"]), "primary"),
        ("Điểm trung bình", f"{s['avg_score']:.1f}", "success"),
        ("Đạt Giỏi (≥8)", str(s["excellent_count"]), "warning"),
        ("Cần cải thiện (<5)", str(s["weak_count"]), "danger"),
    ]
    for i, (label, value, color) in enumerate(cards):
        left = Inches(0.5 + i * 2.3)
        card = _fill_shape(slide, MSO_SHAPE.ROUNDED_RECTANGLE, left, Inches(1.9), Inches(2.0), Inches(2.4), "white")
        card.line.color.rgb = _rgb("border")
        _text(slide, value, left, Inches(2.1), Inches(2.0), Inches(1.1), size=36, bold=True,
              color=color, align=PP_ALIGN.CENTER, anchor=MSO_ANCHOR.MIDDLE)
        _text(slide, label, left, Inches(3.3), Inches(2.0), Inches(0.7), size=11,
              color="gray", align=PP_ALIGN.CENTER)


def _no_data(slide) -> None:
    _text(slide, "Chưa có dữ liệu điểm số", Inches(1), Inches(2.6), Inches(8), Inches(0.8),
          size=20, color="gray", align=PP_ALIGN.CENTER)


def _subject_chart_slide(prs, dataset: Dataset) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    _slide_header(slide, "Hiệu suất theo môn học", "Điểm trung bình mỗi môn")
    rows = [r for r in stats.per_subject_average(dataset.scores, dataset.subjects) if r["avg"] > 0]
    if not rows:
        _no_data(slide)
        return

    chart_data = CategoryChartData()
    chart_data.categories = [r["name"] for r in rows]
    chart_data.add_series("Điểm TB", [r["avg"] for r in rows])
    chart = slide.shapes.add_chart(
        XL_CHART_TYPE.COLUMN_CLUSTERED, Inches(0.8), Inches(1.5), Inches(8.4), Inches(3.9), chart_data,
    ).chart
    chart.has_legend = False
    axis = chart.value_axis
    axis.minimum_scale = 0
    axis.maximum_scale = 10
    axis.major_unit = 2
    plot = chart.plots[0]
    plot.has_data_labels = True
    plot.data_labels.show_value = True
    plot.data_labels.position = XL_LABEL_POSITION.OUTSIDE_END
    plot.data_labels.font.size = Pt(10)
    fill = plot.series[0].format.fill
    fill.solid()
    fill.fore_color.rgb = _rgb("primary")


def _distribution_slide(prs, dataset: Dataset) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    _slide_header(slide, "Phân bố điểm số", "Tỷ lệ xếp loại học lực")
    bands = stats.score_distribution(dataset.scores)
    if not bands:
        _no_data(slide)
        return

    chart_data = CategoryChartData()
    chart_data.categories = [b["label"] for b in bands]
    chart_data.add_series("Phân bố", [b["count"] for b in bands])
    chart = slide.shapes.add_chart(
        XL_CHART_TYPE.PIE, Inches(1.5), Inches(1.4), Inches(7), Inches(4.1), chart_data,
    ).chart
    chart.has_legend = True
    chart.legend.position = XL_LEGEND_POSITION.RIGHT
    chart.legend.include_in_layout = False
    plot = chart.plots[0]
    plot.has_data_labels = True
    plot.data_labels.show_percentage = True
    plot.data_labels.show_value = False
    plot.data_labels.number_format = "0%"
    plot.data_labels.number_format_is_linked = False
    for band, point in zip(bands, plot.series[0].points):
        point.format.fill.solid()
        point.format.fill.fore_color.rgb = _rgb(BAND_COLORS[band["key"]])


def _set_cell(cell, text: str, *, bold: bool = False, color: str = "dark", fill: str | None = None,
              align=PP_ALIGN.CENTER) -> None:
    cell.text = text
    p = cell.text_frame.paragraphs[0]
    p.alignment = align
    font = p.runs[0].font if p.runs else p.font
    font.size = Pt(11)
    font.bold = bold
    font.color.rgb = _rgb(color)
    cell.vertical_anchor = MSO_ANCHOR.MIDDLE
    if fill:
        cell.fill.solid()
        cell.fill.fore_color.rgb = _rgb(fill)


def _ranking_slide(prs, dataset: Dataset, top_n: int) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    _slide_header(slide, "Bảng xếp hạng", "Top học sinh xuất sắc")
    ranked = stats.ranking(dataset.students, dataset.scores, top_n)
    if not ranked:
        _no_data(slide)
        return

    headers = ["#", "Họ tên", "Lớp", "Điểm TB", "Bài KT"]
    widths = [0.6, 3.0, 1.2, 1.6, 1.6]
    table = slide.shapes.add_table(
        len(ranked) + 1, len(headers), Inches(1), Inches(1.5), Inches(8), Inches(0.4 * (len(ranked) + 1)),
    ).table
    for i, w in enumerate(widths):
        table.columns[i].width = Inches(w)
    for c, h in enumerate(headers):
        _set_cell(table.cell(0, c), h, bold=True, color="white", fill="primary")

    for r, row in enumerate(ranked, 1):
        avg = row["avg"]
        avg_color = "success" if avg >= 8 else "dark" if avg >= 5 else "danger"
        _set_cell(table.cell(r, 0), str(r))
        _set_cell(table.cell(r, 1), row["name"], bold=r <= 3, align=PP_ALIGN.LEFT)
        _set_cell(table.cell(r, 2), row["grade"])
        _set_cell(table.cell(r, 3), f"{avg:.1f}", bold=True, color=avg_color)
        _set_cell(table.cell(r, 4), str(row["count"]))


def _closing_slide(prs) -> None:
    slide = _dark_slide(prs)
    _text(slide, "Cảm ơn!", Inches(1), Inches(1.8), Inches(8), Inches(1.0), size=48, bold=True,
          color="white", align=PP_ALIGN.CENTER)
    _text(slide, f"Được tạo bởi {APP_NAME}", Inches(1), Inches(2.9), Inches(8), Inches(0.6), size=18,
          color="muted", align=PP_ALIGN.CENTER)


def export_summary_pptx(dataset: Dataset, top_n: int = 8) -> bytes:
    """Six-slide semester summary: title, overview, subjects, distribution, ranking, closing."""
    if not dataset.students:
        raise ExportFailure("No students yet. Add students and scores before exporting a summary.")

    prs = Presentation()
    prs.slide_width = SLIDE_W
    prs.slide_height = SLIDE_H
    prs.core_properties.author = APP_NAME
    prs.core_properties.title = f"Tổng kết học kỳ - {APP_NAME}"

    _title_slide(prs, dataset)
    _overview_slide(prs, dataset)
    _subject_chart_slide(prs, dataset)
    _distribution_slide(prs, dataset)
    _ranking_slide(prs, dataset, top_n)
    _closing_slide(prs)

    buf = io.BytesIO()
    prs.save(buf)
    return buf.getvalue()


# ── Word document ────────────────────────────────────────────

_INLINE_RE = re.compile(r"\*\*(.+?)\*\*|\*(.+?)\*|([^*]+)")


def parse_inline(text: str) -> list[tuple[str, bool, bool]]:
    """Split a line into (text, bold, italic) runs for **bold** and *italic*."""
    runs = []
    for m in _INLINE_RE.finditer(text):
        if m.group(1):
            runs.append((m.group(1), True, False))
        elif m.group(2):
            runs.append((m.group(2), False, True))
        elif m.group(3):
            runs.append((m.group(3), False, False))
    return runs or [(text, False, False)]


def parse_markdown_blocks(markdown: str) -> list[tuple[str, str]]:
    """Classify each non-blank line as h1/h2/h3/bullet/number/quote/para."""
    blocks = []
    for line in markdown.splitlines():
        s = line.strip()
        if not s:
            continue
        if s.startswith("### "):
            blocks.append(("h3", s[4:].strip()))
        elif s.startswith("## "):
            blocks.append(("h2", s[3:].strip()))
        elif s.startswith("# "):
            blocks.append(("h1", s[2:].strip()))
        elif re.match(r"^[-*]\s", s):
            blocks.append(("bullet", re.sub(r"^[-*]\s+", "", s)))
        elif re.match(r"^\d+\.\s", s):
            blocks.append(("number", re.sub(r"^\d+\.\s+", "", s)))
        elif s.startswith("> "):
            blocks.append(("quote", s[2:].strip()))
        else:
            blocks.append(("para", s))
    return blocks


def _add_field(paragraph, instr: str, size) -> None:
    """Append a Word field (PAGE, NUMPAGES) that renders at view time."""
    run = paragraph.add_run()
    run.font.size = size
    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    instr_text = OxmlElement("w:instrText")
    instr_text.set(qn("xml:space"), "preserve")
    instr_text.text = instr
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")
    run._r.append(begin)
    run._r.append(instr_text)
    run._r.append(end)


def _add_runs(paragraph, text: str) -> None:
    for chunk, bold, italic in parse_inline(text):
        run = paragraph.add_run(chunk)
        run.bold = bold
        run.italic = italic


def export_report_docx(markdown: str, title: str) -> bytes:
    """Word document from a markdown report, with running header and page numbers."""
    if not isinstance(markdown, str) or not markdown.strip():
        raise ExportFailure("The report is empty; nothing to export.")

    doc = Document()
    normal = doc.styles["Normal"]
    normal.font.name = "Arial"
    normal.font.size = DocxPt(12)

    section = doc.sections[0]
    for side in ("top_margin", "right_margin", "bottom_margin", "left_margin"):
        setattr(section, side, DocxInches(1))

    muted = DocxRGB.from_string(COLORS["muted"])
    small = DocxPt(9)

    header = section.header.paragraphs[0]
    header.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    run = header.add_run(f"{APP_NAME} - Báo cáo")
    run.font.size = small
    run.font.color.rgb = muted

    footer = section.footer.paragraphs[0]
    footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
    footer.add_run("Trang ").font.size = small
    _add_field(footer, "PAGE", small)
    footer.add_run(" / ").font.size = small
    _add_field(footer, "NUMPAGES", small)

    p = doc.add_paragraph()
    p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = p.add_run(title)
    run.bold = True
    run.font.size = DocxPt(24)
    run.font.color.rgb = DocxRGB.from_string(COLORS["primary"])

    p = doc.add_paragraph()
    p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    p.paragraph_format.space_after = DocxPt(24)
    run = p.add_run(f"Tạo bởi {APP_NAME} - {date.today().strftime('%d/%m/%Y')}")
    run.italic = True
    run.font.size = DocxPt(11)
    run.font.color.rgb = muted

    for kind, text in parse_markdown_blocks(markdown):
        if kind in ("h1", "h2", "h3"):
            doc.add_heading(text, level=int(kind[1]))
        elif kind == "bullet":
            _add_runs(doc.add_paragraph(style="List Bullet"), text)
        elif kind == "number":
            _add_runs(doc.add_paragraph(style="List Number"), text)
        elif kind == "quote":
            q = doc.add_paragraph(style="Quote")
            q.paragraph_format.left_indent = DocxInches(0.5)
            run = q.add_run(text)
            run.italic = True
            run.font.color.rgb = DocxRGB.from_string(COLORS["primary_dark"])
        else:
            para = doc.add_paragraph()
            para.paragraph_format.space_after = DocxPt(6)
            _add_runs(para, text)

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
