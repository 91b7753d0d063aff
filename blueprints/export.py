"""Spreadsheet, slide deck and Word document download routes."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, Response, current_app

from helpers import current_gradebook, json_body
from models import ValidationError

bp = Blueprint("export", __name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _attachment(payload: bytes, mimetype: str, filename: str) -> Response:
    from urllib.parse import quote

    return Response(
        payload,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@bp.route("/api/export/scores.xlsx")
def api_export_scores():
    from export import export_scores_xlsx

    payload = export_scores_xlsx(current_gradebook().dataset)
    return _attachment(payload, XLSX_MIME, f"EduSmart_Data_{date.today().strftime('%Y%m%d')}.xlsx")


@bp.route("/api/export/summary.pptx")
def api_export_summary():
    from export import export_summary_pptx

    payload = export_summary_pptx(
        current_gradebook().dataset,
        top_n=current_app.config.get("SLIDE_TOP_N", 8),
    )
    return _attachment(payload, PPTX_MIME, f"EduSmart_TongKet_{date.today().isoformat()}.pptx")


@bp.route("/api/export/report.docx", methods=["POST"])
def api_export_report():
    """Word document from AI report markdown: {"title": ..., "content": ...}."""
    from export import export_report_docx, safe_filename

    data = json_body()
    title = data.get("title") or "Báo cáo"
    content = data.get("content") or ""
    if not isinstance(title, str) or not isinstance(content, str):
        raise ValidationError("Report title and content must be text")
    title = title.strip() or "Báo cáo"
    payload = export_report_docx(content, title)
    return _attachment(payload, DOCX_MIME, f"{safe_filename(title)}.docx")
