"""AI report routes: per-student analysis and topic study plans."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from helpers import current_gradebook, json_body

bp = Blueprint("ai", __name__)


@bp.route("/api/ai/analyze/<student_id>", methods=["POST"])
def api_analyze_student(student_id):
    from ai_reports import analyze_student_performance

    ds = current_gradebook().dataset
    student = ds.find_student(student_id)
    if student is None:
        return jsonify({"error": "Student not found"}), 404

    report = analyze_student_performance(
        student, ds.scores, ds.subjects, ds.settings,
        timeout=current_app.config.get("AI_REQUEST_TIMEOUT"),
    )
    return jsonify({"student_id": student.id, "report": report})


@bp.route("/api/ai/study-plan", methods=["POST"])
def api_study_plan():
    from ai_reports import generate_study_plan

    data = json_body()
    plan = generate_study_plan(
        data.get("topic", ""),
        current_gradebook().dataset.settings,
        timeout=current_app.config.get("AI_REQUEST_TIMEOUT"),
    )
    return jsonify({"topic": data.get("topic", "").strip(), "plan": plan})
