"""Dataset, dashboard, student, score and settings routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

import stats
from helpers import (
    current_gradebook,
    json_body,
    public_settings,
    public_snapshot,
    score_json,
    settings_changes,
)
from models import AI_MODELS

bp = Blueprint("core", __name__)


# ── Dataset & dashboard ───────────────────────────────

@bp.route("/api/data")
def api_data():
    return jsonify(public_snapshot(current_gradebook().dataset))


@bp.route("/api/dashboard")
def api_dashboard():
    ds = current_gradebook().dataset
    top_n = current_app.config.get("DASHBOARD_TOP_N", 5)
    return jsonify({
        "summary": stats.summary(ds),
        "subject_averages": stats.per_subject_average(ds.scores, ds.subjects),
        "monthly_trend": stats.monthly_trend(ds.scores),
        "distribution": stats.score_distribution(ds.scores),
        "recent_students": [s.to_dict() for s in stats.recent_students(ds.students)],
        "top_students": stats.ranking(ds.students, ds.scores, top_n),
    })


@bp.route("/api/data/clear", methods=["POST"])
def api_clear_data():
    gb = current_gradebook()
    gb.clear_all()
    return jsonify({"success": True, "data": public_snapshot(gb.dataset)})


# ── Students ──────────────────────────────────────────

@bp.route("/api/students")
def api_students():
    ds = current_gradebook().dataset
    matches = stats.search_students(ds.students, request.args.get("q", ""))
    return jsonify({"students": stats.student_rows(matches, ds.scores)})


@bp.route("/api/students", methods=["POST"])
def api_add_student():
    data = json_body()
    student = current_gradebook().add_student(data.get("name"), data.get("grade"), data.get("email"))
    return jsonify({"success": True, "student": student.to_dict()}), 201


@bp.route("/api/students/<student_id>", methods=["DELETE"])
def api_delete_student(student_id):
    gb = current_gradebook()
    before = len(gb.dataset.scores)
    if not gb.delete_student(student_id):
        return jsonify({"error": "Student not found"}), 404
    return jsonify({"success": True, "removed_scores": before - len(gb.dataset.scores)})


# ── Scores ────────────────────────────────────────────

@bp.route("/api/students/<student_id>/scores")
def api_student_scores(student_id):
    gb = current_gradebook()
    student = gb.get_student(student_id)
    if student is None:
        return jsonify({"error": "Student not found"}), 404
    return jsonify({
        "student": student.to_dict(),
        "average": stats.student_average(student_id, gb.dataset.scores),
        "scores": [score_json(s, gb.subject_name(s.subject_id)) for s in gb.student_scores(student_id)],
    })


@bp.route("/api/students/<student_id>/scores", methods=["POST"])
def api_add_score(student_id):
    data = json_body()
    gb = current_gradebook()
    entry = gb.add_score(student_id, data.get("subjectId"), data.get("score"), data.get("type"))
    return jsonify({"success": True, "score": score_json(entry, gb.subject_name(entry.subject_id))}), 201


# ── Settings ──────────────────────────────────────────

@bp.route("/api/settings")
def api_settings():
    return jsonify(public_settings(current_gradebook().dataset))


@bp.route("/api/settings", methods=["PATCH"])
def api_update_settings():
    gb = current_gradebook()
    gb.update_settings(**settings_changes(json_body()))
    return jsonify(public_settings(gb.dataset))


@bp.route("/api/models")
def api_models():
    selected = current_gradebook().dataset.settings.selected_model
    return jsonify({"models": [
        {
            "id": m.id,
            "name": m.name,
            "description": m.description,
            "isDefault": m.is_default,
            "selected": m.id == selected,
        }
        for m in AI_MODELS
    ]})
