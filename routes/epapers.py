# backend/routes/epapers.py
from __future__ import annotations

from flask import Blueprint, request, jsonify

from auth_guard import require_role
from services import archive
from utils.uploads import uploaded_file

epapers_bp = Blueprint("epapers", __name__, url_prefix="/epapers")


# ─────────────────────────────────────────────
# Public
# ─────────────────────────────────────────────
@epapers_bp.route("", methods=["GET"])
def list_epapers():
    return jsonify(success=True, data=archive.list_issues(request.args)), 200


@epapers_bp.route("/epaper-by-date", methods=["GET"])
def epaper_by_date():
    issue = archive.get_by_date(request.args.get("date"))
    return jsonify(success=True, data=issue.to_dict()), 200


@epapers_bp.route("/latest", methods=["GET"])
def latest_epaper():
    return jsonify(success=True, data=archive.latest().to_dict()), 200


@epapers_bp.route("/<int:epaper_id>", methods=["GET"])
def get_epaper(epaper_id: int):
    return jsonify(success=True, data=archive.get_by_id(epaper_id).to_dict()), 200


# ─────────────────────────────────────────────
# Admin
# ─────────────────────────────────────────────
@epapers_bp.route("", methods=["POST"])
@require_role("admin")
def create_epaper():
    issue = archive.publish(request.form.get("date"), uploaded_file(request.files, "pdfFile"))
    return jsonify(success=True, message="E-paper uploaded", data=issue.to_dict()), 201


@epapers_bp.route("/admin/all", methods=["GET"])
@require_role("admin")
def list_all_epapers():
    return jsonify(success=True, data=archive.list_issues(request.args, include_inactive=True)), 200


@epapers_bp.route("/<int:epaper_id>", methods=["PUT"])
@require_role("admin")
def update_epaper(epaper_id: int):
    data = request.form if request.files or request.form else (request.get_json(silent=True) or {})
    issue = archive.replace(epaper_id, data.get("date"), uploaded_file(request.files, "pdfFile"))
    return jsonify(success=True, message="E-paper updated", data=issue.to_dict()), 200


@epapers_bp.route("/<int:epaper_id>/soft-delete", methods=["PATCH"])
@require_role("admin")
def soft_delete_epaper(epaper_id: int):
    issue = archive.soft_delete(epaper_id)
    return jsonify(success=True, message="E-paper deleted", data=issue.to_dict()), 200


@epapers_bp.route("/<int:epaper_id>/restore", methods=["PATCH"])
@require_role("admin")
def restore_epaper(epaper_id: int):
    issue = archive.restore(epaper_id)
    return jsonify(success=True, message="E-paper restored", data=issue.to_dict()), 200


@epapers_bp.route("/<int:epaper_id>", methods=["DELETE"])
@require_role("admin")
def delete_epaper(epaper_id: int):
    archive.hard_delete(epaper_id)
    return jsonify(success=True, message="E-paper and its files were removed"), 200
