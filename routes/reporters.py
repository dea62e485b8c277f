# backend/routes/reporters.py
from __future__ import annotations

from flask import Blueprint, request, jsonify

from auth_guard import require_role
from services import accounts

reporters_bp = Blueprint("reporters", __name__, url_prefix="/reporters")


@reporters_bp.route("", methods=["GET"])
@require_role("admin")
def list_reporters():
    """
    Query: search (name/email), status, isVerified=true|false, role, page, limit
    """
    return jsonify(success=True, **accounts.list_users(request.args)), 200


@reporters_bp.route("", methods=["POST"])
@require_role("admin")
def create_reporter():
    user = accounts.create_user(request.get_json(silent=True) or {})
    return jsonify(success=True, message="Reporter created", data=user.to_admin()), 201


@reporters_bp.route("/<int:user_id>", methods=["GET"])
@require_role("admin")
def get_reporter(user_id: int):
    return jsonify(success=True, data=accounts.get_staff(user_id).to_admin()), 200


@reporters_bp.route("/<int:user_id>", methods=["PATCH"])
@require_role("admin")
def update_reporter(user_id: int):
    user = accounts.update_user(user_id, request.get_json(silent=True) or {})
    return jsonify(success=True, message="Reporter updated", data=user.to_admin()), 200


@reporters_bp.route("/<int:user_id>", methods=["DELETE"])
@require_role("admin")
def delete_reporter(user_id: int):
    accounts.delete_user(user_id)
    return jsonify(success=True, message="Reporter deleted"), 200
