# backend/routes/auth.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from auth_guard import require_role
from services import auth as auth_service

__all__ = ["auth_bp"]
auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.after_request
def add_no_store(resp):
    resp.headers["Cache-Control"] = "no-store"
    return resp


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    user, token = auth_service.register(
        name=data.get("name"),
        mobile=data.get("mobile"),
        password=data.get("password"),
        email=data.get("email"),
    )
    return jsonify(token=token, user=user.to_public()), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Sign in with email + password and return a JWT.
    Unverified reporters get 403 with code=PENDING_APPROVAL.
    """
    data = request.get_json(silent=True) or {}
    user, token = auth_service.login(email=data.get("email"), password=data.get("password"))
    return jsonify(message="Login successful", token=token, user=user.to_public()), 200


@auth_bp.route("/me", methods=["GET"])
@require_role()
def me():
    return jsonify(user=g.user.to_public()), 200


# -------------------------------------------------------------------
# Forgot password: request OTP -> verify OTP -> reset
# -------------------------------------------------------------------
@auth_bp.route("/forgot-password/request-otp", methods=["POST"])
def request_otp():
    data = request.get_json(silent=True) or {}
    email = auth_service.normalize_email(data.get("email"))
    auth_service.request_password_reset(email)
    return jsonify(message="OTP has been sent to your email", email=email), 200


@auth_bp.route("/forgot-password/verify-otp", methods=["POST"])
def verify_otp():
    data = request.get_json(silent=True) or {}
    reset_token = auth_service.verify_reset_code(data.get("email"), data.get("otp") or data.get("code"))
    return jsonify(message="OTP verified", resetToken=reset_token), 200


@auth_bp.route("/forgot-password/reset", methods=["POST"])
def reset_password():
    data = request.get_json(silent=True) or {}
    auth_service.complete_password_reset(data.get("resetToken"), data.get("newPassword"))
    return jsonify(message="Password has been reset successfully"), 200


@auth_bp.route("/update-password", methods=["PUT"])
@require_role()
def update_password():
    data = request.get_json(silent=True) or {}
    auth_service.change_password(g.user, data.get("currentPassword"), data.get("newPassword"))
    return jsonify(message="Password updated successfully"), 200
