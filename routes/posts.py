# backend/routes/posts.py
from __future__ import annotations

import json

from flask import Blueprint, request, jsonify, g

from auth_guard import optional_user, require_role
from errors import BadRequest
from services import moderation
from utils.uploads import uploaded_file

posts_bp = Blueprint("posts", __name__, url_prefix="/posts")


def _payload() -> dict:
    """
    Post fields arrive as JSON or as multipart form fields next to the file.
    Some clients wrap the patch in a JSON-encoded ``data`` field.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise BadRequest("Expected a JSON object")
    if isinstance(data.get("data"), str):
        try:
            inner = json.loads(data["data"])
        except ValueError:
            raise BadRequest("data must be a JSON object")
        if not isinstance(inner, dict):
            raise BadRequest("data must be a JSON object")
        data = {**data, **inner}
    elif isinstance(data.get("data"), dict):
        data = {**data, **data["data"]}
    return data


# ─────────────────────────────────────────────
# Public & user routes
# ─────────────────────────────────────────────
@posts_bp.route("", methods=["GET"])
def list_posts():
    # approved only, unless an admin asks for another status
    return jsonify(moderation.list_posts(optional_user(), request.args)), 200


@posts_bp.route("", methods=["POST"])
@require_role()
def create_post():
    post = moderation.create_post(g.user, _payload(), uploaded_file(request.files, "image"))
    return jsonify(success=True, message="Post created", data=post.to_dict()), 201


@posts_bp.route("/breaking", methods=["GET"])
def breaking_news():
    return jsonify(posts=[p.to_dict() for p in moderation.breaking_news()]), 200


@posts_bp.route("/my-posts", methods=["GET"])
@require_role()
def my_posts():
    return jsonify([p.to_dict() for p in moderation.my_posts(g.user)]), 200


@posts_bp.route("/<int:post_id>", methods=["GET"])
def get_post(post_id: int):
    return jsonify(moderation.get_post(post_id, optional_user()).to_dict()), 200


@posts_bp.route("/<int:post_id>", methods=["PUT"])
@require_role()
def update_post(post_id: int):
    post = moderation.update_post(post_id, g.user, _payload(), uploaded_file(request.files, "image"))
    return jsonify(success=True, message="Post updated", data=post.to_dict()), 200


@posts_bp.route("/<int:post_id>", methods=["DELETE"])
@require_role()
def delete_post(post_id: int):
    moderation.delete_post(post_id, g.user)
    return jsonify(message="Post deleted"), 200


@posts_bp.route("/<int:post_id>/like", methods=["POST"])
@require_role()
def like_post(post_id: int):
    likes, liked = moderation.toggle_like(post_id, g.user)
    return jsonify(likes=likes, liked=liked), 200


# ─────────────────────────────────────────────
# Admin moderation
# ─────────────────────────────────────────────
@posts_bp.route("/admin/all", methods=["GET"])
@require_role("admin")
def admin_all_posts():
    return jsonify(moderation.list_posts_admin(request.args)), 200


@posts_bp.route("/admin/<int:post_id>/approve", methods=["PATCH"])
@require_role("admin")
def approve_post(post_id: int):
    post = moderation.approve_post(post_id, g.user)
    return jsonify(message="Post approved", post=post.to_dict()), 200


@posts_bp.route("/admin/<int:post_id>/reject", methods=["PATCH"])
@require_role("admin")
def reject_post(post_id: int):
    post = moderation.reject_post(post_id)
    return jsonify(message="Post rejected", post=post.to_dict()), 200


@posts_bp.route("/admin/<int:post_id>", methods=["PUT"])
@require_role("admin")
def admin_update_post(post_id: int):
    post, changes = moderation.admin_update_post(
        post_id, g.user, _payload(), uploaded_file(request.files, "image")
    )
    return jsonify(success=True, message="Post updated by admin", data=post.to_dict(), changes=changes), 200


@posts_bp.route("/admin/<int:post_id>", methods=["DELETE"])
@require_role("admin")
def admin_delete_post(post_id: int):
    moderation.delete_post(post_id, g.user)
    return jsonify(message="Post deleted"), 200
