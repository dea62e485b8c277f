# services/moderation.py
"""
Post moderation workflow.

Lifecycle:
  pending  --approve-->  approved
  pending  --reject--->  rejected
  rejected --approve-->  approved
  approved/rejected --admin edit--> any status

Only a move to ``approved`` records the acting admin and a timestamp.

Public API:
  - create_post(owner, fields, file_storage=None)          -> Post
  - list_posts(viewer, args)                                -> dict (posts + pagination)
  - list_posts_admin(args)                                  -> dict
  - breaking_news()                                         -> list[Post]
  - my_posts(owner)                                         -> list[Post]
  - get_post(post_id, viewer)                               -> Post
  - update_post(post_id, actor, patch, file_storage=None)   -> Post
  - admin_update_post(post_id, admin, patch, file_storage=None) -> (Post, changes)
  - delete_post(post_id, actor)                             -> None
  - toggle_like(post_id, user)                              -> (likes_count, liked)
  - approve_post(post_id, admin) / reject_post(post_id)     -> Post
"""
from __future__ import annotations

import math

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from db import db
from errors import BadRequest, Forbidden, NotFound
from models.post import (
    Post,
    PostLike,
    STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from models.user import User
from services.storage import POST_MEDIA_FOLDER, get_blob_store, release_blob
from utils.dates import utcnow
from utils.uploads import read_upload, require_allowed_file, resource_type_for

# patch keys accepted from clients -> Post columns
_EDITABLE = {
    "heading": "heading",
    "title": "heading",
    "description": "description",
    "content": "description",
    "location": "location",
    "category": "category",
}


# ---------- helpers ----------

def _get_or_404(post_id) -> Post:
    post = db.session.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")
    return post


def _page_arg(args) -> int:
    try:
        return max(int(args.get("page") or 1), 1)
    except (TypeError, ValueError):
        return 1


def _status_counts() -> dict:
    rows = db.session.query(Post.status, func.count(Post.id)).group_by(Post.status).all()
    counts = {s: 0 for s in STATUSES}
    counts.update({s: int(n) for s, n in rows})
    return counts


def _store_media(file_storage) -> dict:
    """Upload one media file and derive the columns that describe it."""
    require_allowed_file(file_storage)
    data, size = read_upload(file_storage)
    stored = get_blob_store().upload(
        data, file_storage.filename, folder=POST_MEDIA_FOLDER, content_type=file_storage.mimetype or None
    )

    kind = resource_type_for(file_storage.filename, file_storage.mimetype)
    if kind == "pdf":
        thumbnail = get_blob_store().preview_url(stored.key)
    elif kind == "image":
        thumbnail = stored.url
    else:
        thumbnail = None

    return {
        "media_url": stored.url,
        "media_key": stored.key,
        "resource_type": kind,
        "thumbnail_url": thumbnail,
        "meta": {
            "fileName": stored.file_name,
            "folder": stored.folder,
            "fileSize": size,
            "originalName": file_storage.filename,
        },
    }


def _replace_media(post: Post, file_storage, *, tag: str) -> None:
    """Store the new file on ``post``, then release the old blob (best-effort)."""
    old_key = post.media_key
    media = _store_media(file_storage)
    release_blob(old_key, tag=tag)
    post.media_url = media["media_url"]
    post.media_key = media["media_key"]
    post.resource_type = media["resource_type"]
    post.thumbnail_url = media["thumbnail_url"]
    post.media_meta = {**(post.media_meta or {}), **media["meta"], "updatedAt": utcnow().isoformat()}


def _apply_fields(post: Post, patch: dict) -> None:
    for key, column in _EDITABLE.items():
        if key not in patch or patch[key] is None:
            continue
        value = str(patch[key]).strip() if column in ("heading", "description") else patch[key]
        if column in ("heading", "description") and not value:
            raise BadRequest(f"{column} cannot be empty")
        setattr(post, column, value)


def _set_status(post: Post, status: str, admin: User) -> None:
    if status not in STATUSES:
        raise BadRequest(f"status must be one of: {', '.join(STATUSES)}")
    post.status = status
    if status == STATUS_APPROVED:
        post.approved_by = admin.id
        post.approved_at = utcnow()


def _can_see(post: Post, viewer: User | None) -> bool:
    if post.status == STATUS_APPROVED:
        return True
    return bool(viewer and (viewer.is_admin or viewer.id == post.user_id))


# ---------- create / read ----------

def create_post(owner: User, fields: dict, file_storage=None) -> Post:
    heading = str(fields.get("heading") or fields.get("title") or "").strip()
    description = str(fields.get("description") or fields.get("content") or "").strip()
    if not heading or not description:
        raise BadRequest("heading and description are required")

    post = Post(
        heading=heading,
        description=description,
        location=fields.get("location"),
        category=fields.get("category"),
        user_id=owner.id,
        status=STATUS_PENDING,
        resource_type="image",
    )
    if file_storage is not None:
        media = _store_media(file_storage)
        post.media_url = media["media_url"]
        post.media_key = media["media_key"]
        post.resource_type = media["resource_type"]
        # images carry no separate thumbnail at creation
        post.thumbnail_url = media["thumbnail_url"] if media["resource_type"] == "pdf" else None
        post.media_meta = {**media["meta"], "uploadedAt": utcnow().isoformat()}

    db.session.add(post)
    db.session.commit()
    current_app.logger.info("[posts] created id=%s uid=%s media=%s", post.id, owner.id, post.media_key or "-")
    return post


def list_posts(viewer: User | None, args) -> dict:
    page = _page_arg(args)
    limit = int(current_app.config.get("POSTS_PAGE_SIZE", 10))

    requested = (args.get("status") or "").strip().lower()
    # non-default status filters are an admin view
    if viewer is None or not viewer.is_admin or not requested:
        requested = STATUS_APPROVED

    q = Post.query
    if requested != "all":
        q = q.filter(Post.status == requested)
    if args.get("category"):
        q = q.filter(Post.category == args.get("category"))
    ward = args.get("location") or args.get("ward")
    if ward:
        q = q.filter(Post.location.ilike(f"%{ward}%"))

    total = q.count()
    posts = (
        q.order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    counts = _status_counts()
    return {
        "posts": [p.to_dict() for p in posts],
        "pagination": {
            "current": page,
            "pages": math.ceil(total / limit),
            "total": total,
            "approved": counts[STATUS_APPROVED],
            "rejected": counts[STATUS_REJECTED],
            "pending": counts[STATUS_PENDING],
        },
    }


def list_posts_admin(args) -> dict:
    page = _page_arg(args)
    limit = int(current_app.config.get("ADMIN_POSTS_PAGE_SIZE", 15))

    q = Post.query
    status = (args.get("status") or "all").strip().lower()
    if status != "all":
        q = q.filter(Post.status == status)
    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Post.heading.ilike(like), Post.description.ilike(like)))

    total = q.count()
    posts = (
        q.order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    counts = _status_counts()
    return {
        "posts": [p.to_dict() for p in posts],
        "total": total,
        "approved": counts[STATUS_APPROVED],
        "rejected": counts[STATUS_REJECTED],
        "pending": counts[STATUS_PENDING],
        "pages": math.ceil(total / limit),
        "current": page,
    }


def breaking_news() -> list[Post]:
    limit = int(current_app.config.get("BREAKING_NEWS_LIMIT", 10))
    return (
        Post.query.filter(Post.status == STATUS_APPROVED)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(limit)
        .all()
    )


def my_posts(owner: User) -> list[Post]:
    return (
        Post.query.filter(Post.user_id == owner.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .all()
    )


def get_post(post_id, viewer: User | None) -> Post:
    post = _get_or_404(post_id)
    if not _can_see(post, viewer):
        raise NotFound("Post not found")
    return post


# ---------- update / delete ----------

def update_post(post_id, actor: User, patch: dict, file_storage=None) -> Post:
    post = _get_or_404(post_id)
    if post.user_id != actor.id and not actor.is_admin:
        raise Forbidden("You are not allowed to update this post")

    _apply_fields(post, patch)
    # owners may edit content, only admins move status
    if actor.is_admin and patch.get("status"):
        _set_status(post, str(patch["status"]).strip().lower(), actor)
    if file_storage is not None:
        _replace_media(post, file_storage, tag="posts")

    db.session.commit()
    current_app.logger.info("[posts] updated id=%s by uid=%s", post.id, actor.id)
    return post


def admin_update_post(post_id, admin: User, patch: dict, file_storage=None) -> tuple[Post, dict]:
    post = _get_or_404(post_id)
    previous = post.status

    _apply_fields(post, patch)
    if file_storage is not None:
        _replace_media(post, file_storage, tag="posts:admin")

    new_status = str(patch.get("status") or "").strip().lower()
    meta = {**(post.media_meta or {}), "lastAdminUpdate": utcnow().isoformat(), "updatedBy": admin.id}
    if new_status:
        _set_status(post, new_status, admin)
        meta.update(statusUpdatedAt=utcnow().isoformat(), statusUpdatedBy=admin.id, previousStatus=previous)
    post.media_meta = meta

    db.session.commit()
    current_app.logger.info("[posts] admin uid=%s updated id=%s %s->%s", admin.id, post.id, previous, post.status)
    changes = {
        "imageChanged": file_storage is not None,
        "statusChanged": post.status != previous,
        "previousStatus": previous,
        "newStatus": post.status,
    }
    return post, changes


def delete_post(post_id, actor: User) -> None:
    post = _get_or_404(post_id)
    if post.user_id != actor.id and not actor.is_admin:
        raise Forbidden("You are not allowed to delete this post")

    key = post.media_key
    db.session.delete(post)
    db.session.commit()
    release_blob(key, tag="posts")
    current_app.logger.info("[posts] deleted id=%s by uid=%s", post_id, actor.id)


# ---------- likes / moderation ----------

def toggle_like(post_id, user: User) -> tuple[int, bool]:
    post = _get_or_404(post_id)
    existing = PostLike.query.filter_by(post_id=post.id, user_id=user.id).first()
    if existing:
        db.session.delete(existing)
        liked = False
    else:
        db.session.add(PostLike(post_id=post.id, user_id=user.id))
        liked = True
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent request already added the pair
        db.session.rollback()
        liked = True

    count = PostLike.query.filter_by(post_id=post.id).count()
    return count, liked


def approve_post(post_id, admin: User) -> Post:
    post = _get_or_404(post_id)
    _set_status(post, STATUS_APPROVED, admin)
    db.session.commit()
    current_app.logger.info("[posts] approved id=%s by uid=%s", post.id, admin.id)
    return post


def reject_post(post_id) -> Post:
    post = _get_or_404(post_id)
    post.status = STATUS_REJECTED
    db.session.commit()
    current_app.logger.info("[posts] rejected id=%s", post.id)
    return post
