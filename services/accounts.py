# services/accounts.py
"""
Admin-side account management (reporters, admins and plain users).
"""
from __future__ import annotations

import math

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from db import db
from errors import BadRequest, Conflict, NotFound
from models.user import ACCOUNT_STATUSES, ROLES, User
from services.storage import release_blob
from services.auth import (
    ensure_unique_identity,
    normalize_email,
    normalize_mobile,
    validate_email,
    validate_mobile,
    validate_password,
)

UPDATABLE = ("name", "email", "mobile", "status", "isVerified", "role")


def _as_bool(x) -> bool:
    if isinstance(x, bool):
        return x
    return str(x).strip().lower() in {"1", "true", "yes", "on"}


def _check_choice(value, choices, field: str) -> str:
    v = str(value or "").strip().lower()
    if v not in choices:
        raise BadRequest(f"{field} must be one of: {', '.join(choices)}")
    return v


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Mobile number or email is already registered")


def list_users(args) -> dict:
    try:
        page = max(int(args.get("page") or 1), 1)
        limit = min(max(int(args.get("limit") or current_app.config.get("USERS_PAGE_SIZE", 10)), 1), 100)
    except (TypeError, ValueError):
        raise BadRequest("page and limit must be integers")

    q = User.query.filter(User.role.in_(ROLES))

    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.name.ilike(like), User.email.ilike(like)))

    status = (args.get("status") or "").strip().lower()
    if status in ACCOUNT_STATUSES:
        q = q.filter(User.status == status)

    verified = (args.get("isVerified") or "").strip().lower()
    if verified in ("true", "false"):
        q = q.filter(User.is_verified.is_(verified == "true"))

    role = (args.get("role") or "").strip().lower()
    if role in ROLES:
        q = q.filter(User.role == role)

    total = q.count()
    users = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "count": len(users),
        "pagination": {
            "totalItems": total,
            "totalPages": math.ceil(total / limit),
            "currentPage": page,
        },
        "data": [u.to_admin() for u in users],
    }


def create_user(data: dict) -> User:
    name = str(data.get("name") or "").strip()
    email = normalize_email(data.get("email"))
    mobile = normalize_mobile(data.get("mobile"))
    if not (name and email and mobile and data.get("password")):
        raise BadRequest("name, email, mobile and password are required")
    validate_email(email)
    validate_mobile(mobile)
    password = validate_password(data.get("password"))
    role = _check_choice(data.get("role") or "reporter", ROLES, "role")
    status = _check_choice(data.get("status") or "pending", ACCOUNT_STATUSES, "status")

    ensure_unique_identity(email=email, mobile=mobile)

    user = User(
        name=name,
        email=email,
        mobile=mobile,
        role=role,
        status=status,
        is_verified=_as_bool(data.get("isVerified", False)),
    )
    user.set_password(password)
    db.session.add(user)
    _commit_or_conflict()
    current_app.logger.info("[accounts] created uid=%s role=%s", user.id, user.role)
    return user


def get_staff(user_id) -> User:
    user = db.session.get(User, user_id)
    if not user or user.role not in ("reporter", "admin"):
        raise NotFound("Reporter not found")
    return user


def update_user(user_id, data: dict) -> User:
    changes = {k: data[k] for k in UPDATABLE if k in data}
    if not changes:
        raise BadRequest("No valid fields to update")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("Reporter not found")

    if "name" in changes:
        name = str(changes["name"] or "").strip()
        if not name:
            raise BadRequest("name cannot be empty")
        user.name = name
    if "email" in changes:
        email = normalize_email(changes["email"])
        validate_email(email)
        ensure_unique_identity(email=email, exclude_id=user.id)
        user.email = email
    if "mobile" in changes:
        mobile = normalize_mobile(changes["mobile"])
        validate_mobile(mobile)
        ensure_unique_identity(mobile=mobile, exclude_id=user.id)
        user.mobile = mobile
    if "status" in changes:
        user.status = _check_choice(changes["status"], ACCOUNT_STATUSES, "status")
    if "role" in changes:
        user.role = _check_choice(changes["role"], ROLES, "role")
    if "isVerified" in changes:
        user.is_verified = _as_bool(changes["isVerified"])

    _commit_or_conflict()
    current_app.logger.info("[accounts] updated uid=%s fields=%s", user.id, ",".join(sorted(changes)))
    return user


def delete_user(user_id) -> None:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("Reporter not found")

    # posts go with the account; their media follows once the rows are gone
    media_keys = [p.media_key for p in user.posts if p.media_key]
    db.session.delete(user)
    db.session.commit()
    for key in media_keys:
        release_blob(key, tag="accounts")
    current_app.logger.info("[accounts] deleted uid=%s posts_media=%d", user_id, len(media_keys))
