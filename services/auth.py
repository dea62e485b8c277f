# services/auth.py
"""
Account registration, sign-in and password recovery.

Public API:
  - register(name, mobile, password, email)        -> (user, token)
  - login(email, password)                         -> (user, token)
  - request_password_reset(email)                  -> None (code is emailed)
  - verify_reset_code(email, code)                 -> reset_token
  - complete_password_reset(reset_token, new_pw)   -> user
  - change_password(user, current_pw, new_pw)      -> None
  - purge_reset_codes()                            -> rows deleted

Every failure is raised as an errors.ApiError subclass.
"""
from __future__ import annotations

import hashlib
import re
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from auth_guard import issue_access_token
from db import db
from errors import (
    BadRequest,
    Conflict,
    Forbidden,
    InvalidOrExpired,
    InvalidResetToken,
    NotFound,
    ServerError,
    Unauthorized,
)
from models.password_reset_otp import PasswordResetOtp
from models.user import User
from utils import mail
from utils.dates import utcnow

RESET_TOKEN_TYPE = "pwd_reset"
BAD_CREDENTIALS = "Invalid email or password"
PENDING_APPROVAL = "PENDING_APPROVAL"

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
_MOBILE_RE = re.compile(r"\d{10}")


# ---------- small utils ----------

def normalize_email(raw) -> str:
    return str(raw or "").strip().lower()


def normalize_mobile(raw) -> str:
    return re.sub(r"\D", "", str(raw or ""))


def validate_email(email: str) -> None:
    if not _EMAIL_RE.fullmatch(email):
        raise BadRequest("Invalid email address")


def validate_mobile(mobile: str) -> None:
    if not _MOBILE_RE.fullmatch(mobile):
        raise BadRequest("mobile must be a 10-digit number")


def validate_password(raw) -> str:
    pw = str(raw or "")
    min_len = int(current_app.config.get("MIN_PASSWORD_LENGTH", 6))
    if len(pw) < min_len:
        raise BadRequest(f"Password must be at least {min_len} characters")
    return pw


def ensure_unique_identity(*, email: str | None = None, mobile: str | None = None,
                           exclude_id: int | None = None) -> None:
    def _taken(col, value) -> bool:
        q = User.query.filter(col == value)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        return db.session.query(q.exists()).scalar()

    if mobile and _taken(User.mobile, mobile):
        raise Conflict("Mobile number is already registered")
    if email and _taken(User.email, email):
        raise Conflict("Email is already registered")


def _gen_otp_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _hash_code(code: str) -> str:
    pepper = current_app.config.get("OTP_PEPPER", "")
    return hashlib.sha256((pepper + code).encode("utf-8")).hexdigest()


# ---------- registration / sign-in ----------

def register(*, name, mobile, password, email) -> tuple[User, str]:
    name = str(name or "").strip()
    mobile = normalize_mobile(mobile)
    email = normalize_email(email)
    if not (name and mobile and email and password):
        raise BadRequest("name, mobile, password and email are required")
    validate_mobile(mobile)
    validate_email(email)
    password = validate_password(password)

    ensure_unique_identity(email=email, mobile=mobile)

    user = User(name=name, mobile=mobile, email=email, role="user", is_verified=False, status="active")
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Mobile number or email is already registered")

    current_app.logger.info("[auth] registered uid=%s email=%s", user.id, mail.mask_email(email))
    return user, issue_access_token(user)


def login(*, email, password) -> tuple[User, str]:
    email = normalize_email(email)
    if not email or not password:
        raise BadRequest("email and password are required")

    user = User.query.filter_by(email=email).first()
    # same message for unknown email and wrong password
    if not (user and user.check_password(password)):
        raise Unauthorized(BAD_CREDENTIALS)

    if user.awaiting_approval:
        raise Forbidden("Your account is pending verification.", error_code=PENDING_APPROVAL)

    return user, issue_access_token(user)


# ---------- password reset ----------

def request_password_reset(email) -> None:
    email = normalize_email(email)
    if not email:
        raise BadRequest("email is required")

    user = User.query.filter_by(email=email).first()
    if not user:
        raise NotFound("No account found for this email")

    purge_reset_codes(expired_only=True)

    ttl = int(current_app.config.get("OTP_TTL_MINUTES", 10))
    code = _gen_otp_code()
    # earlier outstanding codes stay valid until they expire
    db.session.add(PasswordResetOtp(
        email=email,
        code_hash=_hash_code(code),
        expires_at=utcnow() + timedelta(minutes=ttl),
        is_used=False,
    ))
    db.session.commit()

    try:
        mail.send_reset_code_email(email, code, ttl)
    except Exception as e:
        current_app.logger.exception("[auth] failed to send reset OTP to %s", mail.mask_email(email))
        raise ServerError("Unable to send OTP right now. Please try again later.") from e

    current_app.logger.info("[auth] reset OTP sent to %s", mail.mask_email(email))


def verify_reset_code(email, code) -> str:
    email = normalize_email(email)
    code = str(code or "").strip()
    if not email or not code:
        raise BadRequest("email and otp are required")

    row = (
        PasswordResetOtp.query
        .filter(
            PasswordResetOtp.email == email,
            PasswordResetOtp.code_hash == _hash_code(code),
            PasswordResetOtp.is_used.is_(False),
            PasswordResetOtp.expires_at > utcnow(),
        )
        .order_by(PasswordResetOtp.id.desc())
        .first()
    )
    if not row:
        raise InvalidOrExpired("Invalid or expired OTP")

    row.is_used = True
    db.session.commit()

    ttl = int(current_app.config.get("RESET_TOKEN_TTL_MINUTES", 15))
    return jwt.encode(
        {
            "email": email,
            "typ": RESET_TOKEN_TYPE,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=ttl),
        },
        current_app.config["SECRET_KEY"],
        algorithm="HS256",
    )


def _decode_reset_token(token) -> str:
    if not token:
        raise BadRequest("resetToken is required")
    try:
        payload = jwt.decode(str(token), current_app.config["SECRET_KEY"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise InvalidResetToken("Reset token has expired. Please request a new OTP.")
    except jwt.InvalidTokenError:
        raise InvalidResetToken()
    if payload.get("typ") != RESET_TOKEN_TYPE or not payload.get("email"):
        raise InvalidResetToken()
    return normalize_email(payload["email"])


def complete_password_reset(reset_token, new_password) -> User:
    email = _decode_reset_token(reset_token)
    new_password = validate_password(new_password)

    user = User.query.filter_by(email=email).first()
    if not user:
        raise NotFound("User not found")

    user.set_password(new_password)
    PasswordResetOtp.query.filter_by(email=email, is_used=True).delete(synchronize_session=False)
    db.session.commit()

    current_app.logger.info("[auth] password reset completed uid=%s", user.id)
    return user


def change_password(user: User, current_password, new_password) -> None:
    if not current_password or not new_password:
        raise BadRequest("currentPassword and newPassword are required")
    if not user.check_password(current_password):
        raise Unauthorized("Current password is incorrect")

    user.set_password(validate_password(new_password))
    db.session.commit()
    current_app.logger.info("[auth] password changed uid=%s", user.id)


def purge_reset_codes(*, expired_only: bool = False) -> int:
    """Delete expired codes (and, unless expired_only, used ones)."""
    cond = PasswordResetOtp.expires_at <= utcnow()
    if not expired_only:
        cond = or_(cond, PasswordResetOtp.is_used.is_(True))
    n = PasswordResetOtp.query.filter(cond).delete(synchronize_session=False)
    db.session.commit()
    return int(n or 0)
