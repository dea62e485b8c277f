# models/user.py
from __future__ import annotations
from db import db, BigIntId
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash

ROLES = ("user", "reporter", "admin")
ACCOUNT_STATUSES = ("active", "pending", "suspended")


class User(db.Model):
    __tablename__ = "users"

    id           = db.Column(BigIntId, primary_key=True, autoincrement=True)
    name         = db.Column(db.String(120), nullable=False)
    email        = db.Column(db.String(254), nullable=False, unique=True, index=True)
    mobile       = db.Column(db.String(10), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role         = db.Column(db.String(16), nullable=False, default="user", index=True)
    is_verified  = db.Column(db.Boolean, nullable=False, default=False)
    status       = db.Column(db.String(16), nullable=False, default="active")

    created_at   = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at   = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    posts = db.relationship(
        "Post",
        back_populates="author",
        foreign_keys="Post.user_id",
        cascade="all, delete-orphan",
    )

    # ── Helpers ─────────────────────────────────────────────────────────────
    def set_password(self, raw: str) -> None:
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        try:
            return check_password_hash(self.password_hash or "", raw or "")
        except Exception:
            return False

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"

    @property
    def awaiting_approval(self) -> bool:
        """Reporters cannot sign in until an admin verifies them."""
        return (self.role or "").lower() == "reporter" and not self.is_verified

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "mobile": self.mobile,
            "email": self.email,
            "role": self.role,
            "isVerified": bool(self.is_verified),
        }

    def to_admin(self) -> dict:
        data = self.to_public()
        data.update(
            status=self.status,
            createdAt=self.created_at.isoformat() if self.created_at else None,
            updatedAt=self.updated_at.isoformat() if self.updated_at else None,
        )
        return data
