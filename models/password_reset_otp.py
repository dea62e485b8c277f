# models/password_reset_otp.py
from __future__ import annotations
from db import db, BigIntId
from sqlalchemy.sql import func


class PasswordResetOtp(db.Model):
    __tablename__ = "password_reset_otps"

    id          = db.Column(BigIntId, primary_key=True, autoincrement=True)
    email       = db.Column(db.String(254), nullable=False, index=True)
    code_hash   = db.Column(db.String(64), nullable=False)         # sha256 hex string
    expires_at  = db.Column(db.DateTime, nullable=False, index=True)
    is_used     = db.Column(db.Boolean, nullable=False, default=False)
    created_at  = db.Column(db.DateTime, nullable=False, server_default=func.now())
