# models/epaper.py
from __future__ import annotations
from db import db, BigIntId
from sqlalchemy.sql import func

from utils.dates import format_hindi_date


class EPaper(db.Model):
    __tablename__ = "epapers"

    id            = db.Column(BigIntId, primary_key=True, autoincrement=True)
    # one issue per calendar day, soft-deleted issues keep their day
    issue_date    = db.Column(db.Date, nullable=False, unique=True, index=True)

    pdf_url       = db.Column(db.String(1024), nullable=False)
    pdf_key       = db.Column(db.String(512), nullable=True)
    thumbnail_url = db.Column(db.String(1024), nullable=False)
    thumbnail_key = db.Column(db.String(512), nullable=True)   # only when the preview is its own blob

    file_name     = db.Column(db.String(255), nullable=True)
    file_size     = db.Column(db.Integer, nullable=True)
    original_name = db.Column(db.String(255), nullable=True)
    mime_type     = db.Column(db.String(100), nullable=True)

    is_active     = db.Column(db.Boolean, nullable=False, default=True, index=True)
    deleted_at    = db.Column(db.DateTime, nullable=True)

    created_at    = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at    = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.issue_date.isoformat(),
            "simpleDate": self.issue_date.isoformat(),
            "formattedDate": format_hindi_date(self.issue_date),
            "pdfUrl": self.pdf_url,
            "pdfKey": self.pdf_key,
            "thumbnailUrl": self.thumbnail_url,
            "fileInfo": {
                "fileName": self.file_name,
                "fileSize": self.file_size,
                "originalName": self.original_name,
                "mimeType": self.mime_type,
            },
            "isActive": bool(self.is_active),
            "deletedAt": self.deleted_at.isoformat() if self.deleted_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
