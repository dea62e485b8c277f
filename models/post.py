# models/post.py
from __future__ import annotations
from db import db, BigIntId
from sqlalchemy.sql import func

from utils.dates import format_hindi_date

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class PostLike(db.Model):
    __tablename__ = "post_likes"
    __table_args__ = (db.UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),)

    id         = db.Column(BigIntId, primary_key=True, autoincrement=True)
    post_id    = db.Column(BigIntId, db.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id    = db.Column(BigIntId, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, server_default=func.now(), nullable=False)


class Post(db.Model):
    __tablename__ = "posts"

    id            = db.Column(BigIntId, primary_key=True, autoincrement=True)
    heading       = db.Column(db.String(255), nullable=False)
    description   = db.Column(db.Text, nullable=False)
    location      = db.Column(db.String(255), nullable=True)
    category      = db.Column(db.String(120), nullable=True, index=True)

    # single optional media file held in the blob store
    media_url     = db.Column(db.String(1024), nullable=True)
    media_key     = db.Column(db.String(512), nullable=True)
    thumbnail_url = db.Column(db.String(1024), nullable=True)
    resource_type = db.Column(db.String(16), nullable=False, default="image")
    media_meta    = db.Column(db.JSON, nullable=True)

    user_id       = db.Column(BigIntId, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status        = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    approved_by   = db.Column(BigIntId, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at   = db.Column(db.DateTime, nullable=True)

    created_at    = db.Column(db.DateTime, server_default=func.now(), nullable=False, index=True)
    updated_at    = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    author   = db.relationship("User", back_populates="posts", foreign_keys=[user_id])
    approver = db.relationship("User", foreign_keys=[approved_by])
    likes    = db.relationship("PostLike", cascade="all, delete-orphan", passive_deletes=True, lazy="selectin")

    @property
    def like_user_ids(self) -> list[int]:
        return [lk.user_id for lk in self.likes]

    def to_dict(self) -> dict:
        author = self.author
        approver = self.approver
        return {
            "id": self.id,
            "heading": self.heading,
            "description": self.description,
            "location": self.location,
            "category": self.category,
            "image": self.media_url,
            "imageKey": self.media_key,
            "thumbnail": self.thumbnail_url,
            "resourceType": self.resource_type,
            "metadata": self.media_meta,
            "status": self.status,
            "user": {"id": author.id, "name": author.name, "mobile": author.mobile} if author else None,
            "approvedBy": {"id": approver.id, "name": approver.name} if approver else None,
            "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
            "likes": self.like_user_ids,
            "likesCount": len(self.likes),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "formattedDate": format_hindi_date(self.created_at) if self.created_at else None,
        }
