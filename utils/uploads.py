# utils/uploads.py
from __future__ import annotations

import time
import uuid

from werkzeug.utils import secure_filename

from errors import BadRequest

__all__ = [
    "ALLOWED_EXTS",
    "VIDEO_EXTS",
    "file_ext",
    "content_type_for",
    "make_blob_name",
    "require_allowed_file",
    "require_pdf",
    "resource_type_for",
    "read_upload",
    "uploaded_file",
]

ALLOWED_EXTS = {"jpg", "jpeg", "png", "gif", "mp4", "mov", "avi", "webm", "pdf"}
VIDEO_EXTS = {"mp4", "mov", "avi", "webm"}

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "pdf": "application/pdf",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "webm": "video/webm",
}


def file_ext(filename: str | None) -> str:
    name = secure_filename(filename or "")
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def content_type_for(ext: str) -> str:
    return _MIME_TYPES.get((ext or "").lower(), "application/octet-stream")


def make_blob_name(original_name: str | None) -> str:
    """<uuid>_<ms>.<ext>, never trusting the client's file name."""
    ext = file_ext(original_name) or "bin"
    return f"{uuid.uuid4()}_{int(time.time() * 1000)}.{ext}"


def _has_file(fs) -> bool:
    return bool(fs is not None and getattr(fs, "filename", None))


def require_allowed_file(fs) -> None:
    ext = file_ext(fs.filename)
    mimetype = (fs.mimetype or "").lower()
    if ext in ALLOWED_EXTS or mimetype == "application/pdf":
        return
    raise BadRequest("Only JPG, PNG, GIF, MP4, MOV, AVI, WEBM and PDF files are allowed")


def require_pdf(fs) -> None:
    if not _has_file(fs):
        raise BadRequest("A PDF file is required")
    if file_ext(fs.filename) != "pdf":
        raise BadRequest("Only PDF files are accepted")


def resource_type_for(filename: str | None, mimetype: str | None = None) -> str:
    """video | pdf | image, by extension first, mimetype second."""
    ext = file_ext(filename)
    mt = (mimetype or "").lower()
    if ext in VIDEO_EXTS or (not ext and mt.startswith("video/")):
        return "video"
    if ext == "pdf" or mt == "application/pdf":
        return "pdf"
    return "image"


def read_upload(fs) -> tuple[bytes, int]:
    data = fs.read()
    return data, len(data)


def uploaded_file(files, field: str):
    """Return the FileStorage under ``field`` or None when nothing was sent."""
    fs = files.get(field)
    return fs if _has_file(fs) else None
