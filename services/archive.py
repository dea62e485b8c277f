# services/archive.py
"""
E-paper (dated PDF issue) publication.

An issue is identified by its calendar day. The day is unique across all
issues, soft-deleted ones included; a soft-deleted day is freed only by a
hard delete.

Public API:
  - publish(raw_date, pdf_file)                  -> EPaper
  - list_issues(args, include_inactive=False)    -> dict (epapers + pagination)
  - get_by_date(raw_date)                        -> EPaper
  - get_by_id(issue_id)                          -> EPaper
  - latest()                                     -> EPaper
  - replace(issue_id, raw_date=None, pdf_file=None) -> EPaper
  - soft_delete(issue_id) / restore(issue_id)    -> EPaper
  - hard_delete(issue_id)                        -> None
"""
from __future__ import annotations

import math
from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from db import db
from errors import BadRequest, Conflict, NotFound, StorageError
from models.epaper import EPaper
from services.storage import EPAPER_FOLDER, get_blob_store, release_blob
from utils.dates import to_calendar_date, utcnow
from utils.uploads import read_upload, require_pdf


def _parse_day(raw) -> date:
    if raw is None or not str(raw).strip():
        raise BadRequest("date is required")
    try:
        return to_calendar_date(raw, current_app.config.get("EPAPER_TIMEZONE", "Asia/Kolkata"))
    except (ValueError, OverflowError):
        raise BadRequest("Invalid date format")


def _get_or_404(issue_id) -> EPaper:
    issue = db.session.get(EPaper, issue_id)
    if not issue:
        raise NotFound("E-paper not found")
    return issue


def _store_pdf(issue: EPaper, pdf_file) -> None:
    data, size = read_upload(pdf_file)
    store = get_blob_store()
    stored = store.upload(data, pdf_file.filename, folder=EPAPER_FOLDER, content_type="application/pdf")
    issue.pdf_url = stored.url
    issue.pdf_key = stored.key
    issue.thumbnail_url = store.preview_url(stored.key)
    issue.thumbnail_key = None
    issue.file_name = stored.file_name
    issue.file_size = size
    issue.original_name = pdf_file.filename
    issue.mime_type = pdf_file.mimetype or "application/pdf"


def _issue_on(day: date, exclude_id=None) -> EPaper | None:
    q = EPaper.query.filter(EPaper.issue_date == day)
    if exclude_id is not None:
        q = q.filter(EPaper.id != exclude_id)
    return q.first()


def _commit_or_conflict(day: date, uploaded_key: str | None = None) -> None:
    """Commit; on a lost race for ``day`` drop the blob this request uploaded."""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        release_blob(uploaded_key, tag="epaper")
        raise Conflict(f"An e-paper already exists for {day.isoformat()}")


def publish(raw_date, pdf_file) -> EPaper:
    if not raw_date or pdf_file is None:
        raise BadRequest("date and PDF file are required")
    require_pdf(pdf_file)
    day = _parse_day(raw_date)

    existing = _issue_on(day)
    if existing:
        raise Conflict(
            f"An e-paper already exists for {day.isoformat()}",
            extra={"existingEpaperId": existing.id},
        )

    issue = EPaper(issue_date=day, is_active=True)
    _store_pdf(issue, pdf_file)
    db.session.add(issue)
    _commit_or_conflict(day, issue.pdf_key)

    current_app.logger.info("[epaper] published id=%s date=%s key=%s", issue.id, day, issue.pdf_key)
    return issue


def list_issues(args, *, include_inactive: bool = False) -> dict:
    try:
        page = max(int(args.get("page") or 1), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(args.get("limit") or current_app.config.get("EPAPERS_PAGE_SIZE", 12))
    except (TypeError, ValueError):
        limit = int(current_app.config.get("EPAPERS_PAGE_SIZE", 12))
    limit = min(max(limit, 1), 100)

    q = EPaper.query
    if not include_inactive:
        q = q.filter(EPaper.is_active.is_(True))

    total = q.count()
    rows = q.order_by(EPaper.issue_date.desc()).offset((page - 1) * limit).limit(limit).all()
    pages = math.ceil(total / limit)
    return {
        "epapers": [r.to_dict() for r in rows],
        "pagination": {
            "currentPage": page,
            "totalPages": pages,
            "totalItems": total,
            "itemsPerPage": limit,
            "hasNextPage": page < pages,
            "hasPreviousPage": page > 1,
        },
    }


def get_by_date(raw_date) -> EPaper:
    day = _parse_day(raw_date)
    issue = EPaper.query.filter(EPaper.issue_date == day, EPaper.is_active.is_(True)).first()
    if not issue:
        raise NotFound(f"No active E-Paper found for date: {day.isoformat()}")
    return issue


def get_by_id(issue_id) -> EPaper:
    issue = _get_or_404(issue_id)
    if not issue.is_active:
        raise NotFound("E-paper not found")
    return issue


def latest() -> EPaper:
    issue = (
        EPaper.query.filter(EPaper.is_active.is_(True))
        .order_by(EPaper.issue_date.desc())
        .first()
    )
    if not issue:
        raise NotFound("No e-paper is available")
    return issue


def replace(issue_id, raw_date=None, pdf_file=None) -> EPaper:
    issue = _get_or_404(issue_id)

    if raw_date:
        day = _parse_day(raw_date)
        if _issue_on(day, exclude_id=issue.id):
            raise Conflict(f"An e-paper already exists for {day.isoformat()}")
        issue.issue_date = day

    old_keys: set = set()
    new_key = None
    if pdf_file is not None:
        require_pdf(pdf_file)
        old_keys = {issue.pdf_key, issue.thumbnail_key} - {None}
        _store_pdf(issue, pdf_file)
        new_key = issue.pdf_key

    _commit_or_conflict(issue.issue_date, new_key)
    # superseded files go only once the new ones are committed
    for key in old_keys:
        release_blob(key, tag="epaper")
    current_app.logger.info("[epaper] updated id=%s date=%s", issue.id, issue.issue_date)
    return issue


def soft_delete(issue_id) -> EPaper:
    issue = _get_or_404(issue_id)
    issue.is_active = False
    issue.deleted_at = utcnow()
    db.session.commit()
    current_app.logger.info("[epaper] soft-deleted id=%s", issue.id)
    return issue


def restore(issue_id) -> EPaper:
    issue = _get_or_404(issue_id)
    issue.is_active = True
    issue.deleted_at = None
    db.session.commit()
    current_app.logger.info("[epaper] restored id=%s", issue.id)
    return issue


def hard_delete(issue_id) -> None:
    """Blobs first; a storage failure aborts and the record stays."""
    issue = _get_or_404(issue_id)
    store = get_blob_store()
    for key in {issue.pdf_key, issue.thumbnail_key} - {None}:
        try:
            store.delete(key)
        except StorageError:
            current_app.logger.exception("[epaper] hard delete aborted id=%s key=%s", issue.id, key)
            raise

    db.session.delete(issue)
    db.session.commit()
    current_app.logger.info("[epaper] hard-deleted id=%s", issue_id)
