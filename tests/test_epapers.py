from __future__ import annotations

import io

import pytest
from google.cloud.exceptions import NotFound as GcsNotFound

from db import db
from models.epaper import EPaper
from services.storage import FirebaseBlobStore


def _pdf(name="issue.pdf"):
    return (io.BytesIO(b"%PDF-1.7 test"), name)


@pytest.fixture
def admin_headers(admin, auth_header):
    return auth_header(admin)


def _publish(client, headers, day="2026-10-19", pdf=None):
    data = {"date": day, "pdfFile": pdf if pdf is not None else _pdf()}
    return client.post("/epapers", headers=headers, data=data, content_type="multipart/form-data")


def test_publish_stores_pdf(client, admin_headers, blob_store):
    resp = _publish(client, admin_headers)
    assert resp.status_code == 201
    issue = resp.get_json()["data"]
    assert issue["date"] == "2026-10-19"
    assert issue["formattedDate"] == "19 अक्टूबर 2026"
    assert issue["pdfKey"].startswith("epaper-files/")
    assert issue["pdfKey"] in blob_store.blobs
    assert issue["thumbnailUrl"]
    assert issue["fileInfo"]["originalName"] == "issue.pdf"
    assert issue["isActive"] is True


def test_publish_requires_admin(client, make_user, auth_header):
    assert _publish(client, auth_header(make_user())).status_code == 403
    assert _publish(client, {}).status_code == 401


def test_publish_duplicate_date_conflicts(client, admin_headers):
    first = _publish(client, admin_headers).get_json()["data"]
    resp = _publish(client, admin_headers)
    assert resp.status_code == 409
    assert resp.get_json()["existingEpaperId"] == first["id"]
    assert EPaper.query.count() == 1


def test_publish_offset_timestamp_uses_archive_day(client, admin_headers):
    # 20:30 UTC on the 18th is already the 19th in Asia/Kolkata
    resp = _publish(client, admin_headers, day="2026-10-18T20:30:00Z")
    assert resp.get_json()["data"]["date"] == "2026-10-19"


def test_publish_rejects_non_pdf(client, admin_headers):
    resp = _publish(client, admin_headers, pdf=(io.BytesIO(b"png"), "cover.png"))
    assert resp.status_code == 400


def test_publish_rejects_bad_date(client, admin_headers):
    assert _publish(client, admin_headers, day="not-a-date").status_code == 400


def test_publish_requires_date_and_file(client, admin_headers):
    resp = client.post("/epapers", headers=admin_headers, data={"date": "2026-10-19"},
                       content_type="multipart/form-data")
    assert resp.status_code == 400


def test_get_by_date(client, admin_headers):
    _publish(client, admin_headers)
    resp = client.get("/epapers/epaper-by-date?date=2026-10-19")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["date"] == "2026-10-19"

    assert client.get("/epapers/epaper-by-date?date=2026-10-20").status_code == 404
    assert client.get("/epapers/epaper-by-date").status_code == 400


def test_list_is_newest_first_and_paginated(client, admin_headers):
    for day in ("2026-10-17", "2026-10-19", "2026-10-18"):
        _publish(client, admin_headers, day=day)

    body = client.get("/epapers?limit=2").get_json()["data"]
    assert [e["date"] for e in body["epapers"]] == ["2026-10-19", "2026-10-18"]
    assert body["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalItems": 3,
        "itemsPerPage": 2,
        "hasNextPage": True,
        "hasPreviousPage": False,
    }

    page2 = client.get("/epapers?limit=2&page=2").get_json()["data"]
    assert [e["date"] for e in page2["epapers"]] == ["2026-10-17"]


def test_latest(client, admin_headers):
    assert client.get("/epapers/latest").status_code == 404
    _publish(client, admin_headers, day="2026-10-18")
    _publish(client, admin_headers, day="2026-10-19")
    assert client.get("/epapers/latest").get_json()["data"]["date"] == "2026-10-19"


def test_soft_delete_and_restore(client, admin_headers):
    issue_id = _publish(client, admin_headers).get_json()["data"]["id"]

    gone = client.patch(f"/epapers/{issue_id}/soft-delete", headers=admin_headers)
    assert gone.status_code == 200
    assert gone.get_json()["data"]["isActive"] is False
    assert gone.get_json()["data"]["deletedAt"]

    assert client.get("/epapers/epaper-by-date?date=2026-10-19").status_code == 404
    assert client.get(f"/epapers/{issue_id}").status_code == 404
    assert client.get("/epapers").get_json()["data"]["epapers"] == []

    admin_view = client.get("/epapers/admin/all", headers=admin_headers).get_json()["data"]
    assert [e["id"] for e in admin_view["epapers"]] == [issue_id]

    back = client.patch(f"/epapers/{issue_id}/restore", headers=admin_headers)
    assert back.get_json()["data"]["isActive"] is True
    assert back.get_json()["data"]["deletedAt"] is None
    assert client.get("/epapers/epaper-by-date?date=2026-10-19").status_code == 200


def test_soft_deleted_day_stays_taken(client, admin_headers):
    issue_id = _publish(client, admin_headers).get_json()["data"]["id"]
    client.patch(f"/epapers/{issue_id}/soft-delete", headers=admin_headers)
    assert _publish(client, admin_headers).status_code == 409


def test_hard_delete_removes_record_and_blob(client, admin_headers, blob_store):
    issue = _publish(client, admin_headers).get_json()["data"]

    resp = client.delete(f"/epapers/{issue['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert issue["pdfKey"] in blob_store.deleted
    assert db.session.get(EPaper, issue["id"]) is None
    assert client.get("/epapers/epaper-by-date?date=2026-10-19").status_code == 404

    # the day is free again
    assert _publish(client, admin_headers).status_code == 201


def test_hard_delete_storage_failure_keeps_record(client, admin_headers, blob_store):
    issue = _publish(client, admin_headers).get_json()["data"]
    blob_store.fail_deletes = True

    resp = client.delete(f"/epapers/{issue['id']}", headers=admin_headers)
    assert resp.status_code == 502
    assert db.session.get(EPaper, issue["id"]) is not None
    assert client.get("/epapers/epaper-by-date?date=2026-10-19").status_code == 200


def test_replace_pdf_releases_old_blob(client, admin_headers, blob_store):
    issue = _publish(client, admin_headers).get_json()["data"]

    resp = client.put(f"/epapers/{issue['id']}", headers=admin_headers,
                      data={"pdfFile": _pdf("fixed.pdf")}, content_type="multipart/form-data")
    assert resp.status_code == 200
    updated = resp.get_json()["data"]
    assert updated["pdfKey"] != issue["pdfKey"]
    assert updated["fileInfo"]["originalName"] == "fixed.pdf"
    assert issue["pdfKey"] in blob_store.deleted


def test_replace_date(client, admin_headers):
    issue_id = _publish(client, admin_headers).get_json()["data"]["id"]
    resp = client.put(f"/epapers/{issue_id}", headers=admin_headers, json={"date": "2026-10-20"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["date"] == "2026-10-20"


def test_replace_date_clash(client, admin_headers):
    _publish(client, admin_headers, day="2026-10-18")
    issue_id = _publish(client, admin_headers, day="2026-10-19").get_json()["data"]["id"]
    resp = client.put(f"/epapers/{issue_id}", headers=admin_headers, json={"date": "2026-10-18"})
    assert resp.status_code == 409


def test_missing_issue(client, admin_headers):
    assert client.get("/epapers/12345").status_code == 404
    assert client.delete("/epapers/12345", headers=admin_headers).status_code == 404


def test_lost_publish_race_releases_upload(client, admin_headers, blob_store, monkeypatch):
    _publish(client, admin_headers)
    # the pre-check misses the row another request just committed
    monkeypatch.setattr("services.archive._issue_on", lambda day, exclude_id=None: None)

    resp = _publish(client, admin_headers)
    assert resp.status_code == 409
    assert EPaper.query.count() == 1
    assert len(blob_store.blobs) == 1
    assert len(blob_store.deleted) == 1


# ── Firebase store against an in-memory bucket ────────────────────────────

class _Blob:
    def __init__(self, bucket, key):
        self.bucket = bucket
        self.key = key

    def upload_from_string(self, data, content_type=None):
        self.bucket.objects[self.key] = data

    def make_public(self):
        pass

    @property
    def public_url(self):
        return f"https://storage.test/{self.key}"

    def delete(self):
        if self.bucket.broken:
            raise RuntimeError("backend unavailable")
        if self.key not in self.bucket.objects:
            raise GcsNotFound(f"No such object: {self.key}")
        del self.bucket.objects[self.key]


class _Bucket:
    def __init__(self):
        self.objects = {}
        self.broken = False

    def blob(self, key):
        return _Blob(self, key)


@pytest.fixture
def bucket(app):
    store = FirebaseBlobStore(bucket_name="test-bucket")
    store._bucket = _Bucket()
    app.extensions["blob_store"] = store
    return store._bucket


def test_hard_delete_with_object_already_gone(client, admin_headers, bucket):
    issue = _publish(client, admin_headers).get_json()["data"]
    del bucket.objects[issue["pdfKey"]]

    resp = client.delete(f"/epapers/{issue['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert db.session.get(EPaper, issue["id"]) is None


def test_hard_delete_with_storage_outage(client, admin_headers, bucket):
    issue = _publish(client, admin_headers).get_json()["data"]
    bucket.broken = True

    resp = client.delete(f"/epapers/{issue['id']}", headers=admin_headers)
    assert resp.status_code == 502
    assert db.session.get(EPaper, issue["id"]) is not None
    assert issue["pdfKey"] in bucket.objects
