from __future__ import annotations

import io

import pytest

from db import db
from models.post import Post
from models.user import User


@pytest.fixture
def admin_headers(admin, auth_header):
    return auth_header(admin)


def _new_reporter(**overrides):
    body = {
        "name": "Ravi Kadam",
        "email": "ravi@example.com",
        "mobile": "9123456780",
        "password": "reporter-pw",
    }
    body.update(overrides)
    return body


def test_create_reporter_defaults(client, admin_headers):
    resp = client.post("/reporters", headers=admin_headers, json=_new_reporter())
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["role"] == "reporter"
    assert data["status"] == "pending"
    assert data["isVerified"] is False


def test_created_reporter_waits_for_verification(client, admin_headers):
    uid = client.post("/reporters", headers=admin_headers, json=_new_reporter()).get_json()["data"]["id"]
    login = {"email": "ravi@example.com", "password": "reporter-pw"}

    assert client.post("/auth/login", json=login).status_code == 403

    client.patch(f"/reporters/{uid}", headers=admin_headers, json={"isVerified": True, "status": "active"})
    assert client.post("/auth/login", json=login).status_code == 200


def test_create_reporter_duplicate_conflicts(client, admin_headers):
    client.post("/reporters", headers=admin_headers, json=_new_reporter())
    resp = client.post("/reporters", headers=admin_headers, json=_new_reporter(mobile="9000000009"))
    assert resp.status_code == 409


def test_create_reporter_rejects_unknown_role(client, admin_headers):
    resp = client.post("/reporters", headers=admin_headers, json=_new_reporter(role="editor"))
    assert resp.status_code == 400


def test_list_filters(client, admin_headers, make_user):
    make_user("reporter", verified=True, name="Verified Reporter")
    make_user("reporter", verified=False, name="Fresh Reporter")
    make_user("user", name="Plain Reader")

    body = client.get("/reporters?role=reporter", headers=admin_headers).get_json()
    assert body["success"] is True
    assert body["pagination"]["totalItems"] == 2

    unverified = client.get("/reporters?role=reporter&isVerified=false", headers=admin_headers).get_json()
    assert [u["name"] for u in unverified["data"]] == ["Fresh Reporter"]

    found = client.get("/reporters?search=plain", headers=admin_headers).get_json()
    assert [u["name"] for u in found["data"]] == ["Plain Reader"]


def test_list_paginates(client, admin_headers, make_user):
    for _ in range(3):
        make_user("reporter")
    body = client.get("/reporters?role=reporter&limit=2&page=2", headers=admin_headers).get_json()
    assert body["count"] == 1
    assert body["pagination"] == {"totalItems": 3, "totalPages": 2, "currentPage": 2}


def test_get_reporter(client, admin_headers, make_user):
    reporter = make_user("reporter")
    reader = make_user("user")
    assert client.get(f"/reporters/{reporter.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/reporters/{reader.id}", headers=admin_headers).status_code == 404


def test_update_reporter(client, admin_headers, make_user):
    reporter = make_user("reporter")
    resp = client.patch(f"/reporters/{reporter.id}", headers=admin_headers,
                        json={"name": "Renamed", "status": "suspended", "ignored": "x"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["name"] == "Renamed"
    assert data["status"] == "suspended"


def test_update_reporter_needs_known_fields(client, admin_headers, make_user):
    reporter = make_user("reporter")
    resp = client.patch(f"/reporters/{reporter.id}", headers=admin_headers, json={"password": "sneaky"})
    assert resp.status_code == 400


def test_update_reporter_email_clash(client, admin_headers, make_user):
    taken = make_user("reporter")
    reporter = make_user("reporter")
    resp = client.patch(f"/reporters/{reporter.id}", headers=admin_headers, json={"email": taken.email})
    assert resp.status_code == 409


def test_delete_reporter(client, admin_headers, make_user):
    reporter = make_user("reporter")
    uid = reporter.id
    assert client.delete(f"/reporters/{uid}", headers=admin_headers).status_code == 200
    assert db.session.get(User, uid) is None
    assert client.delete(f"/reporters/{uid}", headers=admin_headers).status_code == 404


@pytest.mark.parametrize("method,path", [
    ("get", "/reporters"),
    ("post", "/reporters"),
    ("get", "/reporters/1"),
    ("patch", "/reporters/1"),
    ("delete", "/reporters/1"),
])
def test_reporter_routes_are_admin_only(client, make_user, auth_header, method, path):
    headers = auth_header(make_user("reporter", verified=True))
    resp = getattr(client, method)(path, headers=headers, json={})
    assert resp.status_code == 403


def test_delete_reporter_releases_post_media(client, admin_headers, make_user, auth_header, blob_store):
    reporter = make_user("reporter", verified=True)
    created = client.post(
        "/posts",
        headers=auth_header(reporter),
        data={"heading": "Flooded subway", "description": "Andheri subway shut",
              "image": (io.BytesIO(b"jpeg"), "flood.jpg")},
        content_type="multipart/form-data",
    ).get_json()["data"]

    assert client.delete(f"/reporters/{reporter.id}", headers=admin_headers).status_code == 200
    assert db.session.get(Post, created["id"]) is None
    assert created["imageKey"] in blob_store.deleted
    assert created["imageKey"] not in blob_store.blobs
