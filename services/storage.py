# services/storage.py
"""
Blob storage for post media and e-paper PDFs (Firebase Storage bucket).

Public API:
  - init_blob_store(app)           -> installs the store on app.extensions
  - get_blob_store()               -> the store bound to the current app
  - FirebaseBlobStore.upload(data, original_name, folder=..., content_type=...)
  - FirebaseBlobStore.delete(key)
  - FirebaseBlobStore.preview_url(key)

upload() returns a StoredBlob(url, key, file_name, folder). Any provider
failure is raised as errors.StorageError.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app
from firebase_admin import storage
from google.cloud.exceptions import NotFound as BlobNotFound

from errors import StorageError
from firebase_init import get_firebase_app
from utils.uploads import content_type_for, file_ext, make_blob_name

POST_MEDIA_FOLDER = "post-images"
EPAPER_FOLDER = "epaper-files"


@dataclass(frozen=True)
class StoredBlob:
    url: str
    key: str
    file_name: str
    folder: str


class FirebaseBlobStore:
    def __init__(self, *, bucket_name: str | None, sa_path: str | None = None, public_read: bool = True):
        self.bucket_name = bucket_name
        self.sa_path = sa_path
        self.public_read = public_read
        self._bucket = None

    def _get_bucket(self):
        # Lazy: the app factory must work without credentials (tests, CLI)
        if self._bucket is None:
            app = get_firebase_app(self.sa_path, self.bucket_name)
            self._bucket = storage.bucket(self.bucket_name, app=app)
        return self._bucket

    def upload(self, data: bytes, original_name: str | None, *, folder: str,
               content_type: str | None = None) -> StoredBlob:
        file_name = make_blob_name(original_name)
        key = f"{folder}/{file_name}"
        try:
            blob = self._get_bucket().blob(key)
            blob.upload_from_string(data, content_type=content_type or content_type_for(file_ext(original_name)))
            if self.public_read:
                blob.make_public()
            url = blob.public_url
        except Exception as e:
            current_app.logger.exception("[storage] upload failed key=%s", key)
            raise StorageError("Failed to upload file") from e

        current_app.logger.info("[storage] uploaded key=%s bytes=%d", key, len(data))
        return StoredBlob(url=url, key=key, file_name=file_name, folder=folder)

    def delete(self, key: str) -> None:
        """Remove ``key``; an object that is already gone counts as deleted."""
        try:
            self._get_bucket().blob(key).delete()
        except BlobNotFound:
            current_app.logger.warning("[storage] delete: key=%s already gone", key)
            return
        except Exception as e:
            raise StorageError("Failed to delete file from storage") from e
        current_app.logger.info("[storage] deleted key=%s", key)

    def preview_url(self, key: str) -> str:
        """
        Preview image reference for a stored PDF. No renderer runs server-side,
        so the preview resolves to the document itself.
        """
        return self._get_bucket().blob(key).public_url


def init_blob_store(app: Flask) -> None:
    app.extensions["blob_store"] = FirebaseBlobStore(
        bucket_name=app.config.get("FIREBASE_STORAGE_BUCKET"),
        sa_path=app.config.get("FIREBASE_SA_PATH"),
        public_read=app.config.get("STORAGE_PUBLIC_READ", True),
    )


def get_blob_store() -> FirebaseBlobStore:
    return current_app.extensions["blob_store"]


def release_blob(key: str | None, *, tag: str) -> None:
    """Best-effort delete for superseded blobs; failures are logged, never raised."""
    if not key:
        return
    try:
        get_blob_store().delete(key)
    except StorageError:
        current_app.logger.exception("[%s] could not delete old blob key=%s", tag, key)
