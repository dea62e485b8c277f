# firebase_init.py
import logging
import os
from pathlib import Path

import firebase_admin
from firebase_admin import credentials

__all__ = ["get_firebase_app"]


def _resolve_sa_path(sa_path: str | None) -> str:
    # 1) Prefer explicit config / env var
    sa_path = sa_path or os.environ.get("FIREBASE_SA_PATH")

    # 2) Fallback: resolve relative to this file (works regardless of cwd)
    if not sa_path:
        here = Path(__file__).resolve().parent
        sa_path = str(here / "etc" / "secrets" / "firebase-sa.json")
    return sa_path


def get_firebase_app(sa_path: str | None = None, bucket: str | None = None) -> firebase_admin.App:
    """Initialize the default Firebase app once and return it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    path = _resolve_sa_path(sa_path)
    if not Path(path).is_file():
        logging.warning(
            "[firebase] WARNING: FIREBASE_SA_PATH not set or file missing (wanted: %s; cwd=%s)",
            path, os.getcwd()
        )
        raise FileNotFoundError(f"Firebase service account JSON not found: {path}")

    options = {"storageBucket": bucket} if bucket else None
    return firebase_admin.initialize_app(credentials.Certificate(path), options)
