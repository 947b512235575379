# backend/custodia/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/custodia.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///custodia.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Commit custody records in a single transaction (False = keep the
    # per-asset best-effort behavior and report partial failures)
    CUSTODY_ATOMIC_COMMIT = _env_flag("CUSTODY_ATOMIC_COMMIT", True)

    # Header carrying the actor identity set by the authentication proxy
    ACTOR_HEADER = os.environ.get("ACTOR_HEADER", "X-Actor")
