# backend/docflow/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/docflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///docflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Civil calendar used for every date stamped by the workflow
    DOCFLOW_TIMEZONE = os.environ.get("DOCFLOW_TIMEZONE", "Asia/Bangkok")

    # Local-disk root for uploaded PDFs, emendations and additional files
    DOCFLOW_STORAGE_ROOT = os.environ.get("DOCFLOW_STORAGE_ROOT", "uploads")

    # Business days a branch has to return the original paper documents
    DOCFLOW_RETURN_WINDOW_DAYS = 5

    # Due-date notifier treats anything within this many days as "soon"
    DOCFLOW_DUE_SOON_DAYS = 3

    # Session lifetime for bearer tokens issued on behalf of the identity provider
    SESSION_ABSOLUTE_TIMEOUT_HOURS = 24
    SESSION_IDLE_TIMEOUT_HOURS = 2

    # Browser origins allowed to call the API
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]
