# backend/erp/config.py
from __future__ import annotations
import os


def _csv(value: str | None) -> set[str]:
    return {part.strip() for part in (value or "").split(",") if part.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local SQLite by default; point DATABASE_URL at Postgres/MySQL in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///erp.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    LOG_LEVEL = os.environ.get("ERP_LOG_LEVEL", "INFO")

    CORS_ORIGINS = _csv(os.environ.get("ERP_CORS_ORIGINS")) or {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    }

    # Fallbacks served by the config store when a company has no override
    DEFAULT_DOCUMENT_TYPE = os.environ.get("ERP_DEFAULT_DOCUMENT_TYPE", "TICKET")
    DEFAULT_CURRENCY_ID = int(os.environ.get("ERP_DEFAULT_CURRENCY_ID", "1"))

    SESSION_TTL_HOURS = int(os.environ.get("ERP_SESSION_TTL_HOURS", "24"))
