# backend/stockdesk/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockdesk.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sentinel warehouse holding ad-hoc POS items
    EXTRA_WAREHOUSE_NAME = os.environ.get("EXTRA_WAREHOUSE_NAME", "Extra")
    EXTRA_WAREHOUSE_LOCATION = os.environ.get("EXTRA_WAREHOUSE_LOCATION", "Manual/Extra Items")

    # Used when a product has no min_stock_level of its own
    LOW_STOCK_DEFAULT_THRESHOLD = _int_env("LOW_STOCK_DEFAULT_THRESHOLD", 10)
    EXPIRY_WARNING_DAYS = _int_env("EXPIRY_WARNING_DAYS", 30)
    NOTIFICATION_POLL_SECONDS = _int_env("NOTIFICATION_POLL_SECONDS", 300)

    DEFAULT_PAGE_SIZE = _int_env("DEFAULT_PAGE_SIZE", 100)
    MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 500)

    # Barcode scanner heuristics (keystroke bursts)
    SCANNER_MAX_INTERVAL_MS = _int_env("SCANNER_MAX_INTERVAL_MS", 50)
    SCANNER_MIN_LENGTH = _int_env("SCANNER_MIN_LENGTH", 8)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser origins allowed to call the API (comma separated)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if o.strip()
    )
