# backend/rainbow_room/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/rainbow_room.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///rainbow_room.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Uploads (CSV/XLSX imports) are parsed in memory
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    # Stock thresholds applied when an item or category does not set its own
    DEFAULT_MIN_STOCK_LEVEL = int(os.environ.get("DEFAULT_MIN_STOCK_LEVEL", "5"))
    DEFAULT_LOW_STOCK_THRESHOLD = int(os.environ.get("DEFAULT_LOW_STOCK_THRESHOLD", "5"))

    # Scannable item codes look like RR-1A2B3C4D
    ITEM_CODE_PREFIX = os.environ.get("ITEM_CODE_PREFIX", "RR-")

    # Seeded by `flask system init`
    DEFAULT_LOCATIONS = (
        {"name": "McKinney", "city": "McKinney", "state": "TX"},
        {"name": "Plano", "city": "Plano", "state": "TX"},
    )

    CORS_ALLOWED_ORIGINS = (
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    )

    EXPORT_FILENAME_PREFIX = "inventory-export"
