# backend/zenibo/config.py
from __future__ import annotations
import os


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Signs bearer tokens; must be overridden outside local development
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///zenibo.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TOKEN_TTL_DAYS = int(os.environ.get("TOKEN_TTL_DAYS", "30"))
    SUBSCRIPTION_PERIOD_DAYS = int(os.environ.get("SUBSCRIPTION_PERIOD_DAYS", "30"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = _split_csv(os.environ.get("CORS_ALLOWED_ORIGINS")) or [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8788",
        "http://127.0.0.1:8788",
    ]

    # None -> "<instance_path>/receipts" (resolved in create_app)
    RECEIPT_STORAGE_DIR = os.environ.get("RECEIPT_STORAGE_DIR")
    RECEIPT_ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "application/pdf")
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
