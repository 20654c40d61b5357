# backend/agency/config.py
from __future__ import annotations
import os


class Config:
    # Signs the session cookie checked by require_auth
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///agency.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Unset REDIS_URL disables the list cache (every read is a miss)
    REDIS_URL = os.environ.get("REDIS_URL") or None
    CACHE_KEY_PREFIX = os.environ.get("CACHE_KEY_PREFIX", "mm")
    CACHE_TTL_LIST = int(os.environ.get("CACHE_TTL_LIST", "120"))

    # Retries for lock timeouts / deadlocks, not for insufficient stock
    ORDER_COMMIT_ATTEMPTS = int(os.environ.get("ORDER_COMMIT_ATTEMPTS", "3"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
