"""
Configuration service for runtime system settings.
"""
import os
from typing import Optional

_DEFAULT_BULK_MAX_ITEMS = 50
_DEFAULT_IMPORT_MAX_FILE_BYTES = 5 * 1024 * 1024
_DEFAULT_AUDIT_LOG_MAX_LIMIT = 200

# Fixed bound on reference-number collisions before giving up
REFERENCE_MAX_ATTEMPTS = 3


def _int_from_env(name: str, fallback: int) -> int:
    env_value = os.getenv(name)
    if not env_value:
        return fallback
    try:
        return int(env_value)
    except ValueError:
        return fallback


def get_bulk_max_items() -> int:
    """Maximum ids accepted by bulk status change and bulk archive."""
    return _int_from_env("BULK_MAX_ITEMS", _DEFAULT_BULK_MAX_ITEMS)


def get_import_max_file_bytes() -> int:
    return _int_from_env("IMPORT_MAX_FILE_BYTES", _DEFAULT_IMPORT_MAX_FILE_BYTES)


def get_audit_log_max_limit() -> int:
    return _int_from_env("AUDIT_LOG_MAX_LIMIT", _DEFAULT_AUDIT_LOG_MAX_LIMIT)


def get_smtp_settings() -> Optional[dict]:
    """Return SMTP settings, or None when email delivery is not configured."""
    host = os.getenv("SMTP_HOST")
    user = os.getenv("SMTP_USER")
    password = os.getenv("SMTP_PASS")
    if not host or not user or not password:
        return None

    return {
        "host": host,
        "port": _int_from_env("SMTP_PORT", 587),
        "user": user,
        "password": password,
        "from_address": os.getenv("SMTP_FROM", "noreply@damagetrack.local"),
    }
