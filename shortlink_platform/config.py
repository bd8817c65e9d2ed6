"""
Runtime configuration for Shortlink Platform
============================================

Simple settings module that reads from environment variables (only here),
and exposes a stable `settings` object for the rest of the codebase.
Avoid reading env vars anywhere else; import from this module instead.

Links
-----
- SHORTLINK_BASE_URL          : base address of generated short links (default "http://localhost:5000")
- SHORTLINK_DEFAULT_VALIDITY  : validity in minutes when the caller sends none (default 30, min 1)

Short-code generation
---------------------
- SHORTLINK_CODE_LENGTH       : generated code length; default 8; clamped to [3, 20]
- SHORTLINK_MAX_ATTEMPTS      : collision retries before giving up (default 10, min 1)

HTTP / logging
--------------
- SHORTLINK_CORS_ORIGINS      : comma-separated allowed origins (default "http://localhost:3000")
- SHORTLINK_LOG_LEVEL         : root log level (default "INFO")
"""

import os
from typing import List


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _get_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class _Settings:
    # -------- Links --------
    BASE_URL: str = os.getenv("SHORTLINK_BASE_URL", "http://localhost:5000").strip().rstrip("/")
    DEFAULT_VALIDITY_MINUTES: int = max(1, _get_int("SHORTLINK_DEFAULT_VALIDITY", 30))

    # -------- Short-code generation --------
    CODE_LENGTH: int = max(3, min(20, _get_int("SHORTLINK_CODE_LENGTH", 8)))
    MAX_ATTEMPTS: int = max(1, _get_int("SHORTLINK_MAX_ATTEMPTS", 10))

    # -------- HTTP / logging --------
    CORS_ORIGINS: List[str] = _get_list("SHORTLINK_CORS_ORIGINS", "http://localhost:3000")
    LOG_LEVEL: str = os.getenv("SHORTLINK_LOG_LEVEL", "INFO").strip().upper()


settings = _Settings()
