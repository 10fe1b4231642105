from __future__ import annotations

import os
from typing import Iterable


def get_port() -> int:
    try:
        return int(os.getenv("PORT", "3000"))
    except Exception:
        return 3000


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def use_fake_redis() -> bool:
    url = get_redis_url()
    return os.getenv("USE_FAKE_REDIS", "0") == "1" or url.startswith("memory://") or url.startswith("redis+fake://")


def get_store_connect_timeout() -> float:
    try:
        return float(os.getenv("STORE_CONNECT_TIMEOUT", "2"))
    except Exception:
        return 2.0


def get_cors_origins() -> list[str]:
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    parts: Iterable[str] = (o.strip() for o in origins_env.split(","))
    return [o for o in parts if o]


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_assistant_api_key() -> str | None:
    key = os.getenv("GEMINI_API_KEY", "").strip()
    if not key or key == "PLACEHOLDER_API_KEY":
        return None
    return key


def get_assistant_model() -> str:
    return os.getenv("DRAFT_ASSISTANT_MODEL", "gemini-1.5-flash")


def get_assistant_base_url() -> str:
    return os.getenv("DRAFT_ASSISTANT_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/")


def get_host() -> str:
    return os.getenv("HOST", "127.0.0.1")
