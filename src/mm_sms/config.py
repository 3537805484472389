from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

NormalizerPolicy = Literal["strict", "infer"]

# Repo root in local dev
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


class Settings(BaseModel):
    # Message log and webhook registration; sqlite next to the checkout by default
    database_url: str = os.getenv("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'mm_sms.db'}")

    # --- MessageMedia credentials (HTTP Basic auth) ---
    messagemedia_api_key: str | None = os.getenv("MESSAGEMEDIA_API_KEY")
    messagemedia_api_secret: str | None = os.getenv("MESSAGEMEDIA_API_SECRET")
    messagemedia_base_url: str = os.getenv("MESSAGEMEDIA_BASE_URL", "https://api.messagemedia.com")
    request_timeout_seconds: float = _env_float("MESSAGEMEDIA_TIMEOUT", 15.0)

    # --- Sending behaviour ---
    normalizer_policy: NormalizerPolicy = os.getenv("PHONE_NORMALIZER", "strict")  # type: ignore[assignment]
    default_country: str | None = os.getenv("DEFAULT_COUNTRY") or None
    rate_limit_ms: int = _env_int("SMS_RATE_LIMIT_MS", 0)

    # Public URL MessageMedia should POST inbound SMS to
    public_webhook_url: str | None = os.getenv("PUBLIC_WEBHOOK_URL")

    admin_token: str | None = os.getenv("ADMIN_TOKEN")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
