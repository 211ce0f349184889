# environment configuration, read once at process start
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """
    Process wide configuration.

    Fields:
      - db_path: sqlite file backing the document store
      - payment_provider: key into ``shop.payments.GATEWAYS``
      - admin_email / admin_password: bootstrap super-admin system account
      - api_host / api_port: bind address of the HTTP surface
    """

    db_path: str = "data/timberline.sqlite"
    payment_provider: str = "manual"
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    debug: bool = False


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def load_settings() -> Settings:
    port = _env("TIMBERLINE_API_PORT", "8000")
    return Settings(
        db_path=_env("TIMBERLINE_DB_PATH", Settings.db_path),
        payment_provider=_env("TIMBERLINE_PAYMENT_PROVIDER", "manual").lower(),
        admin_email=_env("TIMBERLINE_ADMIN_EMAIL").lower() or None,
        admin_password=_env("TIMBERLINE_ADMIN_PASSWORD") or None,
        api_host=_env("TIMBERLINE_API_HOST", Settings.api_host),
        api_port=int(port) if port.isdigit() else Settings.api_port,
        debug=bool(os.getenv("DEBUG") or os.getenv("TIMBERLINE_DEBUG")),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings; used by tests that tweak the environment."""
    global _settings
    _settings = None
