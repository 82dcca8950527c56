"""
Runtime settings.

Values come from the process environment after loading the project's .env
file. Every option has a default except the Supabase credentials, which are
required only when STORE_BACKEND=supabase.

Environment variables:
- STORE_BACKEND: "memory" (default) or "supabase"
- SUPABASE_URL / SUPABASE_KEY: Supabase project URL and server-side API key
- TAX_RATE_PERCENT: combined tax rate applied at sale registration (default 23.0,
  i.e. 5% ISS + 18% ICMS)
- EXPIRY_WINDOW_DAYS: days ahead that count as "expiring soon" (default 7)
- LOW_STOCK_THRESHOLD: stock at or below which a LOW_STOCK alert is raised (default 5)
- NOTIFICATION_QUEUE_SIZE: pending outcome messages kept for listeners (default 100)
- LOG_LEVEL / LOG_FILE: logging level and optional rotating log file
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

# Project directory (pos-inventory/), where the .env file lives.
BASE_DIR = Path(__file__).resolve().parent.parent

STORE_BACKENDS = ("memory", "supabase")


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    tax_rate_percent: Decimal = Decimal("23.0")
    expiry_window_days: int = 7
    low_stock_threshold: int = 5
    notification_queue_size: int = 100
    log_level: str = "INFO"
    log_file: Optional[Path] = None


def _read_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid environment variable: {name}={raw!r} is not an integer.") from None
    if value < minimum:
        raise RuntimeError(f"Invalid environment variable: {name} must be >= {minimum}, got {value}.")
    return value


def _read_decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise RuntimeError(f"Invalid environment variable: {name}={raw!r} is not a decimal number.") from None
    if not value.is_finite() or value < 0:
        raise RuntimeError(f"Invalid environment variable: {name} must be a non-negative number, got {raw!r}.")
    return value


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """Build Settings from a mapping of environment variables (no .env loading)."""

    store_backend = env.get("STORE_BACKEND", "memory").strip().lower() or "memory"
    if store_backend not in STORE_BACKENDS:
        raise RuntimeError(
            f"Invalid environment variable: STORE_BACKEND={store_backend!r}. "
            f"Expected one of: {', '.join(STORE_BACKENDS)}."
        )

    supabase_url = env.get("SUPABASE_URL") or None
    supabase_key = env.get("SUPABASE_KEY") or None

    if store_backend == "supabase":
        if not supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )
        if not supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )

    log_file = env.get("LOG_FILE") or None

    return Settings(
        store_backend=store_backend,
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        tax_rate_percent=_read_decimal(env, "TAX_RATE_PERCENT", Decimal("23.0")),
        expiry_window_days=_read_int(env, "EXPIRY_WINDOW_DAYS", 7),
        low_stock_threshold=_read_int(env, "LOW_STOCK_THRESHOLD", 5),
        notification_queue_size=_read_int(env, "NOTIFICATION_QUEUE_SIZE", 100, minimum=1),
        log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        log_file=Path(log_file) if log_file else None,
    )


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """Load .env (without overriding the real environment) and read Settings."""

    load_dotenv(dotenv_path=env_path or BASE_DIR / ".env")
    return settings_from_env(os.environ)


__all__ = ["BASE_DIR", "STORE_BACKENDS", "Settings", "load_settings", "settings_from_env"]
