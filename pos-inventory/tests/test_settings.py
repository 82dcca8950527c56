"""
Tests for `config/settings.py`.

Covers contract rules:
- Every option has a default; Supabase credentials are required only for the
  Supabase backend.
- Invalid values fail fast with RuntimeError naming the variable.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from config.settings import Settings, settings_from_env


def test_defaults() -> None:
    settings = settings_from_env({})

    assert settings == Settings()
    assert settings.store_backend == "memory"
    assert settings.tax_rate_percent == Decimal("23.0")
    assert settings.expiry_window_days == 7
    assert settings.low_stock_threshold == 5
    assert settings.log_file is None


def test_values_are_read_from_environment() -> None:
    settings = settings_from_env(
        {
            "STORE_BACKEND": "Supabase",
            "SUPABASE_URL": "https://example.supabase.co",
            "SUPABASE_KEY": "service-key",
            "TAX_RATE_PERCENT": "18",
            "EXPIRY_WINDOW_DAYS": "3",
            "LOW_STOCK_THRESHOLD": "10",
            "NOTIFICATION_QUEUE_SIZE": "20",
            "LOG_LEVEL": "debug",
            "LOG_FILE": "logs/pos.log",
        }
    )

    assert settings.store_backend == "supabase"
    assert settings.tax_rate_percent == Decimal("18")
    assert settings.expiry_window_days == 3
    assert settings.low_stock_threshold == 10
    assert settings.notification_queue_size == 20
    assert settings.log_level == "DEBUG"
    assert settings.log_file == Path("logs/pos.log")


@pytest.mark.parametrize("missing", ["SUPABASE_URL", "SUPABASE_KEY"])
def test_supabase_backend_requires_credentials(missing) -> None:
    env = {
        "STORE_BACKEND": "supabase",
        "SUPABASE_URL": "https://example.supabase.co",
        "SUPABASE_KEY": "service-key",
    }
    del env[missing]

    with pytest.raises(RuntimeError, match=missing):
        settings_from_env(env)


@pytest.mark.parametrize(
    "env, variable",
    [
        ({"STORE_BACKEND": "firestore"}, "STORE_BACKEND"),
        ({"EXPIRY_WINDOW_DAYS": "seven"}, "EXPIRY_WINDOW_DAYS"),
        ({"LOW_STOCK_THRESHOLD": "-1"}, "LOW_STOCK_THRESHOLD"),
        ({"NOTIFICATION_QUEUE_SIZE": "0"}, "NOTIFICATION_QUEUE_SIZE"),
        ({"TAX_RATE_PERCENT": "lots"}, "TAX_RATE_PERCENT"),
        ({"TAX_RATE_PERCENT": "-5"}, "TAX_RATE_PERCENT"),
    ],
)
def test_invalid_values_fail_fast(env, variable) -> None:
    with pytest.raises(RuntimeError, match=variable):
        settings_from_env(env)
