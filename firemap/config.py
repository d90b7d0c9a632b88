"""
config.py -- настройки консоли, читаются из переменных окружения.

Каждое значение можно задать без правки кода (локальный .env / shell).
"""
from __future__ import annotations
import os
import logging


def _env(name, default, cast=str):
    """
    Read an environment variable and cast it to the right type.
    If the var is missing, empty or unparsable, return *default*.
    """
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        if cast is bool:
            return raw.strip().lower() in ("true", "1", "yes")
        return cast(raw)
    except (ValueError, TypeError):
        return default


# Supabase (PostgREST) -- хранилище реестра приборов и рынков
SUPABASE_URL: str = _env("SUPABASE_URL", "")
SUPABASE_KEY: str = _env("SUPABASE_KEY", "")

# таймаут одного HTTP-запроса, секунды
HTTP_TIMEOUT: float = _env("FIREMAP_HTTP_TIMEOUT", 10.0, float)

# таблицы
DETECTOR_TABLE: str = _env("FIREMAP_DETECTOR_TABLE", "detectors")
REPEATER_TABLE: str = _env("FIREMAP_REPEATER_TABLE", "repeaters")
RECEIVER_TABLE: str = _env("FIREMAP_RECEIVER_TABLE", "receivers")
MARKET_TABLE: str = _env("FIREMAP_MARKET_TABLE", "markets")
REMEDIATION_TABLE: str = _env("FIREMAP_REMEDIATION_TABLE", "device_actions")

# потоки для сохранения координат
SAVE_WORKERS: int = _env("FIREMAP_SAVE_WORKERS", 2, int)

LOG_LEVEL: str = _env("FIREMAP_LOG_LEVEL", "INFO").upper()


def supabase_enabled() -> bool:
    return bool(SUPABASE_URL and SUPABASE_KEY)


def log_level() -> int:
    return getattr(logging, LOG_LEVEL, logging.INFO)
