"""Конфигурация приложения."""
import os
from functools import lru_cache


def _seed_from_env() -> int | None:
    raw = os.environ.get("GRIDSYNC_SEED", "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@lru_cache
def get_config():
    return type("Config", (), {
        "relay_url": os.environ.get("GRIDSYNC_RELAY_URL", "ws://localhost:8000/ws"),
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "log_level": os.environ.get("LOG_LEVEL", "INFO").upper(),
        "seed": _seed_from_env(),
    })()
