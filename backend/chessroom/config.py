"""Конфигурация приложения."""
import os
from functools import lru_cache


def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


@lru_cache
def get_config():
    return type("Config", (), {
        "debug": _flag("DEBUG"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "send_timeout_seconds": float(os.environ.get("SEND_TIMEOUT_SECONDS", "5")),
        "host": os.environ.get("HOST", "0.0.0.0"),
        "port": int(os.environ.get("PORT", "8000")),
    })()
