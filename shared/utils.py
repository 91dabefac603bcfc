import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any

from shared.config import config


def setup_logging(service_name: str, log_level: str | None = None) -> logging.Logger:
    """Setup logging configuration for a service"""
    logger = logging.getLogger(service_name)
    level_name = (log_level or config.get("log_level") or "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"%(asctime)s - {service_name} - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def generate_hash(text: str) -> str:
    """Generate a hash for caching purposes"""
    return hashlib.md5(text.encode()).hexdigest()


def generate_bytes_hash(data: bytes) -> str:
    """Hash raw file content for caching purposes"""
    return hashlib.md5(data).hexdigest()


class Cache:
    """Simple in-memory cache with TTL"""

    def __init__(self):
        self._cache: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> Any | None:
        if key in self._cache:
            item = self._cache[key]
            if datetime.now() < item["expires"]:
                return item["value"]
            else:
                del self._cache[key]
        return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        self._cache[key] = {
            "value": value,
            "expires": datetime.now() + timedelta(seconds=ttl),
        }

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


__all__ = ["Cache", "config", "generate_bytes_hash", "generate_hash", "setup_logging"]
