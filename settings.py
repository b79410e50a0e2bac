from __future__ import annotations
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


APP_NAME = os.getenv("APP_NAME", "Holland x Ziwei Career Guidance REST")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
APP_ENV = os.getenv("APP_ENV", "production").lower()
DEBUG = _env_bool("DEBUG") or APP_ENV in {"development", "dev", "local", "test"}

CORS_ALLOW_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
TRUSTED_HOSTS: List[str] = [h.strip() for h in os.getenv("TRUSTED_HOSTS", "*").split(",") if h.strip()]
GZIP_MIN_SIZE = int(os.getenv("GZIP_MIN_SIZE", "1000"))
REQUEST_LOGGING = os.getenv("REQUEST_LOGGING", "basic").lower()  # "off" | "basic" | "full"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Narrative service (OpenAI-compatible chat completions)
PLACEHOLDER_API_KEYS = frozenset({"sk-your-deepseek-api-key", "your-deepseek-api-key-here"})
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "")
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com")
DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
# Host functions are killed at 10s; keep headroom for the rest of the pipeline.
DEEPSEEK_TIMEOUT_SECONDS = float(os.getenv("DEEPSEEK_TIMEOUT_SECONDS", "7"))

ZIWEI_LANGUAGE = os.getenv("ZIWEI_LANGUAGE", "zh-CN")


def usable_api_key(key: Optional[str]) -> Optional[str]:
    """Return the key, or None when it is empty or a known placeholder."""
    if key is None:
        return None
    key = key.strip()
    if not key or key in PLACEHOLDER_API_KEYS:
        return None
    return key
