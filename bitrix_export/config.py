"""Runtime settings loaded from the environment and ``.env``."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv

from bitrix_export.errors import ConfigError
from bitrix_export.utils.logger import log

ROOT = Path(__file__).resolve().parents[1]

PAGE_SIZE = 50
ORDER_KEY = "ID"
COMPANY_LIST_METHOD = "crm.company.list"
SNAPSHOT_VERSION = "1.0"

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_COMPANIES = 10000
DEFAULT_OUTPUT = "bitrix_companies.json"
TEST_OUTPUT = "test_output.json"

WEBHOOK_EXAMPLE = "https://your-domain.bitrix24.ru/rest/1/your-webhook/"


@dataclass
class Settings:
    webhook_url: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_companies: int = DEFAULT_MAX_COMPANIES
    output: str = DEFAULT_OUTPUT


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        log("config", "WARNING", "invalid_setting", name=name, value=raw, default=default)
        return default
    if value <= 0:
        log("config", "WARNING", "invalid_setting", name=name, value=raw, default=default)
        return default
    return value


def load_settings(env_file: Optional[Path] = None) -> Settings:
    if env_file is None:
        env_file = ROOT / ".env"
        if not env_file.exists():
            # installed package: look in the working directory and its parents
            found = find_dotenv(usecwd=True)
            env_file = Path(found) if found else None
    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=False)
    return Settings(
        webhook_url=(os.getenv("BITRIX_WEBHOOK_URL") or "").strip() or None,
        timeout_ms=_positive_int("BITRIX_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
        max_companies=_positive_int("BITRIX_MAX_COMPANIES", DEFAULT_MAX_COMPANIES),
        output=(os.getenv("BITRIX_OUTPUT") or "").strip() or DEFAULT_OUTPUT,
    )


def validate_webhook_url(webhook_url: Optional[str]) -> str:
    """Return the webhook URL with a single trailing slash or raise ConfigError."""
    if not webhook_url or not webhook_url.strip():
        raise ConfigError("Webhook URL is required")

    url = webhook_url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError("Webhook URL must start with http:// or https://")

    return url.rstrip("/") + "/"
