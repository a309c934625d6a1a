"""Logging helpers with rotating file handler and webhook secret masking."""
from __future__ import annotations

from pathlib import Path
import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

_BASE = Path(__file__).resolve().parents[2]
_LOGGER_NAME = "bitrix_export"
_LOG_FILE = "bitrix_export.log"

# https://portal.bitrix24.ru/rest/1/abcdef123456/ -> .../rest/1/***/
_WEBHOOK_SECRET_RE = re.compile(r"(/rest/\d+/)([^/\s?]+)")
_LONG_TOKEN_RE = re.compile(r"[A-Za-z0-9_=\-]{32,}")
_MIN_SECRET_LENGTH = 8


def _log_dir() -> Path:
    override = os.getenv("BITRIX_LOG_DIR")
    if override:
        return Path(override)
    return _BASE / "data" / "logs"


def _ensure_logger() -> logging.Logger:
    """Configure the package logger once."""
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    level_name = (os.getenv("BITRIX_LOG_LEVEL") or "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_dir = _log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / _LOG_FILE,
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False
    return logger


def mask_sensitive(value: str) -> str:
    webhook = os.getenv("BITRIX_WEBHOOK_URL")
    if webhook:
        secret = _WEBHOOK_SECRET_RE.search(webhook)
        if secret and len(secret.group(2)) >= _MIN_SECRET_LENGTH:
            value = value.replace(secret.group(2), "***")
    value = _WEBHOOK_SECRET_RE.sub(r"\1***", value)
    return _LONG_TOKEN_RE.sub("***", value)


def _stringify_extra(extra: Dict[str, Any]) -> str:
    safe_pairs = []
    for key, value in extra.items():
        try:
            text = mask_sensitive(str(value))
        except Exception:
            text = "<unprintable>"
        safe_pairs.append(f"{key}={text}")
    return " ".join(safe_pairs)


def get_logger(component: str) -> logging.Logger:
    base = _ensure_logger()
    if component and component != _LOGGER_NAME:
        return base.getChild(component)
    return base


def log(component: str, level: str, message: str, **extra: Any) -> None:
    logger = get_logger(component)
    lvl = getattr(logging, (level or "INFO").upper(), logging.INFO)
    msg = mask_sensitive(message)
    if extra:
        msg = f"{msg} | {_stringify_extra(extra)}"
    logger.log(lvl, msg)
