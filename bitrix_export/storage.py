"""JSON snapshot persistence for exported companies."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from bitrix_export.config import SNAPSHOT_VERSION
from bitrix_export.errors import PersistenceError
from bitrix_export.utils.logger import get_logger, log

LOG = get_logger("storage")


def _iso_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def build_snapshot(
    companies: List[Dict[str, Any]],
    generated_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    return {
        "meta": {
            "generatedAt": _iso_utc(generated_at or datetime.now(timezone.utc)),
            "totalCompanies": len(companies),
            "version": SNAPSHOT_VERSION,
        },
        "data": companies,
    }


def write_snapshot(companies: List[Dict[str, Any]], destination: Path | str) -> Path:
    path = Path(destination)
    try:
        text = json.dumps(build_snapshot(companies), ensure_ascii=False, indent=2)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Could not write {path}: {exc}") from exc

    log("storage", "INFO", "snapshot_written", path=path, companies=len(companies))
    return path


def save_snapshot(companies: List[Dict[str, Any]], destination: Path | str) -> Optional[Path]:
    """Write the snapshot, logging instead of raising when it fails."""
    try:
        return write_snapshot(companies, destination)
    except PersistenceError as exc:
        LOG.warning("Snapshot not saved: %s", exc)
        return None


def read_snapshot(source: Path | str) -> Dict[str, Any]:
    path = Path(source)
    try:
        snapshot = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PersistenceError(f"Could not read {path}: {exc}") from exc

    if not isinstance(snapshot, dict) or not isinstance(snapshot.get("meta"), dict):
        raise PersistenceError(f"{path} has no 'meta' section")
    if not isinstance(snapshot.get("data"), list):
        raise PersistenceError(f"{path} has no 'data' list")

    try:
        date_parser.isoparse(str(snapshot["meta"].get("generatedAt")))
    except (ValueError, TypeError) as exc:
        raise PersistenceError(f"{path} has an invalid generatedAt: {exc}") from exc

    return snapshot
