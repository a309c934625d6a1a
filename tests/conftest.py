from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Callable, Dict, List, Optional

import pytest

# handlers are attached once at import time, keep log files out of the tree
os.environ.setdefault("BITRIX_LOG_DIR", tempfile.mkdtemp(prefix="bitrix-export-logs-"))

ENV_VARS = ("BITRIX_WEBHOOK_URL", "BITRIX_TIMEOUT_MS", "BITRIX_MAX_COMPANIES", "BITRIX_OUTPUT")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # registers each variable so values loaded by dotenv are undone at teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None):
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")
        self.status_code = status_code

    def json(self) -> Any:
        return json.loads(self.text)

    def raise_for_status(self) -> None:
        import requests

        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def _next(self) -> FakeResponse:
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def request(self, method, url, params=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "timeout": timeout})
        return self._next()

    def post(self, url, json=None, timeout=None):
        self.calls.append({"method": "POST", "url": url, "json": json, "timeout": timeout})
        return self._next()


def page(size: int, start: int = 0, total: Optional[int] = None) -> FakeResponse:
    records = [{"ID": str(start + i + 1), "TITLE": f"Company {start + i + 1}"} for i in range(size)]
    body: Dict[str, Any] = {"result": records}
    if total is not None:
        body["total"] = total
    return FakeResponse(body)


@pytest.fixture
def fake_session() -> Callable[..., FakeSession]:
    return lambda *responses: FakeSession(list(responses))


@pytest.fixture
def webhook_url() -> str:
    return "https://example.bitrix24.ru/rest/1/abc123secret/"
