"""HTTP client for the Bitrix24 REST webhook."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from bitrix_export.config import (
    COMPANY_LIST_METHOD,
    DEFAULT_TIMEOUT_MS,
    ORDER_KEY,
    validate_webhook_url,
)
from bitrix_export.errors import ApiError, TransportError, WebhookError
from bitrix_export.utils.logger import get_logger, log

LOG = get_logger("bitrix_client")


@dataclass
class BitrixClient:
    """Thin wrapper over a requests session bound to one inbound webhook."""

    webhook_url: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    session: requests.Session = field(default_factory=requests.Session)
    request_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.webhook_url = validate_webhook_url(self.webhook_url)
        self.session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "bitrix-export/1.0",
            }
        )

    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
    ) -> Any:
        url = f"{self.webhook_url}{path.lstrip('/')}"
        timeout = (timeout_ms or self.timeout_ms) / 1000.0
        self.request_count += 1

        try:
            response = self.session.request(method, url, params=params, timeout=timeout)
        except requests.Timeout as exc:
            raise TransportError(TransportError.TIMEOUT, f"Request timed out after {timeout:.0f}s") from exc
        except requests.RequestException as exc:
            raise TransportError(TransportError.UNREACHABLE, f"Could not reach {url}: {exc.__class__.__name__}") from exc

        status = response.status_code
        log(
            "bitrix_client",
            "DEBUG",
            "http_response",
            url=url,
            status=status,
            params=params,
        )

        if not response.content:
            raise ApiError(ApiError.EMPTY_RESPONSE, "Empty response from server", status=status)

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if payload is None or (not isinstance(payload, (dict, list)) and not payload):
            raise ApiError(ApiError.EMPTY_RESPONSE, "Empty response from server", status=status)

        if isinstance(payload, dict) and payload.get("error"):
            raise ApiError(
                str(payload["error"]),
                payload.get("error_description"),
                status=status,
            )

        if not 200 <= status < 300:
            raise ApiError(f"HTTP_{status}", (response.text or "")[:400], status=status)

        return payload

    # ------------------------------------------------------------------
    def fetch_page(
        self,
        cursor: int,
        order_key: str = ORDER_KEY,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> Any:
        """Fetch one page of ``crm.company.list`` starting at ``cursor``.

        Returns the decoded body untouched; checking that it carries a
        ``result`` list is left to the caller.
        """
        if cursor < 0:
            raise ValueError("cursor must be >= 0")
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")

        params = {"start": cursor, "order": order_key}
        return self._request("GET", COMPANY_LIST_METHOD, params=params, timeout_ms=timeout_ms)

    # ------------------------------------------------------------------
    def send_message(self, message: Dict[str, Any]) -> Any:
        url = self.webhook_url
        self.request_count += 1
        try:
            response = self.session.post(url, json=message, timeout=self.timeout_ms / 1000.0)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise WebhookError(f"Webhook error: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
