"""Paginated retrieval of the Bitrix24 company list."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from bitrix_export.bitrix_client import BitrixClient
from bitrix_export.config import DEFAULT_MAX_COMPANIES, DEFAULT_TIMEOUT_MS, ORDER_KEY, PAGE_SIZE
from bitrix_export.errors import FormatError
from bitrix_export.utils.logger import log


class StopReason(str, Enum):
    EMPTY_PAGE = "empty_page"
    CAP_REACHED = "cap_reached"
    SHORT_PAGE = "short_page"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass
class FetchState:
    """Progress of one retrieval run; starts from cursor 0 every time."""

    cursor: int = 0
    fetched: int = 0
    request_count: int = 0


@dataclass
class FetchResult:
    companies: List[Dict[str, Any]]
    state: FetchState
    reason: StopReason
    error: Optional[FormatError] = field(default=None, repr=False)

    @property
    def partial(self) -> bool:
        """True when the loop stopped on a malformed page before end-of-data."""
        return self.reason is StopReason.MALFORMED_RESPONSE


def _page_records(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        raise FormatError(f"Expected a JSON object, got {type(payload).__name__}")
    records = payload.get("result")
    if not isinstance(records, list):
        raise FormatError("Response has no 'result' list")
    return records


def collect_companies(
    client: BitrixClient,
    *,
    page_size: int = PAGE_SIZE,
    max_companies: int = DEFAULT_MAX_COMPANIES,
    order_key: str = ORDER_KEY,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> FetchResult:
    """Walk ``crm.company.list`` until end-of-data or the safety cap.

    Pages are requested sequentially with a fixed ``order`` so consecutive
    offsets never overlap. The loop stops on an empty page, when the
    collection reaches ``max_companies`` (checked after appending, so the
    result may overshoot by one page) or on a page shorter than
    ``page_size``. A malformed page ends the loop early and the records
    gathered so far are returned with ``reason=MALFORMED_RESPONSE``.
    Transport and API errors raised by the client propagate unchanged.
    """
    if page_size <= 0:
        raise ValueError("page_size must be > 0")
    if max_companies <= 0:
        raise ValueError("max_companies must be > 0")

    state = FetchState()
    companies: List[Dict[str, Any]] = []

    log("pipeline", "INFO", "companies_start", page_size=page_size, max_companies=max_companies)

    while True:
        state.request_count += 1
        payload = client.fetch_page(state.cursor, order_key, timeout_ms)

        try:
            page = _page_records(payload)
        except FormatError as exc:
            log("pipeline", "WARNING", "companies_malformed_page", cursor=state.cursor, error=str(exc))
            return _finish(companies, state, StopReason.MALFORMED_RESPONSE, error=exc)

        if not page:
            log("pipeline", "INFO", "companies_empty_page", cursor=state.cursor)
            return _finish(companies, state, StopReason.EMPTY_PAGE)

        companies.extend(page)
        state.fetched = len(companies)
        log(
            "pipeline",
            "INFO",
            "companies_page",
            cursor=state.cursor,
            count=len(page),
            total=state.fetched,
            server_total=payload.get("total"),
        )

        if state.fetched >= max_companies:
            log("pipeline", "INFO", "companies_cap_reached", cap=max_companies, total=state.fetched)
            return _finish(companies, state, StopReason.CAP_REACHED)

        if len(page) < page_size:
            log("pipeline", "INFO", "companies_last_page", count=len(page), page_size=page_size)
            return _finish(companies, state, StopReason.SHORT_PAGE)

        state.cursor += len(page)


def _finish(
    companies: List[Dict[str, Any]],
    state: FetchState,
    reason: StopReason,
    *,
    error: Optional[FormatError] = None,
) -> FetchResult:
    state.fetched = len(companies)
    log(
        "pipeline",
        "INFO",
        "companies_finished",
        total=state.fetched,
        requests=state.request_count,
        reason=reason.value,
    )
    return FetchResult(companies=companies, state=state, reason=reason, error=error)
