"""Console summaries and error classification for operators."""
from __future__ import annotations

import sys
from typing import Any, Dict, List, Sequence, TextIO

from bitrix_export.config import COMPANY_LIST_METHOD
from bitrix_export.errors import (
    ApiError,
    ConfigError,
    TransportError,
    WebhookError,
)
from bitrix_export.utils.logger import mask_sensitive

RULE = "─" * 50

API_HINTS = {
    "ERROR_ACCESS_DENIED": "Access denied. Check the webhook URL and its permissions",
    "INVALID_TOKEN": "Invalid webhook token",
    "METHOD_NOT_FOUND": f"Method {COMPANY_LIST_METHOD} not found",
}


def display_results(
    companies: Sequence[Dict[str, Any]],
    *,
    limit: int = 5,
    stream: TextIO | None = None,
) -> None:
    out = stream or sys.stdout
    print("\n=== EXPORT RESULTS ===", file=out)
    print(f"Total companies: {len(companies)}", file=out)
    print(f"\nFirst {limit} companies (sample):", file=out)
    print(RULE, file=out)

    if not companies:
        print("No companies to display", file=out)
    for index, company in enumerate(companies[:limit], 1):
        if not isinstance(company, dict):
            print(f"{index}. <unrecognized record: {company!r}>", file=out)
            print("", file=out)
            continue
        name = company.get("NAME") or "Untitled"
        print(f"{index}. {name} (ID: {company.get('ID')})", file=out)
        if company.get("EMAIL"):
            print(f"   Email: {company['EMAIL']}", file=out)
        if company.get("PHONE"):
            print(f"   Phone: {company['PHONE']}", file=out)
        print("", file=out)

    print(RULE, file=out)


def describe_error(exc: BaseException) -> List[str]:
    """Turn an exception into the lines shown to the operator."""
    if isinstance(exc, ConfigError):
        return [
            f"Configuration error: {exc}",
            "   Example: bitrix-companies https://your-domain.bitrix24.ru/rest/1/xxx/",
        ]

    if isinstance(exc, TransportError):
        if exc.kind == TransportError.TIMEOUT:
            return [
                "Network error: request timed out",
                "   Try a larger BITRIX_TIMEOUT_MS or check the connection speed",
            ]
        return [
            "Network error: could not connect to the server",
            "   Check the internet connection and the webhook URL",
        ]

    if isinstance(exc, ApiError):
        lines = [
            "Bitrix24 API error:",
            f"   Code: {exc.code}",
            f"   Message: {exc.description or '-'}",
        ]
        hint = API_HINTS.get(exc.code)
        if hint:
            lines.append(f"   {hint}")
        else:
            lines.append("   Check the Bitrix24 REST documentation for this error code")
        return lines

    if isinstance(exc, WebhookError):
        return [mask_sensitive(str(exc))]

    return [f"Unknown error: {mask_sensitive(str(exc))}"]
