#!/usr/bin/env python3
"""Export every Bitrix24 CRM company to a JSON snapshot."""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from bitrix_export.bitrix_client import BitrixClient
from bitrix_export.config import (
    TEST_OUTPUT,
    WEBHOOK_EXAMPLE,
    load_settings,
    validate_webhook_url,
)
from bitrix_export.errors import BitrixError
from bitrix_export.pipeline import collect_companies
from bitrix_export.reporting import describe_error, display_results
from bitrix_export.storage import save_snapshot
from bitrix_export.utils.logger import log

SAMPLE_COMPANIES = [
    {"ID": "1", "NAME": "Test 1", "EMAIL": "test1@test.com"},
    {"ID": "2", "NAME": "Test 2", "PHONE": "+79990001122"},
]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export Bitrix24 CRM companies to JSON")
    parser.add_argument("webhook_url", nargs="?", help=f"Inbound webhook URL, e.g. {WEBHOOK_EXAMPLE}")
    parser.add_argument("--test", action="store_true", help="Use sample data instead of the API")
    parser.add_argument("--output", default=None, help="Output JSON file")
    return parser.parse_args(argv)


def run_test_mode(output: str) -> int:
    print("Test mode with sample data")
    companies = [dict(row) for row in SAMPLE_COMPANIES]
    display_results(companies)
    if save_snapshot(companies, output):
        print(f"Saved to {output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings()

    if args.test:
        return run_test_mode(args.output or TEST_OUTPUT)

    try:
        webhook_url = validate_webhook_url(args.webhook_url or settings.webhook_url)
        output = args.output or settings.output

        log("fetch_companies", "INFO", "starting", webhook_url=webhook_url, output=output)
        print("Loading companies...\n")

        client = BitrixClient(webhook_url, timeout_ms=settings.timeout_ms)
        result = collect_companies(
            client,
            max_companies=settings.max_companies,
            timeout_ms=settings.timeout_ms,
        )
    except BitrixError as exc:
        log("fetch_companies", "ERROR", "failed", error=exc.__class__.__name__, detail=str(exc))
        for line in describe_error(exc):
            print(line, file=sys.stderr)
        return 1

    companies = result.companies
    if result.partial:
        print(f"Warning: malformed response from the API, keeping {len(companies)} companies")

    if companies:
        saved = save_snapshot(companies, output)
        if saved:
            print(f"Saved {len(companies)} companies to {saved}")
        else:
            print(f"Warning: could not save {output}", file=sys.stderr)
        display_results(companies)
    else:
        print("No companies found")

    log(
        "fetch_companies",
        "INFO",
        "finished",
        rows=len(companies),
        requests=result.state.request_count,
        reason=result.reason.value,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
