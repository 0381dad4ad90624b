"""
Canned spreadsheet exports served through httpx.MockTransport.
"""
import httpx

from core.sheet_source import SheetSource

SAMPLE_CSV = (
    "Email,Name,Notes\r\n"
    "alice@example.com,Alice,\"likes, commas\"\r\n"
    "bob@example.com,Bob,plain\r\n"
    " Alice@Example.com ,Alice Two,\"multi\nline\"\r\n"
    ",,\r\n"
)

HOST = "https://sheets.test/spreadsheets/d"


def csv_transport(body: str = SAMPLE_CSV, status_code: int = 200, calls: list = None):
    """MockTransport serving `body` for every export request."""
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, text=body)

    return httpx.MockTransport(handler)


def failing_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


def make_source(transport, sheet_id: str = "test-sheet", cache_ttl_seconds: int = 0) -> SheetSource:
    return SheetSource(
        spreadsheet_host=HOST,
        sheet_id=sheet_id,
        timeout=5.0,
        cache_ttl_seconds=cache_ttl_seconds,
        transport=transport,
    )
