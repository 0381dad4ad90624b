# services/api/core/mirror.py
"""
Best-effort write-back of saved rows to the source spreadsheet.

The database is the source of truth. Forwarding runs as a background task
whose outcome is only logged: it never changes the result of a save and a
failed forward never rolls back the stored edit.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional, Protocol, Set

import gspread
import httpx
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)


class RowForwarder(Protocol):
    async def forward(self, row_index: int, row_data: List[str]) -> bool:
        """Send one saved row to the mirror. Returns False on failure, never raises."""
        ...


class NullForwarder:
    """Used when write-back is disabled."""

    async def forward(self, row_index: int, row_data: List[str]) -> bool:
        return True


class WebhookForwarder:
    """
    POST {url} with {"row_index": int, "row_data": [...]}.
    """

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def forward(self, row_index: int, row_data: List[str]) -> bool:
        payload = {"row_index": row_index, "row_data": list(row_data)}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"✗ Webhook forward failed for row {row_index}: {e}")
            return False

        if not response.is_success:
            logger.warning(
                f"✗ Webhook forward for row {row_index} returned HTTP {response.status_code}"
            )
            return False

        logger.info(f"✓ Row {row_index} forwarded to webhook")
        return True


# ========== Google Sheets write-back ==========

def _sa_client_from_json_or_path(google_sa_json: str) -> gspread.Client:
    """
    Accepts either:
      - absolute/relative path to a service-account JSON file, OR
      - a literal JSON string.
    Returns an authorized gspread Client.
    """
    if not google_sa_json:
        raise ValueError("GOOGLE_SA_JSON is required (path to file or inline JSON).")

    # Try to treat as inline JSON first
    try:
        parsed = json.loads(google_sa_json)
        creds = Credentials.from_service_account_info(
            parsed,
            scopes=["https://www.googleapis.com/auth/spreadsheets"],
        )
        return gspread.authorize(creds)
    except json.JSONDecodeError:
        # Not JSON; treat as file path
        creds = Credentials.from_service_account_file(
            google_sa_json,
            scopes=["https://www.googleapis.com/auth/spreadsheets"],
        )
        return gspread.authorize(creds)


def retry_sheets_api(func):
    """Decorator to retry Sheets API calls with exponential backoff on quota errors."""
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((gspread.exceptions.APIError,)),
        reraise=True,
    )
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


class SheetsWriteBackForwarder:
    """
    Writes a saved row straight into the source worksheet.

    Data row N lives on sheet row N + 1 (row 1 is the header).
    The worksheet is opened lazily on the first forward.
    """

    def __init__(
        self,
        google_sa_json: str,
        spreadsheet_id: str,
        worksheet_title: str = "Sheet1",
        worksheet: Optional[gspread.Worksheet] = None,
    ) -> None:
        if worksheet is None and (not google_sa_json or not spreadsheet_id):
            raise ValueError("Sheets write-back requires GOOGLE_SA_JSON and SHEET_ID")
        self.google_sa_json = google_sa_json
        self.spreadsheet_id = spreadsheet_id
        self.worksheet_title = worksheet_title
        self._ws = worksheet

    def _worksheet(self) -> gspread.Worksheet:
        if self._ws is None:
            gc = _sa_client_from_json_or_path(self.google_sa_json)
            self._ws = gc.open_by_key(self.spreadsheet_id).worksheet(self.worksheet_title)
        return self._ws

    @retry_sheets_api
    def _write_row(self, row_index: int, row_data: List[str]) -> None:
        self._worksheet().update(
            range_name=f"A{row_index + 1}",
            values=[list(row_data)],
            value_input_option="RAW",
        )

    async def forward(self, row_index: int, row_data: List[str]) -> bool:
        try:
            await asyncio.to_thread(self._write_row, row_index, row_data)
        except Exception as e:
            logger.warning(f"✗ Sheets write-back failed for row {row_index}: {e}")
            return False
        logger.info(f"✓ Row {row_index} written back to worksheet '{self.worksheet_title}'")
        return True


# ========== Fire-and-forget dispatch ==========

class MirrorDispatcher:
    """
    Runs forwarder calls as background tasks and keeps a reference to each
    until it finishes (asyncio only keeps weak references to tasks).
    """

    def __init__(self, forwarder: Optional[RowForwarder] = None) -> None:
        self.forwarder: RowForwarder = forwarder or NullForwarder()
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, row_index: int, row_data: List[str]) -> asyncio.Task:
        task = asyncio.create_task(self.forwarder.forward(row_index, list(row_data)))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Mirror forward cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Mirror forward crashed: {exc}", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_for_forwards(self) -> None:
        """Wait for every scheduled forward (shutdown / tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def build_forwarder(settings) -> RowForwarder:
    """
    Pick the forwarder from settings.mirror_backend (webhook | sheets | none).
    """
    backend = (settings.mirror_backend or "none").lower()
    if backend == "webhook":
        if not settings.webhook_url:
            logger.info("MIRROR_BACKEND=webhook but WEBHOOK_URL is empty; write-back disabled")
            return NullForwarder()
        return WebhookForwarder(settings.webhook_url, timeout=settings.http_timeout_seconds)
    if backend == "sheets":
        return SheetsWriteBackForwarder(
            google_sa_json=settings.resolved_google_sa_json(),
            spreadsheet_id=settings.sheet_id,
            worksheet_title=settings.mirror_worksheet_title,
        )
    if backend == "none":
        return NullForwarder()
    raise ValueError(f"Unknown MIRROR_BACKEND: {settings.mirror_backend}")
