# services/api/core/sheet_source.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx
from cachetools import TTLCache

from core.csv_parser import parse_csv
from core.errors import SheetFetchError
from models import SheetRow, rows_from_parsed

logger = logging.getLogger(__name__)


@dataclass
class SheetData:
    headers: List[str] = field(default_factory=list)
    rows: List[SheetRow] = field(default_factory=list)


class SheetSource:
    """
    Reads the source spreadsheet through its CSV export endpoint:

        GET {spreadsheet_host}/{sheet_id}/export?format=csv

    Parsed results are cached for `cache_ttl_seconds` so that a burst of
    page loads hits the export endpoint once.
    """

    def __init__(
        self,
        spreadsheet_host: str,
        sheet_id: str,
        timeout: Optional[float] = 30.0,
        cache_ttl_seconds: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.spreadsheet_host = spreadsheet_host.rstrip("/")
        self.sheet_id = sheet_id
        self.timeout = timeout
        self.transport = transport
        self._cache: Optional[TTLCache] = (
            TTLCache(maxsize=1, ttl=cache_ttl_seconds) if cache_ttl_seconds > 0 else None
        )

    def uncached(self) -> "SheetSource":
        """Same sheet and transport, no cache (the sync job always reads fresh)."""
        return SheetSource(
            spreadsheet_host=self.spreadsheet_host,
            sheet_id=self.sheet_id,
            timeout=self.timeout,
            cache_ttl_seconds=0,
            transport=self.transport,
        )

    def export_url(self) -> str:
        return f"{self.spreadsheet_host}/{self.sheet_id}/export?format=csv"

    async def fetch_csv(self) -> str:
        """
        Download the raw CSV export.

        Raises:
            SheetFetchError: not configured, network error or non-2xx status
        """
        if not self.sheet_id:
            raise SheetFetchError("SHEET_ID is not configured")

        url = self.export_url()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException:
            logger.error(f"Timeout fetching sheet export: {url}")
            raise SheetFetchError("Failed to fetch sheet: timeout")
        except httpx.RequestError as e:
            logger.error(f"Error fetching sheet export: {e}")
            raise SheetFetchError(f"Failed to fetch sheet: {e}")

        if not response.is_success:
            logger.error(f"Failed to fetch sheet: HTTP {response.status_code}")
            raise SheetFetchError(f"Failed to fetch sheet: {response.status_code}")

        logger.info(f"Fetched sheet export ({len(response.content)} bytes)")
        return response.text

    async def fetch(self, force: bool = False) -> SheetData:
        """
        Fetch and split the sheet into headers and 1-based data rows.

        An empty export is not an error here; the caller simply gets no rows.
        """
        if self._cache is not None and not force:
            cached = self._cache.get("sheet")
            if cached is not None:
                return cached

        text = await self.fetch_csv()
        headers, rows = rows_from_parsed(parse_csv(text))
        data = SheetData(headers=headers, rows=rows)

        if self._cache is not None:
            self._cache["sheet"] = data
        return data

    def invalidate(self) -> None:
        if self._cache is not None:
            self._cache.clear()
