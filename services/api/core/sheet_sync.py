# services/api/core/sheet_sync.py
"""
Synchronization job: pull the source spreadsheet into the `sheet_sync`
mirror table and record the attempt in `sync_logs`.

Run one sync from cron:
    python -m core.sheet_sync --scheduled
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from adapters.base import StorageAdapter
from core.alerts import SyncAlerter
from core.csv_parser import parse_csv
from core.errors import EmptySheetError
from core.sheet_source import SheetSource

logger = logging.getLogger(__name__)

SYNC_TYPES = ("manual", "scheduled")


@dataclass
class SyncResult:
    success: bool
    rows_synced: int = 0
    headers: List[str] = field(default_factory=list)
    message: Optional[str] = None
    error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        """Shape returned to callers: {success, rows_synced?, headers?, message?, error?}"""
        if self.success:
            return {
                "success": True,
                "rows_synced": self.rows_synced,
                "headers": self.headers,
                "message": self.message,
            }
        return {"success": False, "error": self.error}


def project_row(headers: Sequence[str], cells: Sequence[str]) -> Dict[str, str]:
    """Map a data row onto the header names; missing trailing cells become ""."""
    return {h: (cells[i] if i < len(cells) else "") for i, h in enumerate(headers)}


class SyncJob:
    """
    fetch -> parse -> replace mirror -> log

    Every run appends exactly one sync_logs entry, success or error.
    Concurrent runs are not serialized.
    """

    def __init__(
        self,
        source: SheetSource,
        storage: StorageAdapter,
        alerter: Optional[SyncAlerter] = None,
    ) -> None:
        self.source = source
        self.storage = storage
        self.alerter = alerter

    async def run(self, sync_type: str = "manual") -> SyncResult:
        if sync_type not in SYNC_TYPES:
            raise ValueError(f"sync_type must be one of {SYNC_TYPES}, got {sync_type!r}")

        logger.info(f"Starting {sync_type} sync for sheet: {self.source.sheet_id}")
        try:
            csv_text = await self.source.fetch_csv()
            parsed = parse_csv(csv_text)
            if not parsed:
                raise EmptySheetError("No data found in sheet")

            headers = parsed[0]
            data_rows = parsed[1:]
            logger.info(f"Parsed {len(data_rows)} rows with {len(headers)} columns")

            synced_at = datetime.now(timezone.utc)
            mirror_rows = [
                {
                    "row_index": i + 1,
                    "row_data": project_row(headers, cells),
                    "synced_at": synced_at,
                }
                for i, cells in enumerate(data_rows)
            ]

            rows_synced = self.storage.replace_mirror(mirror_rows)
        except Exception as e:
            return await self._fail(sync_type, str(e) or e.__class__.__name__)

        try:
            self.storage.append_sync_log(
                sync_type=sync_type,
                rows_synced=rows_synced,
                status="success",
            )
        except Exception as e:
            # the mirror is already committed at this point
            return await self._fail(
                sync_type,
                f"Mirror updated with {rows_synced} rows but the sync log write failed: {e}",
                rows_synced=rows_synced,
            )

        logger.info(f"✓ Successfully synced {rows_synced} rows")
        return SyncResult(
            success=True,
            rows_synced=rows_synced,
            headers=list(headers),
            message=f"Synced {rows_synced} rows",
        )

    async def _fail(self, sync_type: str, error_message: str, rows_synced: int = 0) -> SyncResult:
        logger.error(f"Sync error: {error_message}")
        self._log_failure(sync_type, error_message)
        await self._alert(sync_type, error_message)
        return SyncResult(success=False, rows_synced=rows_synced, error=error_message)

    def _log_failure(self, sync_type: str, error_message: str) -> None:
        try:
            self.storage.append_sync_log(
                sync_type=sync_type,
                rows_synced=0,
                status="error",
                error_message=error_message,
            )
        except Exception as log_error:
            logger.error(f"Failed to log sync error: {log_error}")

    async def _alert(self, sync_type: str, error_message: str) -> None:
        if self.alerter is None:
            return
        try:
            await self.alerter.sync_failed(
                error=error_message,
                context={"sync_type": sync_type, "sheet_id": self.source.sheet_id},
            )
        except Exception as alert_error:
            logger.error(f"Failed to send sync alert: {alert_error}")


def build_sync_job(settings, storage: StorageAdapter) -> SyncJob:
    source = SheetSource(
        spreadsheet_host=settings.spreadsheet_host,
        sheet_id=settings.sheet_id,
        timeout=settings.http_timeout_seconds,
        cache_ttl_seconds=0,
    )
    return SyncJob(source=source, storage=storage, alerter=SyncAlerter(settings))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Sync the source spreadsheet into the mirror table.")
    parser.add_argument(
        "--scheduled",
        action="store_true",
        help="Record the run as 'scheduled' instead of 'manual'",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    from settings import get_settings
    from adapters.factory import build_storage_adapter

    settings = get_settings()
    storage = build_storage_adapter(settings)
    job = build_sync_job(settings, storage)

    result = asyncio.run(job.run("scheduled" if args.scheduled else "manual"))
    if result.success:
        print(f"✅ {result.message}")
        return 0
    print(f"❌ Sync failed: {result.error}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
