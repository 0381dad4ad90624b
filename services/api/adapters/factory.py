# services/api/adapters/factory.py
from __future__ import annotations

import logging

from adapters.base import StorageAdapter

logger = logging.getLogger(__name__)


def build_storage_adapter(settings) -> StorageAdapter:
    """
    Build the adapter named by STORAGE_BACKEND (sqlite | json).
    """
    backend = settings.storage_backend.lower()

    if backend == "sqlite":
        from adapters.sqlite import SqliteAdapter

        logger.info(f"Initializing SQL adapter ({settings.db_url.split('://')[0]})...")
        return SqliteAdapter.from_url(settings.db_url)

    if backend == "json":
        from adapters.json import JsonAdapter

        logger.info(f"Initializing JSON adapter in '{settings.json_data_dir}'...")
        return JsonAdapter(settings.json_data_dir)

    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")
