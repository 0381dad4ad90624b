# services/api/adapters/sqlite/__init__.py
from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    insert,
    select,
    text,
    update,
    event,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)

def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in db_url

def make_engine(db_url: str) -> Engine:
    if _is_memory_url(db_url):
        # single shared connection, otherwise every checkout sees an empty DB
        return create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # Create data dir if sqlite file
    if db_url.startswith("sqlite:///"):
        file_path = db_url.replace("sqlite:///", "", 1)
        _ensure_dir(file_path)
        engine = create_engine(
            db_url,
            future=True,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            db_url,
            future=True,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA temp_store=MEMORY;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

sheet_edits = Table(
    "sheet_edits",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False),
    Column("user_email", String, nullable=False, default=""),
    Column("original_row_index", Integer, nullable=False),
    Column("row_data", JSON, nullable=False),  # list of cell strings
    Column("created_at", DateTime, nullable=False, default=_utcnow),
    Column("updated_at", DateTime, nullable=False, default=_utcnow),
    UniqueConstraint("user_id", "original_row_index", name="uq_sheet_edits_user_row"),
)

sheet_sync = Table(
    "sheet_sync",
    metadata,
    Column("id", String, primary_key=True),
    Column("row_index", Integer, nullable=False, unique=True),
    Column("row_data", JSON, nullable=False),  # header -> cell
    Column("synced_at", DateTime, nullable=False, default=_utcnow),
)

sync_logs = Table(
    "sync_logs",
    metadata,
    Column("id", String, primary_key=True),
    Column("sync_type", String, nullable=False, default="manual"),
    Column("rows_synced", Integer, nullable=False, default=0),
    Column("status", String, nullable=False),
    Column("error_message", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
    CheckConstraint("sync_type IN ('manual', 'scheduled')", name="ck_sync_type"),
    CheckConstraint("status IN ('success', 'error')", name="ck_sync_status"),
)

Index("idx_sheet_edits_user", sheet_edits.c.user_id)
Index("idx_sync_logs_created", sync_logs.c.created_at)

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    """
    SQLAlchemy Core storage. Despite the name any SQLAlchemy URL works;
    upserts use ON CONFLICT on SQLite and PostgreSQL.
    """
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/sheet_editor.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        return cls(engine=eng)

    # Edits
    def upsert_edit(
        self,
        user_id: str,
        user_email: str,
        original_row_index: int,
        row_data: List[str],
    ) -> Dict[str, Any]:
        now = _utcnow()
        values = dict(
            id=str(uuid4()),
            user_id=user_id,
            user_email=user_email or "",
            original_row_index=int(original_row_index),
            row_data=list(row_data),
            created_at=now,
            updated_at=now,
        )
        key = (sheet_edits.c.user_id == user_id) & (
            sheet_edits.c.original_row_index == int(original_row_index)
        )

        with self.engine.begin() as conn:
            dialect = conn.dialect.name
            if dialect in ("sqlite", "postgresql"):
                dialect_insert = sqlite_insert if dialect == "sqlite" else pg_insert
                stmt = dialect_insert(sheet_edits).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[sheet_edits.c.user_id, sheet_edits.c.original_row_index],
                    set_={
                        "user_email": stmt.excluded.user_email,
                        "row_data": stmt.excluded.row_data,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                conn.execute(stmt)
            else:
                existing = conn.execute(select(sheet_edits.c.id).where(key)).first()
                if existing:
                    conn.execute(
                        update(sheet_edits)
                        .where(key)
                        .values(user_email=values["user_email"], row_data=values["row_data"], updated_at=now)
                    )
                else:
                    conn.execute(insert(sheet_edits).values(**values))

            row = conn.execute(select(sheet_edits).where(key)).mappings().first()
            return dict(row)

    def list_edits(self, user_id: str) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(sheet_edits)
                .where(sheet_edits.c.user_id == user_id)
                .order_by(sheet_edits.c.original_row_index.asc())
            ).mappings().all()
            return [dict(r) for r in rows]

    # Mirror (delete + insert in one transaction)
    def replace_mirror(self, rows: List[Dict[str, Any]]) -> int:
        payload = [
            dict(
                id=str(uuid4()),
                row_index=int(r["row_index"]),
                row_data=dict(r["row_data"]),
                synced_at=r.get("synced_at") or _utcnow(),
            )
            for r in rows
        ]
        with self.engine.begin() as conn:
            conn.execute(delete(sheet_sync))
            if payload:
                conn.execute(sheet_sync.insert(), payload)
        return len(payload)

    def list_mirror(self) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(sheet_sync).order_by(sheet_sync.c.row_index.asc())
            ).mappings().all()
            return [dict(r) for r in rows]

    # Sync log
    def append_sync_log(
        self,
        sync_type: str,
        rows_synced: int,
        status: str,
        error_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        entry = dict(
            id=str(uuid4()),
            sync_type=sync_type,
            rows_synced=int(rows_synced),
            status=status,
            error_message=error_message,
            created_at=_utcnow(),
        )
        with self.engine.begin() as conn:
            conn.execute(insert(sync_logs).values(**entry))
        return entry

    def list_sync_logs(self, limit: int = 20) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(sync_logs).order_by(sync_logs.c.created_at.desc()).limit(limit)
            ).mappings().all()
            return [dict(r) for r in rows]

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()
