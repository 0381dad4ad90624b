# services/api/routers/deps.py
"""
Dependency helpers shared by the routers.

Everything is read from app.state, which main.create_app fills in.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from adapters.base import StorageAdapter
from core.column_policy import ColumnDisplayPolicy
from core.edit_persistence import EditService
from core.sessions import SessionRegistry, UserSession
from core.sheet_source import SheetSource
from core.sheet_sync import SyncJob


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str


def get_current_user(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_email: Annotated[Optional[str], Header()] = None,
) -> CurrentUser:
    """
    Identity comes from the auth layer in front of this API as
    X-User-Id / X-User-Email headers.
    """
    if not x_user_id or not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id and X-User-Email headers are required",
        )
    return CurrentUser(id=x_user_id.strip(), email=x_user_email.strip())


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{name} not configured on app.state")
    return value


def get_storage(request: Request) -> StorageAdapter:
    return _state(request, "storage_adapter")


def get_sheet_source(request: Request) -> SheetSource:
    return _state(request, "sheet_source")


def get_sessions(request: Request) -> SessionRegistry:
    return _state(request, "sessions")


def get_edit_service(request: Request) -> EditService:
    return _state(request, "edit_service")


def get_sync_job(request: Request) -> SyncJob:
    return _state(request, "sync_job")


def get_column_policy(request: Request) -> ColumnDisplayPolicy:
    return _state(request, "column_policy")


def get_user_session(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    sessions: Annotated[SessionRegistry, Depends(get_sessions)],
) -> UserSession:
    return sessions.get_or_create(user.id, user.email)


# ---- DI aliases ----
User = Annotated[CurrentUser, Depends(get_current_user)]
Storage = Annotated[StorageAdapter, Depends(get_storage)]
Source = Annotated[SheetSource, Depends(get_sheet_source)]
Edits = Annotated[EditService, Depends(get_edit_service)]
Sync = Annotated[SyncJob, Depends(get_sync_job)]
Policy = Annotated[ColumnDisplayPolicy, Depends(get_column_policy)]
Session = Annotated[UserSession, Depends(get_user_session)]
