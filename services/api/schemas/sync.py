"""
Pydantic schemas for sheet synchronization.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class SyncRequest(BaseModel):
    """Body of POST /sync."""
    sync_type: Literal["manual", "scheduled"] = Field("manual", description="Who triggered the sync")


class SyncResponse(BaseModel):
    """Result of one sync run; unset fields are omitted from the response."""
    success: bool
    rows_synced: Optional[int] = None
    headers: Optional[List[str]] = None
    message: Optional[str] = None
    error: Optional[str] = None
