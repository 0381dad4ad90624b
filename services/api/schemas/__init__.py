"""
Pydantic schemas for API request/response validation.
"""
from .sheet import (
    CellEditIn,
    CellEditOut,
    RefreshOut,
    SaveOut,
    SheetRowOut,
    SheetViewOut,
)
from .sync import SyncRequest, SyncResponse

__all__ = [
    "CellEditIn",
    "CellEditOut",
    "RefreshOut",
    "SaveOut",
    "SheetRowOut",
    "SheetViewOut",
    "SyncRequest",
    "SyncResponse",
]
