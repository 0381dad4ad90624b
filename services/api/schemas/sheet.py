"""
Pydantic schemas for the sheet view and row editing.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class SheetRowOut(BaseModel):
    """One of the viewer's rows, with edits applied."""
    row_index: int = Field(..., ge=1, description="1-based data row index (header excluded)")
    cells: List[str] = Field(..., description="Effective value per column (pending > saved > original)")
    display: List[str] = Field(..., description="Cells after the column display policy (e.g. truncated)")
    editable: List[bool] = Field(..., description="Per-column edit permission; column 0 is always false")
    has_unsaved_changes: bool = False


class SheetViewOut(BaseModel):
    """Response of GET /sheet."""
    headers: List[str]
    rows: List[SheetRowOut]
    user_email: str
    total_rows: int = Field(..., description="Data rows in the whole sheet, not only the viewer's")


class CellEditIn(BaseModel):
    """Schema for typing into one cell."""
    value: str = Field(..., description="New cell value (stored verbatim, no trimming)")


class CellEditOut(BaseModel):
    row_index: int
    cell_index: int
    value: str
    has_unsaved_changes: bool = True


class SaveOut(BaseModel):
    """Result of saving one row."""
    status: str = "saved"
    row_index: int
    row_data: List[str]
    forwarded: bool = Field(False, description="A write-back to the source sheet was scheduled")


class RefreshOut(BaseModel):
    headers: List[str]
    total_rows: int
    saved_edits: int
    message: Optional[str] = None
