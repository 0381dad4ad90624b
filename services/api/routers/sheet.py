# services/api/routers/sheet.py
"""
Sheet view + row editing endpoints.

The viewer only ever sees (and edits) rows whose column A is their email.
"""
from __future__ import annotations

import io
import logging

from fastapi import APIRouter, HTTPException, Path, status
from fastapi.responses import StreamingResponse

from core.csv_parser import serialize_rows
from core.errors import EditPersistenceError, RowNotEditableError, RowNotFoundError, SheetFetchError
from core.row_merge import is_cell_editable, is_editable, require_cell_editable, user_rows
from core.sessions import UserSession
from routers.deps import Edits, Policy, Session, Source, User
from schemas.sheet import (
    CellEditIn,
    CellEditOut,
    RefreshOut,
    SaveOut,
    SheetRowOut,
    SheetViewOut,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sheet", tags=["sheet"])


async def _load(session: UserSession, source, edit_service, force: bool = False) -> int:
    """
    (Re)load sheet rows + saved edits into the session.
    A reload drops all pending edits.
    """
    try:
        data = await source.fetch(force=force)
    except SheetFetchError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    session.edits.replace_rows(data.rows)
    session.headers = list(data.headers)
    try:
        saved = edit_service.load_saved_edits(session.edits, session.user_id)
    except Exception as e:
        logger.error(f"Error loading saved edits for {session.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load saved edits")
    session.loaded = True
    return len(saved)


async def _ensure_loaded(session: UserSession, source, edit_service) -> None:
    if not session.loaded:
        await _load(session, source, edit_service)


def _owned_row_or_error(session: UserSession, row_index: int, email: str):
    row = session.edits.get_row(row_index)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Row {row_index} not found")
    if not is_editable(row, email):
        raise HTTPException(status_code=403, detail=f"Row {row_index} does not belong to {email}")
    return row


@router.get("", response_model=SheetViewOut)
async def get_sheet(user: User, session: Session, source: Source, edit_service: Edits, policy: Policy):
    """Return the viewer's rows with pending/saved edits applied."""
    await _ensure_loaded(session, source, edit_service)

    headers = session.headers
    width = len(headers)
    formatters = policy.formatters(headers)

    out = []
    for row in user_rows(session.edits.rows, user.email):
        cells = session.edits.effective_row(row.row_index, width=width)
        out.append(
            SheetRowOut(
                row_index=row.row_index,
                cells=cells,
                display=[formatters[i](c) for i, c in enumerate(cells)],
                editable=[is_cell_editable(row, i, user.email) for i in range(width)],
                has_unsaved_changes=session.edits.has_unsaved_changes(row.row_index),
            )
        )

    return SheetViewOut(
        headers=headers,
        rows=out,
        user_email=user.email,
        total_rows=len(session.edits.rows),
    )


@router.get("/export")
async def export_sheet(user: User, session: Session, source: Source, edit_service: Edits):
    """
    Download the viewer's rows as CSV (header row first).

    Cells are the effective values, unsaved edits included; the display
    policy is not applied.
    """
    await _ensure_loaded(session, source, edit_service)

    width = len(session.headers)
    rows = [list(session.headers)]
    rows.extend(
        session.edits.effective_row(row.row_index, width=width)
        for row in user_rows(session.edits.rows, user.email)
    )

    fname = "my_rows.csv"
    return StreamingResponse(
        io.BytesIO(serialize_rows(rows).encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{fname}"'}
    )


@router.post("/refresh", response_model=RefreshOut)
async def refresh_sheet(session: Session, source: Source, edit_service: Edits):
    """Refetch the sheet (bypassing the cache); pending edits are discarded."""
    saved = await _load(session, source, edit_service, force=True)
    return RefreshOut(
        headers=session.headers,
        total_rows=len(session.edits.rows),
        saved_edits=saved,
        message="Sheet reloaded",
    )


@router.put("/rows/{row_index}/cells/{cell_index}", response_model=CellEditOut)
async def edit_cell(
    body: CellEditIn,
    user: User,
    session: Session,
    source: Source,
    edit_service: Edits,
    row_index: int = Path(..., ge=1),
    cell_index: int = Path(..., ge=0),
):
    """Type into one cell; the change stays pending until the row is saved."""
    await _ensure_loaded(session, source, edit_service)
    row = session.edits.get_row(row_index)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Row {row_index} not found")
    try:
        require_cell_editable(row, cell_index, user.email)
    except RowNotEditableError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if session.headers and cell_index >= len(session.headers):
        raise HTTPException(status_code=404, detail=f"Column {cell_index} not found")

    session.edits.apply_cell_edit(row_index, cell_index, body.value)
    return CellEditOut(
        row_index=row_index,
        cell_index=cell_index,
        value=session.edits.effective_value(row_index, cell_index),
        has_unsaved_changes=session.edits.has_unsaved_changes(row_index),
    )


@router.delete("/rows/{row_index}/pending")
async def discard_pending(user: User, session: Session, row_index: int = Path(..., ge=1)):
    """Throw away unsaved edits of a row."""
    discarded = session.edits.discard_pending(row_index)
    return {"row_index": row_index, "discarded": discarded}


@router.post("/rows/{row_index}/save", response_model=SaveOut)
async def save_row(
    user: User,
    session: Session,
    source: Source,
    edit_service: Edits,
    row_index: int = Path(..., ge=1),
):
    """
    Persist the row (pending > saved > original) for this user.

    The write-back to the source sheet runs in the background; its
    failure does not affect this response.
    """
    await _ensure_loaded(session, source, edit_service)
    if session.edits.get_row(row_index) is not None:
        _owned_row_or_error(session, row_index, user.email)

    try:
        result = await edit_service.save(session.edits, user.id, user.email, row_index)
    except RowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EditPersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return SaveOut(
        row_index=result.row_index,
        row_data=result.row_data,
        forwarded=result.forwarded,
    )
