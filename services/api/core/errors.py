# services/api/core/errors.py
"""
Domain errors for the sheet editor.

Routers translate these into HTTP responses; the sync job turns them into
an error entry in the sync log.
"""


class SheetEditorError(Exception):
    """Base class for all domain errors."""


class SheetFetchError(SheetEditorError):
    """The spreadsheet export could not be downloaded (network or non-2xx status)."""


class EmptySheetError(SheetEditorError):
    """The spreadsheet export parsed to zero rows."""


class RowNotFoundError(SheetEditorError):
    """No pending edit, saved edit or original row exists for a row index."""

    def __init__(self, row_index: int):
        super().__init__(f"Row {row_index} not found")
        self.row_index = row_index


class RowNotEditableError(SheetEditorError):
    """The viewer tried to edit a row (or column) they do not own."""


class EditPersistenceError(SheetEditorError):
    """The edit store rejected an upsert."""
