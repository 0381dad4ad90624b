# services/api/routers/edits.py
from fastapi import APIRouter, HTTPException
from typing import List
import logging

from models import SavedEdit
from models.converters import saved_edit_from_storage
from routers.deps import Storage, User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/edits", tags=["edits"])


@router.get("", response_model=List[SavedEdit])
async def list_my_edits(user: User, storage: Storage):
    """All rows this user has saved (never another user's)."""
    try:
        return [saved_edit_from_storage(r) for r in storage.list_edits(user.id)]
    except Exception as e:
        logger.error(f"Error fetching edits for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch saved edits")
