# services/api/core/sessions.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from cachetools import TTLCache

from core.row_merge import EditSession

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    """
    Editing state of one signed-in user: the rows they were shown, the
    header row, and their pending / saved edits.
    """
    user_id: str
    user_email: str
    edits: EditSession = field(default_factory=EditSession)
    headers: List[str] = field(default_factory=list)
    loaded: bool = False


class _SessionCache(TTLCache):
    """TTLCache that logs capacity evictions (they discard unsaved edits)."""

    def popitem(self):
        user_id, session = super().popitem()
        pending = len(session.edits.pending_row_indexes())
        logger.warning(
            f"Session limit reached; evicted session of user {user_id} "
            f"({pending} row(s) with unsaved edits)"
        )
        return user_id, session


class SessionRegistry:
    """
    One UserSession per user id, dropped after `ttl_seconds` without access.

    At most `maxsize` sessions are kept; when a new user arrives at the
    limit, the least recently used session is evicted with its pending edits.
    Two browser tabs of the same user share the session; different users
    never do.
    """

    def __init__(self, ttl_seconds: int = 3600, maxsize: int = 1024) -> None:
        self._sessions: TTLCache = _SessionCache(maxsize=maxsize, ttl=ttl_seconds)

    @property
    def maxsize(self) -> int:
        return int(self._sessions.maxsize)

    def get(self, user_id: str) -> Optional[UserSession]:
        session = self._sessions.get(user_id)
        if session is not None:
            # re-insert to refresh the idle timer
            self._sessions[user_id] = session
        return session

    def get_or_create(self, user_id: str, user_email: str) -> UserSession:
        session = self.get(user_id)
        if session is None:
            session = UserSession(user_id=user_id, user_email=user_email)
            self._sessions[user_id] = session
            logger.info(f"New edit session for user {user_id}")
        else:
            session.user_email = user_email
        return session

    def drop(self, user_id: str) -> None:
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.edits.reset()

    def __len__(self) -> int:
        return len(self._sessions)
