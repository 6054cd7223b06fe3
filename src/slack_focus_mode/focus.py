"""Focus session lifecycle: start, query, end.

A user has no session, a live session, or an expired one. Expiry is never
written anywhere: a row whose ``ends_at`` has passed is simply not returned
by :meth:`FocusSessionManager.get_active`, so there is nothing to sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from slack_focus_mode.models import FocusSession, HeldItem
from slack_focus_mode.store import SessionStore, StoreError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionStart:
    session: FocusSession | None  # None when the insert failed
    previous_items: list[HeldItem] = field(default_factory=list)


class FocusSessionManager:
    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def start(self, user_id: str, duration_ms: int) -> SessionStart:
        """Start a session, first ending any live one for the user.

        The prior session is drained exactly as :meth:`end` would, and its
        held items come back in ``previous_items``.
        """
        previous_items = self.end(user_id)

        now = self._clock()
        session = FocusSession(
            id="",
            user_id=user_id,
            started_at=now,
            ends_at=now + timedelta(milliseconds=duration_ms),
            is_active=True,
        )
        try:
            session = self._store.insert_session(session)
        except StoreError as exc:
            logger.error("Error starting focus session for %s: %s", user_id, exc)
            return SessionStart(session=None, previous_items=previous_items)

        logger.info(
            "Focus session %s started for %s until %s",
            session.id,
            user_id,
            session.ends_at.isoformat(),
        )
        return SessionStart(session=session, previous_items=previous_items)

    def get_active(self, user_id: str) -> FocusSession | None:
        """The user's live session, or None (store failures count as none)."""
        try:
            return self._store.get_active_session(user_id, self._clock())
        except StoreError as exc:
            logger.warning("Could not look up focus session for %s: %s", user_id, exc)
            return None

    def end(self, user_id: str) -> list[HeldItem]:
        """End the user's live session and return its held items, oldest first."""
        session = self.get_active(user_id)
        if session is None:
            return []

        try:
            self._store.deactivate_session(session.id)
        except StoreError as exc:
            logger.error("Error deactivating focus session %s: %s", session.id, exc)

        try:
            items = self._store.list_held_items(session.id)
        except StoreError as exc:
            logger.error("Error reading held items for session %s: %s", session.id, exc)
            items = []

        logger.info(
            "Focus session %s ended for %s with %d held item(s)",
            session.id,
            user_id,
            len(items),
        )
        return items
