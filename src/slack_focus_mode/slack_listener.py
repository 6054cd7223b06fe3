"""Socket Mode connection and ``message`` event parsing."""

from __future__ import annotations

import collections
import logging
import os
import threading
from typing import Callable

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from slack_focus_mode.filters import extract_mentions
from slack_focus_mode.models import SlackMessage

logger = logging.getLogger(__name__)

# Subtypes that carry a newly posted message; joins, topic changes, edits
# and deletions are never triaged.
_TRIAGED_SUBTYPES = frozenset({None, "bot_message", "file_share", "me_message", "thread_broadcast"})

_DEDUP_WINDOW = 1000


class SlackListener:
    """Owns the bolt ``App`` and turns ``message`` events into SlackMessages.

    Slack redelivers events on reconnect, so the last ``_DEDUP_WINDOW`` event
    IDs are remembered. Channel and user names are cached for the life of
    the process.
    """

    def __init__(self) -> None:
        self._app = App(token=os.environ["SLACK_BOT_TOKEN"])
        self._handler = SocketModeHandler(self._app, os.environ["SLACK_APP_TOKEN"])

        self._bot_user_id: str = self._app.client.auth_test()["user_id"]
        logger.info("Bot user ID resolved: %s", self._bot_user_id)

        self._seen: collections.deque[str] = collections.deque(maxlen=_DEDUP_WINDOW)
        self._seen_lock = threading.Lock()
        self._channel_names: dict[str, str] = {}
        self._user_names: dict[str, str] = {}

    @property
    def bot_user_id(self) -> str:
        return self._bot_user_id

    @property
    def app(self) -> App:
        return self._app

    @property
    def client(self):
        return self._app.client

    def start(self) -> None:
        """Block on the Socket Mode connection."""
        logger.info("Starting Socket Mode handler")
        self._handler.start()

    def close(self) -> None:
        logger.info("Closing Socket Mode handler")
        self._handler.close()

    def parse_event(self, event: dict, client) -> SlackMessage | None:
        """Build a SlackMessage, or None for duplicates and non-message events."""
        event_id = event.get("client_msg_id") or event.get("ts")
        if event_id is None or self._is_duplicate(event_id):
            logger.debug("Dropping duplicate or unidentified event %s", event_id)
            return None

        subtype = event.get("subtype")
        if subtype not in _TRIAGED_SUBTYPES:
            logger.debug("Dropping %s event", subtype)
            return None

        channel_id = event.get("channel")
        # Integrations post without a user but always carry a bot_id.
        sender_id = event.get("user") or event.get("bot_id")
        if not channel_id or not sender_id:
            logger.debug("Dropping event without channel or sender: %s", event_id)
            return None

        if event.get("channel_type") in ("im", "mpim"):
            channel_name = "DM"
        else:
            channel_name = self._lookup(
                self._channel_names,
                channel_id,
                lambda: client.conversations_info(channel=channel_id)["channel"]["name"],
            )
        sender_name = self._lookup(self._user_names, sender_id, lambda: _display_name(client, sender_id))

        text = event.get("text", "")
        return SlackMessage(
            channel=channel_name,
            channel_id=channel_id,
            sender=sender_name,
            sender_id=sender_id,
            text=text,
            ts=event.get("ts", ""),
            mentioned_user_ids=extract_mentions(text),
        )

    def _is_duplicate(self, event_id: str) -> bool:
        # bolt dispatches listeners on a thread pool
        with self._seen_lock:
            if event_id in self._seen:
                return True
            self._seen.append(event_id)
            return False

    @staticmethod
    def _lookup(cache: dict[str, str], key: str, fetch: Callable[[], str]) -> str:
        """Cached name lookup; a failed or empty lookup caches the raw ID."""
        if key not in cache:
            try:
                cache[key] = fetch() or key
            except Exception:
                logger.warning("Failed to resolve name for %s; using ID", key)
                cache[key] = key
        return cache[key]


def _display_name(client, user_id: str) -> str:
    user = client.users_info(user=user_id)["user"]
    profile = user.get("profile", {})
    return profile.get("display_name") or profile.get("real_name") or user.get("real_name", "")
