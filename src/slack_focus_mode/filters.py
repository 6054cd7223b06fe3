"""Decide which users an inbound message is addressed to."""

import logging
import re

from slack_focus_mode.models import SlackMessage

logger = logging.getLogger(__name__)

MENTION_RE = re.compile(r"<@([UW][A-Z0-9]+)(?:\|[^>]*)?>")


def extract_mentions(text: str) -> list[str]:
    """User IDs @mentioned in a message, in order of first appearance."""
    seen: list[str] = []
    for user_id in MENTION_RE.findall(text):
        if user_id not in seen:
            seen.append(user_id)
    return seen


def addressed_users(msg: SlackMessage, bot_user_id: str) -> list[str]:
    """Return the users a message should be triaged for.

    Evaluation order:
      1. self     — the bot's own messages (e.g. summaries) address nobody
      2. mentions — every @mentioned user except the sender and the bot
    """
    if msg.sender_id == bot_user_id:
        logger.debug("Own message in %s; not triaged", msg.channel)
        return []

    return [
        user_id
        for user_id in msg.mentioned_user_ids
        if user_id not in (msg.sender_id, bot_user_id)
    ]
