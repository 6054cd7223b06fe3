"""Batch summary of held messages, delivered by DM when a session ends."""

from __future__ import annotations

import logging

from slack_sdk.errors import SlackClientError

from slack_focus_mode.models import HeldItem, UrgencyLevel
from slack_focus_mode.notifier import NotifierError, send_dm

logger = logging.getLogger(__name__)

HEADER = "🎉 *Focus session complete!*"
NO_MESSAGES_TEXT = f"{HEADER}\n\nNo messages were held during your session."

MAX_ITEMS_PER_CHANNEL = 5
PREVIEW_LENGTH = 80


def urgency_emoji(urgency: UrgencyLevel | str) -> str:
    """Map an urgency to its marker; anything unrecognised reads as low."""
    try:
        return UrgencyLevel(urgency).emoji
    except ValueError:
        return UrgencyLevel.LOW.emoji


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def group_by_channel(items: list[HeldItem]) -> dict[str, list[HeldItem]]:
    """Group items by channel name (or ID), keeping first-seen channel order."""
    groups: dict[str, list[HeldItem]] = {}
    for item in items:
        groups.setdefault(item.channel_name or item.channel_id, []).append(item)
    return groups


def compose_summary(items: list[HeldItem]) -> str:
    if not items:
        return NO_MESSAGES_TEXT

    lines = [HEADER, "", f"📬 *{plural(len(items), 'message')} held:*", ""]
    for channel, channel_items in group_by_channel(items).items():
        lines.append(f"*#{channel}* ({len(channel_items)}):")
        for item in channel_items[:MAX_ITEMS_PER_CHANNEL]:
            lines.append(
                f"  {urgency_emoji(item.urgency)} *{item.sender_name or item.sender_id}*: "
                f"{_preview(item.message_text)}"
            )
        if len(channel_items) > MAX_ITEMS_PER_CHANNEL:
            lines.append(f"  _...and {len(channel_items) - MAX_ITEMS_PER_CHANNEL} more_")
        lines.append("")
    return "\n".join(lines)


def send_batch_summary(client, user_id: str, items: list[HeldItem]) -> None:
    """Compose and DM the summary. Delivery failures are logged, not raised."""
    text = compose_summary(items)
    try:
        send_dm(client, user_id, text)
    except (SlackClientError, NotifierError, OSError) as exc:
        logger.error("Error sending batch summary to %s: %s", user_id, exc)
        return
    logger.info("Batch summary sent to %s (%d item(s))", user_id, len(items))
