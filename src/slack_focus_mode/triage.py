"""Hold-or-pass decision for messages reaching a user in focus mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from slack_focus_mode.config import Config
from slack_focus_mode.llm_classifier import classify
from slack_focus_mode.models import (
    Classification,
    FocusSession,
    HeldItem,
    NotificationLog,
    SlackMessage,
)
from slack_focus_mode.store import SessionStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class Disposition:
    user_id: str
    classification: Classification
    held: bool


def _log_disposition(
    store: SessionStore, msg: SlackMessage, user_id: str, classification: Classification, held: bool
) -> None:
    """Append the audit record; failures never affect the disposition."""
    entry = NotificationLog(
        user_id=user_id,
        channel_id=msg.channel_id,
        sender_id=msg.sender_id,
        message_preview=msg.text,
        urgency=classification.urgency,
        was_held=held,
    )
    try:
        store.insert_notification_log(entry)
    except StoreError as exc:
        logger.warning("Error logging notification for %s: %s", user_id, exc)


def triage_message(
    msg: SlackMessage,
    user_id: str,
    session: FocusSession,
    *,
    store: SessionStore,
    config: Config,
    classification: Classification | None = None,
) -> Disposition:
    """Classify a message for a focusing user and hold it unless it is urgent.

    A precomputed ``classification`` may be passed when the same message is
    triaged for several users.
    """
    if classification is None:
        classification = classify(msg.text, msg.channel, msg.sender, config)

    held = False
    if classification.should_interrupt:
        logger.info(
            "Passed through (%s): %s / %s -> %s",
            user_id,
            msg.channel,
            msg.sender,
            classification.urgency.value,
        )
    else:
        item = HeldItem(
            session_id=session.id,
            channel_id=msg.channel_id,
            channel_name=msg.channel,
            sender_id=msg.sender_id,
            sender_name=msg.sender,
            message_text=msg.text,
            message_ts=msg.ts,
            urgency=classification.urgency,
            classification_reason=classification.reason,
        )
        try:
            store.insert_held_item(item)
            held = True
        except StoreError as exc:
            logger.error("Error holding message for %s: %s", user_id, exc)
        else:
            logger.info(
                "Held (%s): %s / %s -> %s reason=%s",
                user_id,
                msg.channel,
                msg.sender,
                classification.urgency.value,
                classification.reason,
            )

    _log_disposition(store, msg, user_id, classification, held)
    return Disposition(user_id=user_id, classification=classification, held=held)
