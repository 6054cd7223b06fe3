"""Shared data structures used across all components."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

PREVIEW_LIMIT = 100


@functools.total_ordering
class UrgencyLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def interrupts(self) -> bool:
        """Only urgent messages break through a focus session."""
        return self is UrgencyLevel.URGENT

    @property
    def emoji(self) -> str:
        return _EMOJI[self]

    def __lt__(self, other):
        if not isinstance(other, UrgencyLevel):
            return NotImplemented
        return self.rank < other.rank


_RANKS = {
    UrgencyLevel.LOW: 0,
    UrgencyLevel.MEDIUM: 1,
    UrgencyLevel.HIGH: 2,
    UrgencyLevel.URGENT: 3,
}

_EMOJI = {
    UrgencyLevel.LOW: "🟢",
    UrgencyLevel.MEDIUM: "🟡",
    UrgencyLevel.HIGH: "🟠",
    UrgencyLevel.URGENT: "🔴",
}


@dataclass
class SlackMessage:
    channel: str  # channel name or ID
    channel_id: str  # raw channel ID
    sender: str  # display name or user ID
    sender_id: str  # raw user ID
    text: str  # message body
    ts: str = ""  # origin timestamp of the message
    mentioned_user_ids: list[str] = field(default_factory=list)


@dataclass
class Classification:
    urgency: UrgencyLevel
    reason: str  # brief explanation from the LLM or the keyword fallback
    should_interrupt: bool


@dataclass
class FocusSession:
    id: str
    user_id: str
    started_at: datetime
    ends_at: datetime
    is_active: bool = True
    created_at: datetime | None = None

    def is_live(self, now: datetime) -> bool:
        """Active and not yet past its deadline."""
        return self.is_active and self.ends_at > now

    def remaining(self, now: datetime) -> timedelta:
        return self.ends_at - now


@dataclass
class HeldItem:
    session_id: str
    channel_id: str
    channel_name: str
    sender_id: str
    sender_name: str
    message_text: str
    message_ts: str
    urgency: UrgencyLevel
    classification_reason: str
    id: str = ""
    received_at: datetime | None = None


@dataclass
class NotificationLog:
    user_id: str
    channel_id: str
    sender_id: str
    message_preview: str
    urgency: UrgencyLevel
    was_held: bool
    id: str = ""
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        self.message_preview = self.message_preview[:PREVIEW_LIMIT]
