"""Slash-command handling: ``/focus on|off|status|help``.

Every path returns a short ephemeral reply. Input problems get a specific
message; anything unexpected is logged and answered with a generic one.
"""

from __future__ import annotations

import functools
import logging
from concurrent.futures import Executor, Future
from datetime import datetime

from slack_focus_mode.config import Config
from slack_focus_mode.duration import describe_duration, format_duration, parse_duration
from slack_focus_mode.focus import FocusSessionManager
from slack_focus_mode.models import HeldItem
from slack_focus_mode.summary import plural, send_batch_summary

logger = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "❌ Something went wrong. Please try again."
START_FAILED_TEXT = "❌ Failed to start focus session. Please try again."


def format_clock(value: datetime, config: Config) -> str:
    """Render a time as e.g. ``3:05 PM`` in the configured timezone."""
    local = value.astimezone(config.tzinfo)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def _remaining_ms(ends_at: datetime, now: datetime) -> float:
    return max((ends_at - now).total_seconds() * 1000, 0)


def _log_summary_failure(user_id: str, future: Future) -> None:
    """Nobody waits on a summary, so anything it raised is logged here."""
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Error sending batch summary to %s", user_id, exc_info=exc)


class FocusCommands:
    """Routes ``/focus`` subcommands to the session manager.

    Summaries are handed to ``executor`` and never waited on, so the reply
    to the user does not depend on DM delivery.
    """

    def __init__(self, manager: FocusSessionManager, config: Config, executor: Executor) -> None:
        self._manager = manager
        self._config = config
        self._executor = executor

    def handle(self, user_id: str, text: str, client) -> str:
        subcommand, *args = (text or "").split() or [""]
        try:
            return self._dispatch(user_id, subcommand.lower(), args, client)
        except Exception:
            logger.exception("Command error for %s: %r", user_id, text)
            return GENERIC_ERROR_TEXT

    def _dispatch(self, user_id: str, subcommand: str, args: list[str], client) -> str:
        if subcommand == "on":
            return self.focus_on(user_id, args[0] if args else None, client)
        if subcommand == "off":
            return self.focus_off(user_id, client)
        if subcommand == "status":
            return self.focus_status(user_id)
        if subcommand in ("", "help"):
            return self.help_text()
        # "/focus 2h" is shorthand for "/focus on 2h"
        if parse_duration(subcommand):
            return self.focus_on(user_id, subcommand, client)
        return self.help_text()

    def _dispatch_summary(self, client, user_id: str, items: list[HeldItem]) -> None:
        future = self._executor.submit(send_batch_summary, client, user_id, items)
        future.add_done_callback(functools.partial(_log_summary_failure, user_id))

    # -- subcommands ---------------------------------------------------------

    def focus_on(self, user_id: str, duration: str | None, client) -> str:
        existing = self._manager.get_active(user_id)
        if existing is not None:
            remaining = _remaining_ms(existing.ends_at, self._manager.now())
            return (
                f"⚠️ You already have an active focus session with "
                f"{format_duration(remaining)} remaining.\n\n"
                f"Use `{self._config.command} off` to end it early, or "
                f"`{self._config.command} status` to check details."
            )

        duration_str = duration or self._config.default_duration
        duration_ms = parse_duration(duration_str)
        if not duration_ms:
            return (
                f'❌ Invalid duration format: "{duration_str}"\n\n'
                f"Use formats like: `2h`, `30m`, `1h30m`"
            )

        if duration_ms > self._config.max_duration_ms:
            limit = format_duration(self._config.max_duration_ms)
            return (
                f"⚠️ Maximum focus duration is {describe_duration(self._config.max_duration_ms)}. "
                f"Try `{self._config.command} on {limit.replace(' ', '')}` instead."
            )

        started = self._manager.start(user_id, duration_ms)
        if started.previous_items:
            # Only reachable if a session appeared between the check and start.
            self._dispatch_summary(client, user_id, started.previous_items)
        if started.session is None:
            return START_FAILED_TEXT

        return (
            f"🎯 *Focus mode activated!*\n\n"
            f"⏱️ Duration: {format_duration(duration_ms)}\n"
            f"🔔 Ends at: {format_clock(started.session.ends_at, self._config)}\n\n"
            f"_Non-urgent messages will be held and delivered as a summary when your "
            f"session ends. Urgent messages will still reach you immediately._\n\n"
            f"Use `{self._config.command} off` to end early or "
            f"`{self._config.command} status` to check time remaining."
        )

    def focus_off(self, user_id: str, client) -> str:
        if self._manager.get_active(user_id) is None:
            return (
                f"ℹ️ You don't have an active focus session.\n\n"
                f"Use `{self._config.command} on {self._config.default_duration}` to start one."
            )

        items = self._manager.end(user_id)
        self._dispatch_summary(client, user_id, items)

        if items:
            detail = (
                f"📬 You have {plural(len(items), 'held message')}. "
                f"Check your DMs for a summary!"
            )
        else:
            detail = "🎉 No messages were held during your session."
        return f"✅ *Focus session ended!*\n\n{detail}"

    def focus_status(self, user_id: str) -> str:
        session = self._manager.get_active(user_id)
        if session is None:
            return (
                f"ℹ️ No active focus session.\n\n"
                f"Use `{self._config.command} on {self._config.default_duration}` to start one."
            )

        remaining = _remaining_ms(session.ends_at, self._manager.now())
        return (
            f"🎯 *Focus mode active*\n\n"
            f"⏱️ Time remaining: {format_duration(remaining)}\n"
            f"🔔 Ends at: {format_clock(session.ends_at, self._config)}\n\n"
            f"Use `{self._config.command} off` to end early."
        )

    def help_text(self) -> str:
        cmd = self._config.command
        return (
            f"*🎯 Focus Mode Commands*\n\n"
            f"`{cmd} on [duration]` — Start focus mode (default: {self._config.default_duration})\n"
            f"    Examples: `{cmd} on 2h`, `{cmd} on 30m`, `{cmd} on 1h30m`\n\n"
            f"`{cmd} off` — End focus mode and receive held messages\n\n"
            f"`{cmd} status` — Check time remaining\n\n"
            f"`{cmd} help` — Show this help message\n\n"
            f"_During focus mode, non-urgent messages are held and delivered as a summary "
            f"when your session ends. Urgent messages will still reach you immediately._"
        )
