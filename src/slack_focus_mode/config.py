"""Configuration loading and validation for slack-focus-mode."""

import logging
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from slack_focus_mode.duration import parse_duration

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_TEMPLATE = """\
You are an AI assistant helping to classify the urgency of Slack messages for a
knowledge worker in focus mode.

Classify the following message into one of these urgency levels:
- URGENT: Requires immediate attention. Examples: production outages, security
  incidents, time-sensitive deadlines within the hour, direct emergencies
- HIGH: Important but can wait 30-60 minutes. Examples: blocking issues for
  teammates, important client requests, meeting reminders
- MEDIUM: Should be addressed within 2-4 hours. Examples: code review requests,
  non-blocking questions, project updates
- LOW: Can wait until focus session ends. Examples: general announcements,
  social messages, non-urgent FYIs, newsletters

Consider these factors:
1. Keywords suggesting urgency (urgent, ASAP, emergency, down, broken, deadline)
2. The sender's apparent intent
3. Whether it seems to require immediate action vs. information sharing
4. Time-sensitive language

Message context:
- Channel: {channel_name}
- Sender: {sender_name}
- Message: {message_text}

Respond in this exact JSON format:
{
  "urgency": "low" | "medium" | "high" | "urgent",
  "reason": "Brief explanation of why this urgency level",
  "shouldInterrupt": true | false
}

Only URGENT messages should have shouldInterrupt set to true. Respond with only
the JSON, no other text.
"""

KNOWN_KEYS = {
    "command",
    "model",
    "ollama_url",
    "ollama_timeout",
    "prompt_template",
    "db_path",
    "default_duration",
    "max_duration",
    "display_timezone",
}


@dataclass
class Config:
    command: str = "/focus"
    model: str = "llama3.2:3b"
    ollama_url: str | None = None  # unset -> keyword-only classification
    ollama_timeout: int = 10
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    db_path: str = "~/.local/share/slack-focus-mode/focus.db"
    default_duration: str = "2h"
    max_duration: str = "8h"
    display_timezone: str = "UTC"

    @property
    def classifier_configured(self) -> bool:
        return bool(self.ollama_url) and bool(self.model)

    @property
    def default_duration_ms(self) -> int:
        return parse_duration(self.default_duration)

    @property
    def max_duration_ms(self) -> int:
        return parse_duration(self.max_duration)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)


def _validate_config(config: Config) -> None:
    """Validate config values, raising ValueError on invalid fields."""
    if not config.command.startswith("/"):
        raise ValueError(f"command must start with '/', got {config.command!r}")

    # Validate ollama_timeout
    if not isinstance(config.ollama_timeout, (int, float)):
        raise ValueError(
            f"ollama_timeout must be a number, got {type(config.ollama_timeout).__name__}"
        )
    if config.ollama_timeout <= 0:
        raise ValueError(
            f"ollama_timeout must be positive, got {config.ollama_timeout}"
        )

    # Validate durations
    for name in ("default_duration", "max_duration"):
        value = getattr(config, name)
        if not parse_duration(value):
            raise ValueError(
                f"{name} must be a duration like '2h', '30m' or '1h30m', got {value!r}"
            )
    if config.default_duration_ms > config.max_duration_ms:
        raise ValueError(
            f"default_duration ({config.default_duration}) exceeds "
            f"max_duration ({config.max_duration})"
        )

    try:
        ZoneInfo(config.display_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown display_timezone '{config.display_timezone}'")


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file.

    Config path resolution order:
    1. Explicit path argument
    2. FOCUS_CONFIG_PATH environment variable
    3. ~/.config/slack-focus-mode/config.yaml
    """
    if path is None:
        path = os.environ.get("FOCUS_CONFIG_PATH")
    if path is None:
        path = os.path.expanduser("~/.config/slack-focus-mode/config.yaml")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping, got {type(raw).__name__}")

    # Warn about unknown keys
    for key in raw:
        if key not in KNOWN_KEYS:
            logger.warning("Unknown config key '%s' — ignoring", key)

    config = Config()

    for key in ("command", "model", "prompt_template", "db_path", "display_timezone"):
        if key in raw:
            setattr(config, key, str(raw[key]))
    if raw.get("ollama_url"):
        config.ollama_url = str(raw["ollama_url"]).rstrip("/")
    if "ollama_timeout" in raw:
        config.ollama_timeout = raw["ollama_timeout"]
    # YAML reads a bare 30m as a string but 90 as an int; keep both as text.
    for key in ("default_duration", "max_duration"):
        if key in raw:
            setattr(config, key, str(raw[key]))

    _validate_config(config)

    return config
