"""Urgency classifier: Ollama LLM with a keyword-based fallback."""

import json
import logging

import requests
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError, field_validator

from slack_focus_mode.config import Config
from slack_focus_mode.models import Classification, UrgencyLevel

logger = logging.getLogger(__name__)

URGENT_KEYWORDS = (
    "urgent",
    "emergency",
    "asap",
    "down",
    "outage",
    "critical",
    "immediately",
    "911",
    "help now",
)

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "urgency": {"type": "string", "enum": [level.value for level in UrgencyLevel]},
        "reason": {"type": "string"},
        "shouldInterrupt": {"type": "boolean"},
    },
    "required": ["urgency", "reason", "shouldInterrupt"],
}


class LLMVerdict(BaseModel):
    """Shape the LLM must answer with; anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    urgency: UrgencyLevel
    reason: StrictStr
    should_interrupt: StrictBool = Field(alias="shouldInterrupt")

    @field_validator("urgency", mode="before")
    @classmethod
    def _lowercase_urgency(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


def has_urgent_keyword(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in URGENT_KEYWORDS)


def render_prompt(template: str, message_text: str, channel_name: str, sender_name: str) -> str:
    """Substitute the message context into the prompt template.

    Plain replacement rather than str.format: the template carries literal
    JSON braces.
    """
    return (
        template.replace("{channel_name}", channel_name)
        .replace("{sender_name}", sender_name)
        .replace("{message_text}", message_text)
    )


def _keyword_classification(message_text: str, *, llm_failed: bool) -> Classification:
    """Classify from keywords alone.

    Without a keyword match the message is ``low`` when no LLM is configured
    and ``medium`` when the LLM call failed, so a failure never files a
    possibly important message as noise.
    """
    suffix = " (LLM classification failed)" if llm_failed else ""
    if has_urgent_keyword(message_text):
        return Classification(
            urgency=UrgencyLevel.URGENT,
            reason=f"Contains urgent keywords{suffix}",
            should_interrupt=True,
        )
    if llm_failed:
        return Classification(
            urgency=UrgencyLevel.MEDIUM,
            reason="Default classification (LLM classification failed)",
            should_interrupt=False,
        )
    return Classification(
        urgency=UrgencyLevel.LOW,
        reason="Default classification (no LLM configured)",
        should_interrupt=False,
    )


def _fallback(message_text: str, context: str) -> Classification:
    logger.warning("LLM classifier fallback: %s", context)
    return _keyword_classification(message_text, llm_failed=True)


def classify(message_text: str, channel_name: str, sender_name: str, config: Config) -> Classification:
    """Classify a message's urgency.

    Uses Ollama when ``config.ollama_url`` is set, otherwise the keyword
    fallback. Never raises: connection errors, timeouts, HTTP errors and
    replies that fail validation all degrade to the keyword fallback.
    ``should_interrupt`` is always derived from the urgency, never taken
    from the LLM.
    """
    if not config.classifier_configured:
        logger.debug("No LLM configured, using keyword-based classification")
        return _keyword_classification(message_text, llm_failed=False)

    prompt = render_prompt(config.prompt_template, message_text, channel_name, sender_name)
    body = {
        "model": config.model,
        "messages": [{"role": "user", "content": prompt}],
        "format": RESPONSE_SCHEMA,
        "stream": False,
    }

    try:
        resp = requests.post(
            f"{config.ollama_url}/api/chat",
            json=body,
            timeout=config.ollama_timeout,
        )
        resp.raise_for_status()
        content = resp.json()["message"]["content"]
        if not isinstance(content, str):
            raise TypeError(f"content is {type(content).__name__}, not text")
        verdict = LLMVerdict.model_validate_json(content)
    except requests.RequestException as exc:
        return _fallback(message_text, str(exc))
    except ValidationError as exc:
        return _fallback(message_text, f"invalid verdict: {exc.error_count()} error(s)")
    except (KeyError, TypeError, ValueError, json.JSONDecodeError) as exc:
        return _fallback(message_text, f"unexpected response: {exc}")

    return Classification(
        urgency=verdict.urgency,
        reason=verdict.reason,
        should_interrupt=verdict.urgency.interrupts,
    )
