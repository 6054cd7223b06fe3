"""Tests for the urgency classifier."""

import json
import logging

import pytest
import requests

from slack_focus_mode.config import Config
from slack_focus_mode.llm_classifier import classify, has_urgent_keyword, render_prompt
from slack_focus_mode.models import Classification, UrgencyLevel

POST = "slack_focus_mode.llm_classifier.requests.post"


def make_config(**overrides) -> Config:
    """Create a Config with an LLM configured, overriding specific fields."""
    config = Config(ollama_url="http://localhost:11434")
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def _ollama_response(content) -> dict:
    """Build a fake Ollama /api/chat JSON response."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"message": {"role": "assistant", "content": content}}


def _mock_reply(mocker, content):
    mock_resp = mocker.Mock()
    mock_resp.json.return_value = _ollama_response(content)
    mock_resp.raise_for_status = mocker.Mock()
    return mocker.patch(POST, return_value=mock_resp)


# ── Keyword fallback without an LLM ───────────────────────────────


class TestNoLLMConfigured:
    def test_asap_is_urgent(self, mocker):
        mock_post = mocker.patch(POST)

        result = classify("Need the numbers ASAP", "finance", "bob", Config())

        assert result.urgency is UrgencyLevel.URGENT
        assert result.should_interrupt is True
        assert "urgent keywords" in result.reason.lower()
        mock_post.assert_not_called()

    def test_no_keyword_is_low(self, mocker):
        mocker.patch(POST)

        result = classify("anyone up for lunch?", "random", "bob", Config())

        assert result == Classification(
            urgency=UrgencyLevel.LOW,
            reason="Default classification (no LLM configured)",
            should_interrupt=False,
        )

    @pytest.mark.parametrize(
        "text",
        ["prod is DOWN", "Emergency!", "call 911", "help now please", "critical bug", "outage in eu"],
    )
    def test_each_keyword_family_matches(self, text):
        assert classify(text, "ops", "bob", Config()).urgency is UrgencyLevel.URGENT

    def test_keyword_match_is_substring(self):
        # "download" contains "down"
        assert has_urgent_keyword("the download link") is True


# ── Successful classification ──────────────────────────────────────


class TestSuccessfulClassification:
    def test_returns_urgency_and_reason(self, mocker):
        _mock_reply(mocker, {"urgency": "high", "reason": "blocking a teammate", "shouldInterrupt": False})

        result = classify("can you unblock my PR", "dev", "alice", make_config())

        assert result == Classification(
            urgency=UrgencyLevel.HIGH, reason="blocking a teammate", should_interrupt=False
        )

    def test_sends_correct_request_body(self, mocker):
        mock_post = _mock_reply(
            mocker, {"urgency": "low", "reason": "routine", "shouldInterrupt": False}
        )
        config = make_config(model="custom-model", ollama_url="http://myhost:1234", ollama_timeout=7)

        classify("server on fire", "incidents", "bob", config)

        mock_post.assert_called_once()
        call_kwargs = mock_post.call_args
        assert call_kwargs[0][0] == "http://myhost:1234/api/chat"
        assert call_kwargs[1]["timeout"] == 7

        body = call_kwargs[1]["json"]
        assert body["model"] == "custom-model"
        assert body["stream"] is False
        assert body["format"]["properties"]["urgency"]["enum"] == ["low", "medium", "high", "urgent"]
        assert len(body["messages"]) == 1
        prompt = body["messages"][0]["content"]
        assert "- Channel: incidents" in prompt
        assert "- Sender: bob" in prompt
        assert "- Message: server on fire" in prompt

    def test_should_interrupt_recomputed_true_for_urgent(self, mocker):
        _mock_reply(mocker, {"urgency": "urgent", "reason": "outage", "shouldInterrupt": False})

        result = classify("site is broken", "ops", "alice", make_config())

        assert result.urgency is UrgencyLevel.URGENT
        assert result.should_interrupt is True

    def test_should_interrupt_recomputed_false_for_high(self, mocker):
        _mock_reply(mocker, {"urgency": "high", "reason": "important", "shouldInterrupt": True})

        result = classify("please review", "dev", "alice", make_config())

        assert result.should_interrupt is False

    def test_uppercase_urgency_accepted(self, mocker):
        _mock_reply(mocker, {"urgency": "MEDIUM", "reason": "review", "shouldInterrupt": False})

        result = classify("please review", "dev", "alice", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_llm_can_downgrade_keyword_message(self, mocker):
        _mock_reply(mocker, {"urgency": "low", "reason": "joke", "shouldInterrupt": False})

        result = classify("this meme is critical viewing", "random", "alice", make_config())

        assert result.urgency is UrgencyLevel.LOW


class TestRenderPrompt:
    def test_substitutes_all_placeholders(self):
        template = "{channel_name}|{sender_name}|{message_text}|{\"json\": true}"
        assert render_prompt(template, "hi", "general", "alice") == 'general|alice|hi|{"json": true}'


# ── Fallback on errors ─────────────────────────────────────────────


class TestFallbackOnErrors:
    def test_timeout_without_keyword_is_medium(self, mocker):
        mocker.patch(POST, side_effect=requests.Timeout("timed out"))

        result = classify("quick question about the roadmap", "product", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM
        assert result.should_interrupt is False
        assert "LLM classification failed" in result.reason

    def test_connection_error_with_keyword_is_urgent(self, mocker):
        mocker.patch(POST, side_effect=requests.ConnectionError("refused"))

        result = classify("database outage!", "ops", "bob", make_config())

        assert result.urgency is UrgencyLevel.URGENT
        assert result.should_interrupt is True
        assert "LLM classification failed" in result.reason

    def test_http_error_is_medium(self, mocker):
        mock_resp = mocker.Mock()
        mock_resp.raise_for_status.side_effect = requests.HTTPError("500")
        mocker.patch(POST, return_value=mock_resp)

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_malformed_json_is_medium(self, mocker):
        _mock_reply(mocker, "this is not valid json {{{")

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_unknown_urgency_is_medium(self, mocker):
        _mock_reply(mocker, {"urgency": "catastrophic", "reason": "?", "shouldInterrupt": True})

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM
        assert result.should_interrupt is False

    def test_missing_field_is_medium(self, mocker):
        _mock_reply(mocker, {"urgency": "low", "reason": "no flag"})

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_extra_field_is_rejected(self, mocker):
        _mock_reply(
            mocker,
            {"urgency": "low", "reason": "fine", "shouldInterrupt": False, "confidence": 0.9},
        )

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_non_boolean_flag_is_rejected(self, mocker):
        _mock_reply(mocker, {"urgency": "low", "reason": "fine", "shouldInterrupt": "no"})

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_non_text_content_is_medium(self, mocker):
        mock_resp = mocker.Mock()
        mock_resp.json.return_value = {"message": {"content": {"urgency": "low"}}}
        mock_resp.raise_for_status = mocker.Mock()
        mocker.patch(POST, return_value=mock_resp)

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM

    def test_missing_message_key_is_medium(self, mocker):
        mock_resp = mocker.Mock()
        mock_resp.json.return_value = {"unexpected": "structure"}
        mock_resp.raise_for_status = mocker.Mock()
        mocker.patch(POST, return_value=mock_resp)

        result = classify("hello", "general", "bob", make_config())

        assert result.urgency is UrgencyLevel.MEDIUM


# ── Logging ────────────────────────────────────────────────────────


class TestLogging:
    def test_timeout_logs_warning(self, mocker, caplog):
        mocker.patch(POST, side_effect=requests.Timeout("connect timed out"))

        with caplog.at_level(logging.WARNING):
            classify("hello", "general", "bob", make_config())

        assert "LLM classifier fallback" in caplog.text

    def test_invalid_verdict_logs_warning(self, mocker, caplog):
        _mock_reply(mocker, {"urgency": "low"})

        with caplog.at_level(logging.WARNING):
            classify("hello", "general", "bob", make_config())

        assert "invalid verdict" in caplog.text
