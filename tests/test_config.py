# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for settings and token estimation."""

import logging
from unittest.mock import MagicMock

import pytest
from conversation_context.config import Settings
from conversation_context.models import Message, ToolInvocation
from conversation_context.schemas.messages import MessageRole
from conversation_context.services.context import tokens
from conversation_context.services.context.tokens import (
    HeuristicTokenEstimator,
    TiktokenEstimator,
    get_token_estimator,
)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    """Tests for Settings defaults and environment overrides."""

    def test_defaults(self, app_settings):
        """Verify default model fallbacks and estimator."""
        assert app_settings.DEFAULT_CONTEXT_WINDOW == 128_000
        assert app_settings.DEFAULT_MAX_RESPONSE_TOKENS == 16_000
        assert app_settings.TOKEN_ESTIMATOR == "heuristic"

    def test_tool_role_providers_parsed(self):
        """Verify provider patterns are split, stripped, lower-cased and de-blanked."""
        s = Settings(_env_file=None, TOOL_ROLE_PROVIDERS=" GitHub* ,, openai ")
        assert s.get_tool_role_providers() == ["github*", "openai"]

    def test_env_override(self, monkeypatch):
        """Verify environment variables override defaults."""
        monkeypatch.setenv("DEFAULT_CONTEXT_WINDOW", "200000")
        monkeypatch.setenv("TOKEN_ESTIMATOR", "tiktoken")
        s = Settings(_env_file=None)
        assert s.DEFAULT_CONTEXT_WINDOW == 200_000
        assert s.TOKEN_ESTIMATOR == "tiktoken"


# ---------------------------------------------------------------------------
# HeuristicTokenEstimator
# ---------------------------------------------------------------------------


class TestHeuristicTokenEstimator:
    """Tests for the chars/4 heuristic."""

    @pytest.mark.parametrize("text, expected", [(None, 0), ("", 0), ("a", 1), ("abcd", 1), ("abcde", 2)])
    def test_estimate_tokens(self, estimator, text, expected):
        """Verify ceil(len / 4) with zero for empty text."""
        assert estimator.estimate_tokens(text) == expected

    def test_message_overhead(self, estimator):
        """Verify each message carries a fixed overhead."""
        assert estimator.estimate_message_tokens(Message(role=MessageRole.USER, content="abcd")) == 4

    def test_tool_calls_counted(self, estimator):
        """Verify tool call names, arguments and overhead are counted."""
        msg = Message(
            role=MessageRole.ASSISTANT,
            tool_calls=[ToolInvocation(id="c1", name="ls", arguments={"d": "."})],
        )
        # "ls" + '{"d": "."}' = 12 chars -> 3 tokens, + 10 call overhead, + 3 message overhead
        assert estimator.estimate_message_tokens(msg) == 16

    def test_string_arguments_counted_raw(self, estimator):
        """Verify string arguments are counted as emitted."""
        msg = Message(
            role=MessageRole.ASSISTANT,
            tool_calls=[ToolInvocation(id="c1", name="ab", arguments="cdefgh")],
        )
        assert estimator.estimate_message_tokens(msg) == 3 + 2 + 10

    def test_messages_sum(self, estimator, sample_message):
        """Verify list estimates are the sum of message estimates."""
        msgs = [sample_message(content="abcd"), sample_message(content="abcdefgh")]
        assert estimator.estimate_messages_tokens(msgs) == 4 + 5


# ---------------------------------------------------------------------------
# TiktokenEstimator / get_token_estimator
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_encoding(monkeypatch):
    """Stub tiktoken lookups with a whitespace-splitting encoding."""
    encoding = MagicMock()
    encoding.encode.side_effect = lambda text, **kwargs: text.split()
    monkeypatch.setattr(tokens.tiktoken, "encoding_for_model", MagicMock(return_value=encoding))
    monkeypatch.setattr(tokens.tiktoken, "get_encoding", MagicMock(return_value=encoding))
    return encoding


class TestTiktokenEstimator:
    """Tests for TiktokenEstimator."""

    def test_counts_encoded_tokens(self, fake_encoding):
        """Verify the estimate is the encoder's token count."""
        est = TiktokenEstimator("gpt-4o")
        assert est.estimate_tokens("one two three") == 3
        assert est.estimate_tokens("") == 0
        tokens.tiktoken.encoding_for_model.assert_called_once_with("gpt-4o")

    def test_unknown_model_falls_back(self, fake_encoding, monkeypatch):
        """Verify an unknown model uses the o200k_base encoding."""
        monkeypatch.setattr(tokens.tiktoken, "encoding_for_model", MagicMock(side_effect=KeyError("nope")))
        est = TiktokenEstimator("my-local-model")
        assert est.estimate_tokens("a b") == 2
        tokens.tiktoken.get_encoding.assert_called_once_with("o200k_base")

    def test_message_estimate(self, fake_encoding):
        """Verify message estimates add the same overheads as the heuristic."""
        est = TiktokenEstimator()
        assert est.estimate_message_tokens(Message(role=MessageRole.USER, content="a b")) == 5


class TestGetTokenEstimator:
    """Tests for get_token_estimator selection."""

    def test_heuristic(self, app_settings):
        """Verify the default selects the heuristic."""
        assert isinstance(get_token_estimator(app_settings), HeuristicTokenEstimator)

    def test_tiktoken(self, app_settings, fake_encoding):
        """Verify ``tiktoken`` selects TiktokenEstimator with the configured model."""
        s = app_settings.model_copy(update={"TOKEN_ESTIMATOR": "TikToken", "TIKTOKEN_MODEL": "gpt-4o-mini"})
        assert isinstance(get_token_estimator(s), TiktokenEstimator)
        tokens.tiktoken.encoding_for_model.assert_called_once_with("gpt-4o-mini")

    def test_unknown_falls_back(self, app_settings, caplog):
        """Verify an unknown estimator name warns and uses the heuristic."""
        s = app_settings.model_copy(update={"TOKEN_ESTIMATOR": "magic"})
        with caplog.at_level(logging.WARNING):
            est = get_token_estimator(s)
        assert isinstance(est, HeuristicTokenEstimator)
        assert "Unknown TOKEN_ESTIMATOR" in caplog.text
