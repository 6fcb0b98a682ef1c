# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Token estimation.

The pipeline only needs a stable estimate that grows with text length, so
the default estimator is a chars/4 heuristic with fixed per-message and
per-tool-call overheads. A tiktoken-backed estimator is available for
callers that want counts closer to OpenAI-family tokenizers.

Tool-call arguments are included in message estimates by serialising them
to JSON, so an assistant turn that only carries tool calls is never
counted as free.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional, Protocol, Sequence

import tiktoken
from conversation_context.config import Settings
from conversation_context.models import Message, ToolInvocation

CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_TOKENS = 3
TOOL_CALL_OVERHEAD_TOKENS = 10
TOOL_CALL_FALLBACK_CHARS = 128

logger = logging.getLogger(__name__)


class TokenEstimator(Protocol):
    """Token estimation interface consumed by the trimming stage."""

    def estimate_tokens(self, text: Optional[str]) -> int:
        ...

    def estimate_message_tokens(self, msg: Message) -> int:
        ...

    def estimate_messages_tokens(self, messages: Sequence[Message]) -> int:
        ...


def _tool_call_text(tc: ToolInvocation) -> str:
    """Name plus serialised arguments of a tool call.

    Args:
        tc (ToolInvocation): Tool call to render.

    Returns:
        str: Text whose length stands in for the call's token cost.
    """
    args: Any = tc.arguments
    if isinstance(args, str):
        return tc.name + args
    try:
        return tc.name + json.dumps(args, ensure_ascii=False)
    except (TypeError, ValueError):
        return tc.name + " " * TOOL_CALL_FALLBACK_CHARS


class _MessageEstimatorMixin:
    """Message-level estimates built on top of ``estimate_tokens``."""

    def estimate_message_tokens(self, msg: Message) -> int:
        """Estimate token count for a single message.

        Includes a fixed role overhead, the content, and for every tool
        call its name, serialised arguments and a structural overhead.

        Args:
            msg (Message): Message to estimate tokens for.

        Returns:
            int: Estimated token count of the message.
        """
        total = MESSAGE_OVERHEAD_TOKENS + self.estimate_tokens(msg.content)
        for tc in msg.tool_calls or []:
            total += self.estimate_tokens(_tool_call_text(tc)) + TOOL_CALL_OVERHEAD_TOKENS
        return total

    def estimate_messages_tokens(self, messages: Sequence[Message]) -> int:
        """Estimate total token count for a list of messages.

        Args:
            messages (Sequence[Message]): Messages to estimate tokens for.

        Returns:
            int: Sum of estimated token counts across all messages.
        """
        return sum(self.estimate_message_tokens(m) for m in messages)


class HeuristicTokenEstimator(_MessageEstimatorMixin):
    """Character heuristic: one token per ``CHARS_PER_TOKEN`` characters."""

    def estimate_tokens(self, text: Optional[str]) -> int:
        """Estimate token count using character heuristic.

        Args:
            text (Optional[str]): Text to estimate tokens for.

        Returns:
            int: ``ceil(len(text) / CHARS_PER_TOKEN)``; 0 for empty text.
        """
        if not text:
            return 0
        return math.ceil(len(text) / CHARS_PER_TOKEN)


class TiktokenEstimator(_MessageEstimatorMixin):
    """Token estimation using a tiktoken encoding.

    Args:
        model (str): Model name used to pick the encoding. Unknown models
            fall back to ``o200k_base``.
    """

    def __init__(self, model: str = "gpt-4o") -> None:
        try:
            self._encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.info("No tiktoken encoding registered for %s, using o200k_base", model)
            self._encoding = tiktoken.get_encoding("o200k_base")

    def estimate_tokens(self, text: Optional[str]) -> int:
        """Estimate token count using tiktoken.

        Args:
            text (Optional[str]): Text to tokenize.

        Returns:
            int: Number of tokens produced by the encoder.
        """
        if not text:
            return 0
        return len(self._encoding.encode(text, disallowed_special=()))


def get_token_estimator(app_settings: Settings) -> TokenEstimator:
    """Build the estimator selected by ``TOKEN_ESTIMATOR``.

    Args:
        app_settings (Settings): Application settings.

    Returns:
        TokenEstimator: The configured estimator. Unknown names fall back to
            the heuristic with a warning.
    """
    name = app_settings.TOKEN_ESTIMATOR.strip().lower()
    if name == "tiktoken":
        return TiktokenEstimator(app_settings.TIKTOKEN_MODEL)
    if name != "heuristic":
        logger.warning("Unknown TOKEN_ESTIMATOR %r, using heuristic", app_settings.TOKEN_ESTIMATOR)
    return HeuristicTokenEstimator()
