# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Shared test fixtures for the conversation context test suite."""

from typing import Any, Dict, List, Optional

import pytest
from conversation_context.config import Settings
from conversation_context.models import Message, ProviderCapabilities, ToolInvocation
from conversation_context.schemas.messages import MessageRole
from conversation_context.services.context.tokens import HeuristicTokenEstimator

# ---------------------------------------------------------------------------
# Message factories
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_message():
    """Factory fixture for creating Message instances."""

    def _factory(
        role: MessageRole = MessageRole.USER,
        content: Optional[str] = "hello",
        tool_call_id: Optional[str] = None,
        tool_calls: Optional[List[str]] = None,
        importance: float = 0.0,
    ) -> Message:
        return Message(
            role=role,
            content=content,
            tool_call_id=tool_call_id,
            tool_calls=[ToolInvocation(id=tc_id, name="read_file") for tc_id in tool_calls] if tool_calls else None,
            importance=importance,
        )

    return _factory


@pytest.fixture
def raw_record():
    """Factory fixture for creating raw (dict) history records as stored by a session."""

    def _factory(role: Optional[str] = "user", content: Any = "hello", **extra: Any) -> Dict[str, Any]:
        record: Dict[str, Any] = {"content": content, **extra}
        if role is not None:
            record["role"] = role
        return record

    return _factory


@pytest.fixture
def tool_exchange(sample_message):
    """Factory fixture for an assistant tool call followed by its results."""

    def _factory(*ids: str, content: Optional[str] = None) -> List[Message]:
        msgs = [sample_message(MessageRole.ASSISTANT, content=content, tool_calls=list(ids))]
        msgs.extend(sample_message(MessageRole.TOOL, content=f"result {tc_id}", tool_call_id=tc_id) for tc_id in ids)
        return msgs

    return _factory


# ---------------------------------------------------------------------------
# Providers / settings
# ---------------------------------------------------------------------------


@pytest.fixture
def tool_provider() -> ProviderCapabilities:
    """Provider accepting role ``tool`` natively."""
    return ProviderCapabilities(provider_id="openai", supports_tool_role=True)


@pytest.fixture
def plain_provider() -> ProviderCapabilities:
    """Provider without a ``tool`` role."""
    return ProviderCapabilities(provider_id="anthropic", supports_tool_role=False)


@pytest.fixture
def estimator() -> HeuristicTokenEstimator:
    """Character-heuristic token estimator."""
    return HeuristicTokenEstimator()


@pytest.fixture
def app_settings() -> Settings:
    """Settings isolated from any .env file in the working directory."""
    return Settings(_env_file=None)
