# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Provider role alternation.

Some providers (Claude behind GitHub Copilot, for instance) require strictly
alternating roles, and some have no ``tool`` role at all.  This stage:

  1. Rewrites tool messages as user messages
     (``"Tool Result (ID: <id>):\\n<content>"``) when the provider has no
     tool role.
  2. Merges consecutive same-role messages (content joined by a blank line,
     tool calls concatenated).  Tool messages are never merged: each keeps
     its own ``tool_call_id``.
  3. Strips tool calls from assistant messages when the provider has no
     tool role, since they can no longer be correlated.

The stage is idempotent: running it on its own output changes nothing.
"""

from __future__ import annotations

import fnmatch
import logging
from typing import List, Optional

from conversation_context.config import Settings, settings as default_settings
from conversation_context.models import Message, ProviderCapabilities, ToolInvocation
from conversation_context.schemas.messages import TOOL_RESULT_PREFIX_TEMPLATE, MessageRole

logger = logging.getLogger(__name__)

_MERGE_SEPARATOR = "\n\n"


def resolve_provider(provider_id: str, app_settings: Optional[Settings] = None) -> ProviderCapabilities:
    """Build provider capabilities from configuration.

    A provider supports the tool role when its id matches one of the
    ``TOOL_ROLE_PROVIDERS`` glob patterns (case-insensitive).

    Args:
        provider_id (str): Provider identifier, e.g. ``"github_copilot"``.
        app_settings (Optional[Settings]): Settings to read patterns from.
            Defaults to the module-level settings.

    Returns:
        ProviderCapabilities: Capabilities for *provider_id*.
    """
    app_settings = app_settings or default_settings
    name = (provider_id or "").strip().lower()
    supports = any(fnmatch.fnmatch(name, pattern) for pattern in app_settings.get_tool_role_providers())
    return ProviderCapabilities(provider_id=provider_id, supports_tool_role=supports)


def _tool_result_as_user(msg: Message) -> Message:
    """Render a tool result as a user message for providers without a tool role."""
    prefix = TOOL_RESULT_PREFIX_TEMPLATE.format(tool_call_id=msg.tool_call_id or "unknown")
    return Message(role=MessageRole.USER, content=prefix + msg.text, importance=msg.importance)


class _Accumulator:
    """Run of consecutive same-role messages waiting to be flushed."""

    def __init__(self, first: Message) -> None:
        self.role = first.role
        self.messages: List[Message] = [first]

    def add(self, msg: Message) -> None:
        self.messages.append(msg)
        logger.debug("Merged consecutive %s message", self.role.value)

    def flush(self) -> Message:
        if len(self.messages) == 1:
            return self.messages[0]

        parts = [m.content for m in self.messages if m.content]
        if parts:
            content: Optional[str] = _MERGE_SEPARATOR.join(parts)
        elif all(m.content is None for m in self.messages):
            content = None
        else:
            content = ""

        tool_calls: List[ToolInvocation] = []
        for m in self.messages:
            tool_calls.extend(m.tool_calls or [])

        return Message(
            role=self.role,
            content=content,
            tool_calls=tool_calls or None,
            importance=max(m.importance for m in self.messages),
        )


def enforce_message_alternation(messages: List[Message], provider: ProviderCapabilities) -> List[Message]:
    """Make *messages* acceptable to *provider*'s role rules.

    Args:
        messages (List[Message]): Trimmed, pairing-repaired history.
        provider (ProviderCapabilities): Target provider capabilities.

    Returns:
        List[Message]: New list with no two adjacent non-tool messages
            sharing a role. Without tool-role support the list also holds
            no tool messages and no tool calls.
    """
    if not messages:
        return list(messages)

    alternating: List[Message] = []
    acc: Optional[_Accumulator] = None

    for msg in messages:
        if msg.role == MessageRole.TOOL and not provider.supports_tool_role:
            msg = _tool_result_as_user(msg)
            logger.debug("Converted tool message to user message")

        if acc is not None and msg.role == acc.role and msg.role != MessageRole.TOOL:
            acc.add(msg)
            continue

        if acc is not None:
            alternating.append(acc.flush())
        acc = _Accumulator(msg)

    if acc is not None:
        alternating.append(acc.flush())

    if not provider.supports_tool_role:
        for i, msg in enumerate(alternating):
            if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
                alternating[i] = msg.model_copy(update={"tool_calls": None})
                logger.debug(
                    "Stripped tool_calls from assistant message (provider %s has no tool role)",
                    provider.provider_id,
                )

    logger.debug("Alternation complete: %d -> %d messages", len(messages), len(alternating))
    return alternating
