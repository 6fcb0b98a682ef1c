# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Chat message role schema shared by every pipeline stage."""

from enum import Enum


class MessageRole(str, Enum):
    """Message role enumeration.

    Attributes:
        USER (str): User role.
        ASSISTANT (str): Assistant role. May carry tool calls.
        SYSTEM (str): System role. Never drawn from stored history.
        TOOL (str): Tool result role, correlated to an assistant tool call
            through ``tool_call_id``.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


# Rendering used when a provider has no tool channel and results are
# replayed as user text.
TOOL_RESULT_PREFIX_TEMPLATE = "Tool Result (ID: {tool_call_id}):\n"
