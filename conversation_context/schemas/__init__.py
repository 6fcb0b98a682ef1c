# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Schemas for chat message roles."""
from .messages import (
    TOOL_RESULT_PREFIX_TEMPLATE,
    MessageRole,
)

__all__ = [
    "MessageRole",
    "TOOL_RESULT_PREFIX_TEMPLATE",
]
