# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Lightweight pre-flight validation of an outbound message sequence."""

from __future__ import annotations

from typing import Dict, List, Set

from conversation_context.models import Message
from conversation_context.schemas.messages import MessageRole


def preflight_validate(messages: List[Message]) -> List[str]:
    """List every pairing or alternation problem in *messages*.

    Checks that tool call ids are unique, that every tool call is answered
    by the run of tool messages right after it, that every tool message
    answers an open call, and that no two adjacent non-tool messages share
    a role.  Read-only.

    Args:
        messages (List[Message]): Sequence about to be sent.

    Returns:
        List[str]: Human-readable error strings; empty when valid.
    """
    errors: List[str] = []
    seen_ids: Dict[str, int] = {}
    open_ids: Set[str] = set()
    open_owner = -1

    def close_run() -> None:
        for tc_id in sorted(open_ids):
            errors.append(f"Orphaned tool_call: {tc_id} (message {open_owner})")
        open_ids.clear()

    for i, msg in enumerate(messages):
        if msg.role == MessageRole.TOOL:
            if msg.tool_call_id in open_ids:
                open_ids.discard(msg.tool_call_id)
            else:
                errors.append(f"Orphaned tool_result: {msg.tool_call_id} (message {i})")
            continue

        close_run()

        if i > 0 and messages[i - 1].role == msg.role:
            errors.append(f"Consecutive {msg.role.value} messages at {i - 1} and {i}")

        if msg.role == MessageRole.ASSISTANT:
            for tc_id in msg.tool_call_ids:
                if tc_id in seen_ids:
                    errors.append(f"Duplicate tool_call_id: {tc_id} (messages {seen_ids[tc_id]} and {i})")
                else:
                    seen_ids[tc_id] = i
                open_ids.add(tc_id)
            open_owner = i
        elif msg.tool_calls:
            errors.append(f"Tool calls on {msg.role.value} message {i}")

    close_run()
    return errors
