# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Tool call / tool result pairing repair.

Provider APIs reject a request when an assistant tool call has no result
("tool_use ids were found without tool_result blocks") or when a tool
result references a call that is not in the conversation ("unexpected
tool_use_id").  Both situations are normal after history has been trimmed,
so they are repaired rather than reported:

  Pass 1 (forward)   strip every tool call from an assistant message when
                     any of its ids is missing from the tool messages that
                     immediately follow it.  Content is kept.
  Pass 2 (backward)  drop tool messages whose id is not open at that point:
                     not declared by the assistant message that starts the
                     current run of tool messages, or already answered.

Both passes return new lists and never mutate the given messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Set, Tuple

from conversation_context.models import Message
from conversation_context.schemas.messages import MessageRole

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    """Result of a repair pass.

    Attributes:
        messages (List[Message]): The repaired message list.
        stripped_call_count (int): Number of assistant messages whose tool
            calls were stripped because a result was missing.
        dropped_orphan_count (int): Number of tool-role messages dropped
            because no open tool call matched them.
    """

    messages: List[Message]
    stripped_call_count: int
    dropped_orphan_count: int

    @property
    def changed(self) -> bool:
        """Whether either pass altered the sequence."""
        return bool(self.stripped_call_count or self.dropped_orphan_count)


def _following_result_ids(messages: List[Message], start: int) -> Set[str]:
    """Tool call ids answered by the tool run that begins at *start*.

    Args:
        messages (List[Message]): Message list to scan.
        start (int): Index of the first message after the assistant turn.

    Returns:
        Set[str]: ``tool_call_id`` values of the contiguous tool-role
            messages starting at *start*.
    """
    found: Set[str] = set()
    i = start
    while i < len(messages) and messages[i].role == MessageRole.TOOL:
        if messages[i].tool_call_id:
            found.add(messages[i].tool_call_id)
        i += 1
    return found


def strip_unanswered_tool_calls(messages: List[Message]) -> Tuple[List[Message], int]:
    """Pass 1: remove tool calls that lack an immediately following result.

    Args:
        messages (List[Message]): Conversation message list to scan.

    Returns:
        Tuple[List[Message], int]: The new message list and the number of
            assistant messages that had their tool calls stripped.
    """
    result: List[Message] = []
    stripped = 0

    for idx, msg in enumerate(messages):
        if msg.role != MessageRole.ASSISTANT or not msg.tool_calls:
            result.append(msg)
            continue

        found = _following_result_ids(messages, idx + 1)
        missing = [tc_id for tc_id in msg.tool_call_ids if tc_id not in found]
        if not missing:
            result.append(msg)
            continue

        for tc_id in missing:
            logger.debug("Orphaned tool_call detected: %s (missing tool_result)", tc_id)
        logger.debug(
            "Removing %d tool_calls from assistant message (%d missing results)",
            len(msg.tool_calls),
            len(missing),
        )
        result.append(msg.model_copy(update={"tool_calls": None}))
        stripped += 1

    return result, stripped


def drop_orphaned_tool_results(messages: List[Message]) -> Tuple[List[Message], int]:
    """Pass 2: remove tool results that no open tool call accounts for.

    A tool message is kept only if its ``tool_call_id`` was declared by the
    assistant message that opened the current run of tool messages and has
    not been answered yet in that run.

    Args:
        messages (List[Message]): Conversation message list to scan.

    Returns:
        Tuple[List[Message], int]: The new message list and the number of
            dropped tool-role messages.
    """
    result: List[Message] = []
    open_ids: Set[str] = set()
    dropped = 0

    for msg in messages:
        if msg.role != MessageRole.TOOL:
            open_ids = set(msg.tool_call_ids) if msg.role == MessageRole.ASSISTANT else set()
            result.append(msg)
            continue

        if msg.tool_call_id and msg.tool_call_id in open_ids:
            open_ids.discard(msg.tool_call_id)
            result.append(msg)
            continue

        logger.debug("Removing orphaned tool_result: %s (no matching tool_call)", msg.tool_call_id)
        dropped += 1

    return result, dropped


def repair_tool_use_result_pairing(messages: List[Message]) -> RepairReport:
    """Run both repair passes so every tool call and result is paired.

    Args:
        messages (List[Message]): Conversation message list to repair.

    Returns:
        RepairReport: The repaired list plus counts of what was changed.
    """
    if not messages:
        return RepairReport(messages=list(messages), stripped_call_count=0, dropped_orphan_count=0)

    stripped_list, stripped = strip_unanswered_tool_calls(messages)
    repaired, dropped = drop_orphaned_tool_results(stripped_list)

    if stripped or dropped:
        logger.debug(
            "Repaired tool_use/tool_result pairing: stripped %d assistant turns, dropped %d orphans",
            stripped,
            dropped,
        )

    return RepairReport(messages=repaired, stripped_call_count=stripped, dropped_orphan_count=dropped)
