# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
History sanitization.

Turns raw session history into a structurally valid message list:

  * records without a usable role are dropped
  * system messages are dropped (a fresh system prompt is built per turn)
  * tool messages without ``tool_call_id`` are dropped (the API requires it)
  * messages with empty content are dropped, except tool messages and
    assistant messages that carry tool calls
  * tool call ids reused by a later assistant turn are renamed, together
    with the results answering that turn
  * tool call / tool result pairing is repaired (see ``repair.py``)

Every dropped record is an expected structural violation of stored history
and is only logged at DEBUG level.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from conversation_context.models import HistorySource, Message, ToolInvocation
from conversation_context.schemas.messages import MessageRole
from conversation_context.services.context.repair import repair_tool_use_result_pairing
from conversation_context.services.tool_calls import ToolCallIdGenerator
from pydantic import ValidationError

logger = logging.getLogger(__name__)


def _extract_text(content: Any) -> Optional[str]:
    """Plain text from stored content (str, list of parts, or None).

    Args:
        content (Any): Raw ``content`` value of a history record.

    Returns:
        Optional[str]: Text content, or ``None`` when the record had none.
    """
    if content is None or isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            item if isinstance(item, str) else str(item.get("text", ""))
            for item in content
            if isinstance(item, (str, dict))
        )
    return str(content)


def _normalize_tool_calls(raw_calls: Any) -> List[ToolInvocation]:
    """Parse stored tool calls, skipping records without an id.

    Args:
        raw_calls (Any): The ``tool_calls`` value of a history record.

    Returns:
        List[ToolInvocation]: Usable invocations in order, first occurrence
            of each id only.
    """
    if not isinstance(raw_calls, (list, tuple)):
        return []

    calls: List[ToolInvocation] = []
    seen: set[str] = set()
    for raw in raw_calls:
        try:
            tc = ToolInvocation.from_raw(raw)
        except (ValueError, ValidationError) as exc:
            logger.debug("Skipping unusable tool_call record: %s", exc)
            continue
        if tc.id in seen:
            logger.debug("Skipping duplicate tool_call id %s", tc.id)
            continue
        seen.add(tc.id)
        calls.append(tc)
    return calls


def _coerce_importance(value: Any) -> float:
    """Importance hint as a float; unparseable hints count as 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric importance hint %r", value)
        return 0.0


def _rename_reused_tool_call_ids(messages: List[Message], id_generator: ToolCallIdGenerator) -> List[Message]:
    """Give tool calls that reuse an earlier turn's id a fresh id.

    The tool results in the run following the renaming assistant message
    are renamed with it, so each call stays paired with its own result.

    Args:
        messages (List[Message]): Validated history.
        id_generator (ToolCallIdGenerator): Source of replacement ids.

    Returns:
        List[Message]: New list; messages without reused ids are kept as is.
    """
    seen: Set[str] = set()
    renamed: Dict[str, str] = {}
    result: List[Message] = []

    for msg in messages:
        if msg.role == MessageRole.TOOL:
            if msg.tool_call_id in renamed:
                msg = msg.model_copy(update={"tool_call_id": renamed[msg.tool_call_id]})
            result.append(msg)
            continue

        renamed = {}
        if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            calls: List[ToolInvocation] = []
            for tc in msg.tool_calls:
                if tc.id in seen:
                    new_id = id_generator.new_tool_call_id()
                    logger.debug("Renaming reused tool_call id %s to %s", tc.id, new_id)
                    renamed[tc.id] = new_id
                    tc = tc.model_copy(update={"id": new_id})
                seen.add(tc.id)
                calls.append(tc)
            if renamed:
                msg = msg.model_copy(update={"tool_calls": calls})
        result.append(msg)

    return result


def _coerce_message(record: Any) -> Optional[Message]:
    """Validate one history record, returning ``None`` when it must be dropped.

    Args:
        record (Any): A ``Message`` or a mapping with ``role``, ``content``
            and optional ``tool_calls``, ``tool_call_id``, ``importance``.

    Returns:
        Optional[Message]: The usable message, or ``None``.
    """
    if isinstance(record, Message):
        record = record.model_dump(by_alias=False)
    if not isinstance(record, Mapping):
        logger.debug("Skipping non-mapping history record: %r", type(record).__name__)
        return None

    raw_role = record.get("role")
    if not raw_role:
        logger.debug("Skipping history record without role")
        return None
    try:
        role = MessageRole(raw_role)
    except ValueError:
        logger.debug("Skipping history record with unknown role %r", raw_role)
        return None

    if role == MessageRole.SYSTEM:
        return None

    content = _extract_text(record.get("content"))
    importance = _coerce_importance(record.get("importance", record.get("_importance")))

    try:
        if role == MessageRole.TOOL:
            tool_call_id = record.get("tool_call_id")
            if not tool_call_id:
                logger.debug(
                    "Skipping tool message without tool_call_id (content: %.50s...)",
                    content or "",
                )
                return None
            return Message(
                role=role,
                content=content or "",
                tool_call_id=tool_call_id,
                importance=importance,
            )

        tool_calls = _normalize_tool_calls(record.get("tool_calls")) if role == MessageRole.ASSISTANT else []
        if tool_calls:
            logger.debug("Preserving assistant message with %d tool_calls", len(tool_calls))
            return Message(role=role, content=content, tool_calls=tool_calls, importance=importance)

        if not content:
            return None
        return Message(role=role, content=content, importance=importance)
    except ValidationError as exc:
        logger.debug("Skipping invalid %s history record: %s", role.value, exc)
        return None


def sanitize_history(
    raw_history: Optional[Iterable[Any]],
    id_generator: Optional[ToolCallIdGenerator] = None,
) -> List[Message]:
    """Produce a structurally valid message list from raw history.

    Args:
        raw_history (Optional[Iterable[Any]]): Stored history records in
            conversation order. ``None`` is treated as empty.
        id_generator (Optional[ToolCallIdGenerator]): Source of ids for tool
            calls that reuse an earlier turn's id. Defaults to a new
            ``ToolCallIdGenerator``.

    Returns:
        List[Message]: New list of validated messages with tool call /
            result pairing repaired. The input is never modified.
    """
    if not raw_history:
        return []

    records = list(raw_history)
    valid: List[Message] = []
    for record in records:
        msg = _coerce_message(record)
        if msg is not None:
            valid.append(msg)

    if len(valid) != len(records):
        logger.debug("Sanitized history: kept %d of %d records", len(valid), len(records))

    valid = _rename_reused_tool_call_ids(valid, id_generator or ToolCallIdGenerator())
    return repair_tool_use_result_pairing(valid).messages


def load_conversation_history(source: Optional[HistorySource]) -> List[Message]:
    """Read a history snapshot from *source* and sanitize it.

    Args:
        source (Optional[HistorySource]): Session-like object exposing
            ``get_history()``. ``None`` yields an empty history.

    Returns:
        List[Message]: Sanitized history for this turn.
    """
    if source is None:
        return []
    history = source.get_history() or []
    logger.debug("Raw history from session has %d messages", len(history))
    return sanitize_history(history)
