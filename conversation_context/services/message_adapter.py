# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Conversion between pipeline messages and LangChain messages."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from conversation_context.models import Message, ToolInvocation
from conversation_context.schemas.messages import MessageRole
from conversation_context.services.tool_calls import parse_tool_arguments
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

logger = logging.getLogger(__name__)


def _extract_text(content: Any) -> str:
    """Extract plain text from LangChain content (str or list of parts)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("type") == "text":
                parts.append(item.get("text", ""))
        return "".join(parts)
    return str(content) if content else ""


def _lc_tool_call(tc: ToolInvocation) -> Dict[str, Any]:
    """LangChain tool call dict; ``args`` must be a mapping."""
    try:
        args = parse_tool_arguments(tc.arguments)
    except ValueError:
        logger.debug("Tool call %s has unparseable arguments, passing raw text", tc.id)
        args = {"input": tc.arguments}
    if not isinstance(args, dict):
        args = {"input": args}
    return {"name": tc.name, "args": args, "id": tc.id}


def to_langchain_message(msg: Message) -> BaseMessage:
    """Convert a pipeline Message -> LangChain message.

    Args:
        msg (Message): The message to convert.

    Returns:
        BaseMessage: The corresponding LangChain message instance.
    """
    if msg.role == MessageRole.USER:
        return HumanMessage(content=msg.text)
    if msg.role == MessageRole.ASSISTANT:
        return AIMessage(
            content=msg.text,
            tool_calls=[_lc_tool_call(tc) for tc in msg.tool_calls or []],
        )
    if msg.role == MessageRole.SYSTEM:
        return SystemMessage(content=msg.text)
    return ToolMessage(content=msg.text, tool_call_id=msg.tool_call_id or "unknown")


def to_langchain_messages(messages: Sequence[Message], system_prompt: Optional[str] = None) -> List[BaseMessage]:
    """Convert a prepared history to the list handed to a LangChain chat model.

    Args:
        messages (Sequence[Message]): Final pipeline output.
        system_prompt (Optional[str]): Prepended as a ``SystemMessage`` when
            non-empty.

    Returns:
        List[BaseMessage]: LangChain messages in order.
    """
    lc_messages: List[BaseMessage] = []
    if system_prompt:
        lc_messages.append(SystemMessage(content=system_prompt))
    lc_messages.extend(to_langchain_message(m) for m in messages)
    return lc_messages


def from_langchain_message(msg: BaseMessage) -> Message:
    """Convert LangChain message -> pipeline Message.

    Lets sessions that keep LangChain history feed the sanitizer directly.
    Calls LangChain could not parse (``invalid_tool_calls``) are kept with
    their raw argument text so they are repaired or reported downstream.
    """
    if isinstance(msg, AIMessage):
        tool_calls: List[ToolInvocation] = []
        for tc in list(msg.tool_calls or []) + list(getattr(msg, "invalid_tool_calls", None) or []):
            if not tc.get("id"):
                logger.debug("Skipping LangChain tool call without id (%s)", tc.get("name") or "<unnamed>")
                continue
            args = tc.get("args")
            tool_calls.append(
                ToolInvocation(id=tc["id"], name=tc.get("name") or "", arguments={} if args is None else args)
            )
        return Message(
            role=MessageRole.ASSISTANT,
            content=_extract_text(msg.content),
            tool_calls=tool_calls or None,
        )
    if isinstance(msg, SystemMessage):
        return Message(role=MessageRole.SYSTEM, content=_extract_text(msg.content))
    if isinstance(msg, ToolMessage):
        return Message(
            role=MessageRole.TOOL,
            content=_extract_text(msg.content),
            tool_call_id=getattr(msg, "tool_call_id", None),
        )
    return Message(role=MessageRole.USER, content=_extract_text(getattr(msg, "content", "")))
