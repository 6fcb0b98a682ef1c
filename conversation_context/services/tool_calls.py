# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Preparation of model-emitted tool calls before execution.

The tool-execution loop hands every call the model produced to
``prepare_tool_calls``.  Each call gets a stable id (synthesized when the
model omitted one) and parsed arguments (repaired when the model emitted
malformed JSON).  Calls whose arguments cannot be repaired are returned as
``ToolCallFailure`` entries so the loop can report the failure back to the
model instead of silently dropping the call.

Example:

    generator = ToolCallIdGenerator()
    batch = prepare_tool_calls(response.tool_calls, generator)
    for failure in batch.failures:
        history.append(failure.to_message())
"""

import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from conversation_context.models import Message, ToolInvocation, split_tool_call_record
from conversation_context.schemas.messages import MessageRole
from conversation_context.services.json_repair import repair_tool_call_json

logger = logging.getLogger(__name__)

TOOL_CALL_ID_PREFIX = "call_"
TOOL_CALL_ID_HEX_LENGTH = 24


class ToolCallIdGenerator:
    """Collision-resistant ids for tool calls the model left without one.

    Ids are ``call_`` followed by 24 hex characters of an MD5 digest over
    the clock, a per-generator counter and random bytes.  Owned per process
    or per session; there is no module-level state.
    """

    def __init__(self, prefix: str = TOOL_CALL_ID_PREFIX) -> None:
        self._prefix = prefix
        self._counter = 0

    def new_tool_call_id(self) -> str:
        """Return a fresh tool call id."""
        self._counter += 1
        seed = f"{time.time_ns()}:{self._counter}:{os.urandom(8).hex()}"
        digest = hashlib.md5(seed.encode("utf-8")).hexdigest()
        return self._prefix + digest[:TOOL_CALL_ID_HEX_LENGTH]


@dataclass(frozen=True)
class ToolCallFailure:
    """A model-emitted tool call that cannot be executed.

    Attributes:
        id (str): Tool call id (synthesized if the model gave none).
        name (str): Requested tool name.
        raw_arguments (str): Argument text exactly as the model emitted it.
        error (str): Human-readable reason reported back to the model.
    """

    id: str
    name: str
    raw_arguments: str
    error: str

    def to_message(self) -> Message:
        """Tool-role result telling the model its call failed."""
        return Message(
            role=MessageRole.TOOL,
            tool_call_id=self.id,
            content=f"Error: {self.error}",
        )


@dataclass
class ToolCallBatch:
    """Prepared tool calls from one assistant response.

    Attributes:
        calls (List[ToolInvocation]): Every call in emitted order,
            including failed ones, so the assistant message can declare
            all ids.
        failures (List[ToolCallFailure]): Calls whose arguments could not
            be parsed or repaired.
    """

    calls: List[ToolInvocation] = field(default_factory=list)
    failures: List[ToolCallFailure] = field(default_factory=list)

    @property
    def executable(self) -> List[ToolInvocation]:
        """Calls that can be executed (all calls minus failures)."""
        failed = {f.id for f in self.failures}
        return [tc for tc in self.calls if tc.id not in failed]

    def to_assistant_message(self, content: Optional[str] = None) -> Message:
        """Assistant message declaring every call in the batch."""
        return Message(role=MessageRole.ASSISTANT, content=content, tool_calls=list(self.calls) or None)


def parse_tool_arguments(raw_arguments: Any) -> Any:
    """Parse tool call arguments, repairing malformed JSON text.

    Args:
        raw_arguments (Any): Structured arguments, JSON text, or ``None``.

    Returns:
        Any: The parsed payload. ``None`` and blank strings mean ``{}``.

    Raises:
        ValueError: If the text is not valid JSON and cannot be repaired.
    """
    if raw_arguments is None:
        return {}
    if not isinstance(raw_arguments, str):
        return raw_arguments
    if not raw_arguments.strip():
        return {}
    repaired = repair_tool_call_json(raw_arguments)
    if repaired is None:
        raise ValueError("Tool call arguments are not valid JSON and could not be repaired")
    return json.loads(repaired)


def prepare_tool_calls(raw_calls: Optional[List[Any]], id_generator: ToolCallIdGenerator) -> ToolCallBatch:
    """Normalise model-emitted tool calls for execution.

    Args:
        raw_calls (Optional[List[Any]]): Tool calls from the model response,
            in any of the flat, LangChain (``args``) or OpenAI
            (``function``) shapes.
        id_generator (ToolCallIdGenerator): Source of ids for calls without
            one.

    Returns:
        ToolCallBatch: Every call plus the subset that failed.
    """
    batch = ToolCallBatch()
    seen: set[str] = set()
    for raw in raw_calls or []:
        if isinstance(raw, ToolInvocation):
            raw_id, name, raw_arguments = raw.id, raw.name, raw.arguments
        else:
            raw_id, name, raw_arguments = split_tool_call_record(raw)
        call_id = raw_id if isinstance(raw_id, str) and raw_id.strip() else None
        if call_id is None or call_id in seen:
            call_id = id_generator.new_tool_call_id()
            logger.debug("Synthesized tool call id %s for %s", call_id, name or "<unnamed>")
        seen.add(call_id)

        raw_text = raw_arguments if isinstance(raw_arguments, str) else json.dumps(raw_arguments, default=str)
        error: Optional[str] = None
        try:
            arguments = parse_tool_arguments(raw_arguments)
        except ValueError as exc:
            error = str(exc)
            arguments = raw_text
        if error is None and not name:
            error = "Tool call has no tool name"

        if error is not None:
            logger.warning("Tool call %s (%s) cannot be executed: %s", call_id, name or "<unnamed>", error)
            batch.failures.append(ToolCallFailure(id=call_id, name=name, raw_arguments=raw_text, error=error))

        batch.calls.append(ToolInvocation(id=call_id, name=name, arguments=arguments))

    return batch
