# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Shared models for the conversation context pipeline."""

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from conversation_context.schemas.messages import MessageRole
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def split_tool_call_record(raw: Any) -> Tuple[Any, str, Any]:
    """Split a provider-shaped tool call record into id, name and arguments.

    Handles flat (``arguments``), LangChain (``args``) and OpenAI
    (``function: {name, arguments}``) records. Non-mappings yield
    ``(None, "", None)``.
    """
    if not isinstance(raw, Mapping):
        return None, "", None
    function = raw.get("function")
    if isinstance(function, Mapping):
        name = function.get("name") or raw.get("name") or ""
        arguments = function.get("arguments", raw.get("arguments"))
    else:
        name = raw.get("name") or ""
        arguments = raw.get("arguments", raw.get("args"))
    return raw.get("id"), name, arguments


class ToolInvocation(BaseModel):
    """Single tool call issued by the model inside an assistant message.

    Attributes:
        id (str): Identifier correlating the call with its tool result.
        name (str): Name of the tool function to invoke.
        arguments (Any): Opaque argument payload. Usually a dict; may be the
            raw JSON string emitted by the model.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    arguments: Any = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "ToolInvocation":
        """Build an invocation from a stored or provider-shaped record.

        Accepts flat records (``{id, name, arguments}``), LangChain records
        (``{id, name, args}``) and OpenAI records
        (``{id, function: {name, arguments}}``).

        Args:
            raw (Any): A ``ToolInvocation`` or a mapping in one of the
                shapes above.

        Returns:
            ToolInvocation: The normalised invocation.

        Raises:
            ValueError: If the record is not a mapping or has no usable id.
        """
        if isinstance(raw, ToolInvocation):
            return raw
        if not isinstance(raw, Mapping):
            raise ValueError(f"tool call record must be a mapping, got {type(raw).__name__}")

        call_id, name, arguments = split_tool_call_record(raw)
        if not call_id or not isinstance(call_id, str):
            raise ValueError("tool call record has no id")
        return cls(id=call_id, name=name, arguments={} if arguments is None else arguments)


class Message(BaseModel):
    """Message model.

    Instances are frozen; pipeline stages derive new messages with
    ``model_copy(update=...)`` instead of mutating history snapshots.

    Attributes:
        role (MessageRole): The role of the message sender.
        content (Optional[str]): Text content. ``None`` is allowed for
            assistant messages that only carry tool calls.
        tool_calls (Optional[List[ToolInvocation]]): Tool calls declared by
            an assistant message.
        tool_call_id (Optional[str]): Identifier of the tool call this
            tool-role message answers.
        importance (float): Trimming priority hint; higher is kept first.
            Also accepted as ``_importance`` in raw history records.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: MessageRole
    content: Optional[str] = None
    tool_calls: Optional[List[ToolInvocation]] = None
    tool_call_id: Optional[str] = None
    importance: float = Field(
        default=0.0,
        validation_alias=AliasChoices("importance", "_importance"),
    )

    @property
    def text(self) -> str:
        """Content as a string (``""`` when absent)."""
        return self.content or ""

    @property
    def tool_call_ids(self) -> List[str]:
        """Ids declared by this message's tool calls, in order."""
        return [tc.id for tc in self.tool_calls or []]


class ProviderCapabilities(BaseModel):
    """What a target provider accepts in an outbound message sequence.

    Attributes:
        provider_id (str): Provider identifier (e.g. ``"github_copilot"``).
        supports_tool_role (bool): Whether role ``tool`` messages and
            assistant ``tool_calls`` are accepted natively.
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str
    supports_tool_role: bool


@runtime_checkable
class HistorySource(Protocol):
    """Anything that can hand out a snapshot of a session's history."""

    def get_history(self) -> Sequence[Any]:
        """Return the stored history records in conversation order."""
        ...


class StaticHistory:
    """HistorySource over an in-memory list of records.

    Args:
        records (Sequence[Any]): Raw history records or ``Message`` objects.
    """

    def __init__(self, records: Sequence[Any]) -> None:
        self._records = list(records)

    def get_history(self) -> List[Any]:
        return list(self._records)


class PreparedContext(BaseModel):
    """Result of preparing one outbound turn.

    Attributes:
        messages (List[Message]): Final history sequence for the transport.
        system_prompt (str): System prompt the budget was computed against.
        system_tokens (int): Estimated tokens of the system prompt.
        history_tokens (int): Estimated tokens of ``messages``.
        trimmed (bool): Whether the budget trimmer dropped any message.
        validation_errors (List[str]): Preflight problems left in
            ``messages``; empty when the sequence is valid.
    """

    messages: List[Message]
    system_prompt: str
    system_tokens: int
    history_tokens: int
    trimmed: bool = False
    validation_errors: List[str] = Field(default_factory=list)

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Serialise ``messages`` to plain dicts, omitting unset fields."""
        return [m.model_dump(mode="json", exclude_none=True, exclude={"importance"}) for m in self.messages]
