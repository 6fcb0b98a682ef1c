# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Conversation context module.

Turns stored session history into a message sequence a provider accepts:

  Stage 1: Sanitization  (sanitizer.py)
      Drop structurally invalid records and system messages, then repair
      tool call / tool result pairing (repair.py).

  Stage 2: Budget trimming  (trimming.py)
      Evict whole messages until system prompt plus history fit 58 % of the
      context window, keeping a reserved first user message and preferring
      important older messages and the most recent turns.

  Stage 3: Role alternation  (alternation.py)
      Merge consecutive same-role messages and, for providers without a
      ``tool`` role, rewrite tool results as user messages.

  Pre-flight check  (validation.py)
      Report any pairing or alternation problem left in the final sequence.

Usage:

    pipeline = ContextPipeline()
    prepared = pipeline.prepare(session, system_prompt, "github_copilot",
                                context_window=128_000, max_response_tokens=16_000)
    llm.invoke(to_langchain_messages(prepared.messages, prepared.system_prompt))

Turns of one session must be prepared one at a time; the stages themselves
hold no state.
"""

from conversation_context.services.context.alternation import enforce_message_alternation, resolve_provider
from conversation_context.services.context.pipeline import ContextPipeline
from conversation_context.services.context.repair import (
    RepairReport,
    drop_orphaned_tool_results,
    repair_tool_use_result_pairing,
    strip_unanswered_tool_calls,
)
from conversation_context.services.context.sanitizer import load_conversation_history, sanitize_history
from conversation_context.services.context.settings import ContextSettings
from conversation_context.services.context.tokens import (
    HeuristicTokenEstimator,
    TiktokenEstimator,
    TokenEstimator,
    get_token_estimator,
)
from conversation_context.services.context.trimming import trim_conversation
from conversation_context.services.context.validation import preflight_validate

__all__ = [
    "ContextSettings",
    "ContextPipeline",
    "TokenEstimator",
    "HeuristicTokenEstimator",
    "TiktokenEstimator",
    "get_token_estimator",
    "sanitize_history",
    "load_conversation_history",
    "repair_tool_use_result_pairing",
    "strip_unanswered_tool_calls",
    "drop_orphaned_tool_results",
    "RepairReport",
    "trim_conversation",
    "resolve_provider",
    "enforce_message_alternation",
    "preflight_validate",
]
