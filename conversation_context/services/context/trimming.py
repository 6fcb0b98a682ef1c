# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Token budget trimming.

Fits a sanitized history into the model's context window by evicting whole
messages.  Strategy:

  1. Fast path: system + history + protocol overhead within the safe
     threshold (58 % of the window) means nothing is touched.
  2. A first user message with reserved importance (>= 10.0) is always
     kept and paid for up front.
  3. Older messages are admitted by importance (stable for ties), then the
     last ``keep_recent`` messages are admitted in order, both against the
     same running total.
  4. Output order: reserved message, admitted older messages in original
     order, admitted recent messages in original order.

The two admission passes run one after the other and are not a joint
optimum; the selection order is relied on downstream and must not change.
Trimming can split a tool call from its result, so callers re-run pairing
repair on the output.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from conversation_context.models import Message
from conversation_context.schemas.messages import MessageRole
from conversation_context.services.context.settings import ContextSettings
from conversation_context.services.context.tokens import HeuristicTokenEstimator, TokenEstimator

logger = logging.getLogger(__name__)


def _find_reserved_user_index(messages: Sequence[Message], settings: ContextSettings) -> Optional[int]:
    """Index of the first user message if it carries reserved importance.

    Only the first user message is considered; later ones never qualify.

    Args:
        messages (Sequence[Message]): Conversation message list to scan.
        settings (ContextSettings): Provides the reserved importance level.

    Returns:
        Optional[int]: Index of the reserved message, or ``None``.
    """
    for i, msg in enumerate(messages):
        if msg.role == MessageRole.USER:
            if msg.importance >= settings.reserved_importance:
                return i
            return None
    return None


def _admit_greedily(
    candidates: Sequence[Tuple[int, Message]],
    budget: int,
    used: int,
    estimator: TokenEstimator,
) -> Tuple[List[Tuple[int, Message]], int]:
    """Admit candidates in the given order while the running total fits.

    A candidate that does not fit is skipped; later, smaller candidates may
    still be admitted.

    Args:
        candidates (Sequence[Tuple[int, Message]]): ``(original_index,
            message)`` pairs in admission order.
        budget (int): Token budget shared by all admission passes.
        used (int): Tokens already admitted by earlier passes.
        estimator (TokenEstimator): Token estimator.

    Returns:
        Tuple[List[Tuple[int, Message]], int]: Admitted pairs in admission
            order and the updated running total.
    """
    admitted: List[Tuple[int, Message]] = []
    for idx, msg in candidates:
        cost = estimator.estimate_message_tokens(msg)
        if used + cost <= budget:
            admitted.append((idx, msg))
            used += cost
    return admitted, used


def trim_conversation(
    messages: List[Message],
    system_prompt: str,
    context_window: int,
    max_response_tokens: int,
    *,
    settings: Optional[ContextSettings] = None,
    estimator: Optional[TokenEstimator] = None,
) -> List[Message]:
    """Trim history so system prompt plus history fit the safe threshold.

    Args:
        messages (List[Message]): Sanitized conversation history.
        system_prompt (str): System prompt sent with this turn.
        context_window (int): Model context window in tokens.
        max_response_tokens (int): Model response budget. Logged only; the
            safe threshold ratio already leaves room for the response.
        settings (Optional[ContextSettings]): Budget configuration.
            Defaults to ``ContextSettings()``.
        estimator (Optional[TokenEstimator]): Token estimator. Defaults to
            ``HeuristicTokenEstimator()``.

    Returns:
        List[Message]: *messages* itself when no trimming is needed,
            otherwise a new list with whole messages evicted.
    """
    if not messages:
        return messages

    settings = settings or ContextSettings()
    estimator = estimator or HeuristicTokenEstimator()

    safe_threshold = settings.safe_threshold(context_window)
    system_tokens = estimator.estimate_tokens(system_prompt)
    history_tokens = estimator.estimate_messages_tokens(messages)
    current_total = system_tokens + history_tokens + settings.protocol_overhead_tokens

    if current_total <= safe_threshold:
        logger.debug(
            "History OK: %d tokens (total: %d of %d safe limit, model context: %d)",
            history_tokens,
            current_total,
            safe_threshold,
            context_window,
        )
        return messages

    logger.debug(
        "History exceeds safe limit: %d tokens (safe: %d of %d, system: %d, history: %d, "
        "max response: %d, messages: %d)",
        current_total,
        safe_threshold,
        context_window,
        system_tokens,
        history_tokens,
        max_response_tokens,
        len(messages),
    )

    count = len(messages)
    if count <= settings.keep_recent:
        logger.debug("Only %d messages (keep_recent=%d), not trimming", count, settings.keep_recent)
        return messages

    target_tokens = int((safe_threshold - system_tokens) * settings.estimation_margin)
    if target_tokens < settings.min_target_tokens:
        logger.warning(
            "Target tokens very low (%d), system prompt may be too large; using floor of %d",
            target_tokens,
            settings.min_target_tokens,
        )
        target_tokens = settings.min_target_tokens

    reserved_idx = _find_reserved_user_index(messages, settings)
    reserved_tokens = 0
    if reserved_idx is not None:
        reserved_tokens = estimator.estimate_message_tokens(messages[reserved_idx])
        logger.debug(
            "Preserving first user message (importance=%s, tokens=%d)",
            messages[reserved_idx].importance,
            reserved_tokens,
        )
    available_tokens = target_tokens - reserved_tokens

    recent_start = count - settings.keep_recent
    older = [(i, messages[i]) for i in range(recent_start) if i != reserved_idx]
    recent = [(i, messages[i]) for i in range(recent_start, count) if i != reserved_idx]

    ranked_older = sorted(older, key=lambda pair: -pair[1].importance)
    kept_older, used = _admit_greedily(ranked_older, available_tokens, 0, estimator)
    kept_recent, used = _admit_greedily(recent, available_tokens, used, estimator)

    trimmed: List[Message] = []
    if reserved_idx is not None:
        trimmed.append(messages[reserved_idx])
    trimmed.extend(msg for _, msg in sorted(kept_older, key=lambda pair: pair[0]))
    trimmed.extend(msg for _, msg in kept_recent)

    logger.info(
        "Trimmed history: %d -> %d messages, %d -> %d tokens (system %d, safe limit %d)",
        count,
        len(trimmed),
        history_tokens,
        reserved_tokens + used,
        system_tokens,
        safe_threshold,
    )
    return trimmed
