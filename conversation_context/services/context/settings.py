# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Context budget settings.

All budget thresholds for the trimming stage, expressed as ratios of the
context window or as absolute token counts.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ContextSettings:
    """Budget trimming configuration in one place.

    Attributes:
        safe_threshold_ratio (float): Share of the context window history
            plus system prompt may occupy. The rest is left for the model's
            reasoning and output and for estimation error.
        protocol_overhead_tokens (int): Flat allowance for request framing,
            added to the estimate on the fast path.
        estimation_margin (float): Multiplier applied to the space left after
            the system prompt when computing the trim target.
        min_target_tokens (int): Floor for the trim target. When the system
            prompt alone pushes the target below this, the threshold is
            knowingly exceeded.
        keep_recent (int): Number of trailing messages treated as "recent".
            Histories with this many messages or fewer are never trimmed.
        reserved_importance (float): Minimum importance that makes the first
            user message reserved (never trimmed).
    """

    safe_threshold_ratio: float = 0.58
    protocol_overhead_tokens: int = 500
    estimation_margin: float = 0.9
    min_target_tokens: int = 5_000
    keep_recent: int = 10
    reserved_importance: float = 10.0

    def safe_threshold(self, context_window: int) -> int:
        """Token threshold above which history must be trimmed.

        Args:
            context_window (int): Model context window in tokens.

        Returns:
            int: ``floor(context_window * safe_threshold_ratio)``.
        """
        return int(context_window * self.safe_threshold_ratio)
