# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Per-turn context preparation.

Runs the stages in order for one outbound request:

    history = load_conversation_history(source)          # sanitize
    trimmed = trim_conversation(history, system, ...)    # budget
    paired  = repair_tool_use_result_pairing(trimmed)    # re-pair after eviction
    final   = enforce_message_alternation(paired, provider)

The pipeline holds no per-session state; one instance can serve every
session as long as the caller serializes turns within a session.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from conversation_context.config import Settings, settings as default_settings
from conversation_context.models import HistorySource, PreparedContext, ProviderCapabilities
from conversation_context.services.context.alternation import enforce_message_alternation, resolve_provider
from conversation_context.services.context.repair import repair_tool_use_result_pairing
from conversation_context.services.context.sanitizer import load_conversation_history
from conversation_context.services.context.settings import ContextSettings
from conversation_context.services.context.tokens import TokenEstimator, get_token_estimator
from conversation_context.services.context.trimming import trim_conversation
from conversation_context.services.context.validation import preflight_validate

logger = logging.getLogger(__name__)


class ContextPipeline:
    """Sanitize, trim and format session history for one provider request.

    Args:
        context_settings (Optional[ContextSettings]): Budget configuration.
        estimator (Optional[TokenEstimator]): Token estimator. Defaults to
            the one selected by ``app_settings.TOKEN_ESTIMATOR``.
        app_settings (Optional[Settings]): Application settings providing
            model capability fallbacks and provider patterns.
    """

    def __init__(
        self,
        context_settings: Optional[ContextSettings] = None,
        estimator: Optional[TokenEstimator] = None,
        app_settings: Optional[Settings] = None,
    ) -> None:
        self._app_settings = app_settings or default_settings
        self._context_settings = context_settings or ContextSettings()
        self._estimator = estimator or get_token_estimator(self._app_settings)

    @property
    def estimator(self) -> TokenEstimator:
        return self._estimator

    def prepare(
        self,
        source: Optional[HistorySource],
        system_prompt: str,
        provider: Union[ProviderCapabilities, str],
        context_window: Optional[int] = None,
        max_response_tokens: Optional[int] = None,
    ) -> PreparedContext:
        """Build the history sequence for one outbound turn.

        Args:
            source (Optional[HistorySource]): Session history accessor.
            system_prompt (str): System prompt built for this turn.
            provider (Union[ProviderCapabilities, str]): Target provider, or
                its id to resolve from configuration.
            context_window (Optional[int]): Model context window. Defaults
                to ``DEFAULT_CONTEXT_WINDOW``.
            max_response_tokens (Optional[int]): Model response budget.
                Defaults to ``DEFAULT_MAX_RESPONSE_TOKENS``.

        Returns:
            PreparedContext: Final messages plus token accounting.
        """
        if isinstance(provider, str):
            provider = resolve_provider(provider, self._app_settings)
        window = context_window or self._app_settings.DEFAULT_CONTEXT_WINDOW
        max_response = max_response_tokens or self._app_settings.DEFAULT_MAX_RESPONSE_TOKENS

        history = load_conversation_history(source)
        trimmed = trim_conversation(
            history,
            system_prompt,
            window,
            max_response,
            settings=self._context_settings,
            estimator=self._estimator,
        )
        was_trimmed = trimmed is not history
        if was_trimmed:
            report = repair_tool_use_result_pairing(trimmed)
            trimmed = report.messages

        final = enforce_message_alternation(trimmed, provider)

        errors = preflight_validate(final)
        for error in errors:
            logger.warning("Prepared context failed preflight: %s", error)

        system_tokens = self._estimator.estimate_tokens(system_prompt)
        history_tokens = self._estimator.estimate_messages_tokens(final)
        if self._app_settings.DEBUG:
            logger.debug(
                "Prepared %d messages for %s: system %d + history %d tokens of %d window",
                len(final),
                provider.provider_id,
                system_tokens,
                history_tokens,
                window,
            )

        return PreparedContext(
            messages=final,
            system_prompt=system_prompt,
            system_tokens=system_tokens,
            history_tokens=history_tokens,
            trimmed=was_trimmed,
            validation_errors=errors,
        )
