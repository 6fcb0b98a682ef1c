# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Application configuration using pydantic-settings.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Context pipeline settings.

    Attributes:
        DEBUG (bool): Whether to log per-message pipeline decisions.
        DEFAULT_CONTEXT_WINDOW (int): Context window used when the model
            capability lookup has no value.
        DEFAULT_MAX_RESPONSE_TOKENS (int): Response budget used when the
            model capability lookup has no value.
        TOKEN_ESTIMATOR (str): ``"heuristic"`` (chars/4) or ``"tiktoken"``.
        TIKTOKEN_MODEL (str): Model name passed to tiktoken when the
            tiktoken estimator is selected.
        TOOL_ROLE_PROVIDERS (str): Comma-separated glob patterns of provider
            ids that accept role ``tool`` messages natively.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    DEBUG: bool = False

    # Model capability fallbacks
    DEFAULT_CONTEXT_WINDOW: int = 128_000
    DEFAULT_MAX_RESPONSE_TOKENS: int = 16_000

    # Token estimation
    TOKEN_ESTIMATOR: str = "heuristic"
    TIKTOKEN_MODEL: str = "gpt-4o"

    # Providers
    TOOL_ROLE_PROVIDERS: str = "*github*,*openai*"

    def get_tool_role_providers(self) -> List[str]:
        """Parse tool-role provider patterns as list.

        Returns:
            List[str]: Lower-cased, non-empty glob patterns split from the
                comma-separated TOOL_ROLE_PROVIDERS setting.
        """
        return [p.strip().lower() for p in self.TOOL_ROLE_PROVIDERS.split(",") if p.strip()]


settings = Settings()
