"""Runtime settings for the modification engine."""

import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from react_modifier.orchestrator.exceptions import ConfigurationError

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
ENV_PREFIX = "MODIFIER_"

_ENV_FIELDS = {
    "model": "MODEL",
    "llm_provider": "LLM_PROVIDER",
    "llm_fallback_provider": "LLM_FALLBACK_PROVIDER",
    "max_tokens": "MAX_TOKENS",
    "temperature": "TEMPERATURE",
    "full_file_cap": "FULL_FILE_CAP",
    "fallback_cap": "FALLBACK_CAP",
    "fallback_candidates": "FALLBACK_CANDIDATES",
    "text_batch_size": "TEXT_BATCH_SIZE",
    "word_boundary_matching": "WORD_BOUNDARY",
    "cleanup_timeout_seconds": "CLEANUP_TIMEOUT",
    "large_operation_tokens": "LARGE_OPERATION_TOKENS",
    "debug_tokens": "DEBUG_TOKENS",
}


class ModifierSettings(BaseModel):
    """Tunables for one dispatcher instance."""

    model_config = ConfigDict(frozen=False)

    model: str = DEFAULT_MODEL
    llm_provider: Literal["auto", "anthropic", "openai"] = "auto"
    llm_fallback_provider: Optional[Literal["anthropic", "openai"]] = None
    max_tokens: int = Field(default=4000, gt=0)
    temperature: float = Field(default=0.1, ge=0.0, le=1.0)
    full_file_cap: int = Field(default=5, ge=1)  # files rewritten per full-file pass
    fallback_cap: int = Field(default=5, ge=1)  # successful fallback rewrites
    fallback_candidates: int = Field(default=8, ge=1)
    text_batch_size: int = Field(default=10, ge=1)
    word_boundary_matching: bool = False
    cleanup_timeout_seconds: float = Field(default=300.0, gt=0)
    large_operation_tokens: int = Field(default=8000, gt=0)
    debug_tokens: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "ModifierSettings":
        """Build settings from MODIFIER_* environment variables.

        Keyword overrides win over the environment.

        Raises:
            ConfigurationError: If a value fails validation.
        """
        values: dict = {}
        for field_name, suffix in _ENV_FIELDS.items():
            raw = os.getenv(f"{ENV_PREFIX}{suffix}")
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid modifier settings: {e}") from e
