"""Text-completion client with an Anthropic/OpenAI provider chain."""

import logging
import os
from typing import Any, Literal, Protocol

from anthropic import Anthropic
import openai
from pydantic import BaseModel, ConfigDict, Field

from react_modifier.agents.exceptions import AgentError, LLMError
from react_modifier.models import TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_FALLBACK_MODEL = "gpt-4o-mini"  # used when a claude model id reaches openai
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.1


class LLMResponse(BaseModel):
    """Text plus token accounting for one completion."""

    model_config = ConfigDict(frozen=False)

    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    provider: str = ""


class CompletionClient(Protocol):
    """Anything that can complete a prompt; tests pass a MagicMock."""

    def complete(
        self,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> LLMResponse: ...


class LLMClient:
    """Completes prompts via Anthropic, optionally falling back to OpenAI."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        openai_api_key: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model ID to use for completions.
            llm_provider: "auto", "anthropic" or "openai".
            llm_fallback_provider: Provider tried when the primary call fails.
            openai_api_key: OpenAI key. Falls back to OPENAI_API_KEY env var.

        Raises:
            AgentError: If no API key is found or the provider config is invalid.
        """
        self.model: str = model
        self.api_key: str | None = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.openai_api_key: str | None = openai_api_key or os.getenv("OPENAI_API_KEY")
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None

        if self.api_key:
            self._anthropic_client = Anthropic(api_key=self.api_key)
        if self.openai_api_key:
            self._openai_client = openai.OpenAI(api_key=self.openai_api_key)

        if not (self._anthropic_client or self._openai_client):
            raise AgentError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameter, ANTHROPIC_API_KEY, or OPENAI_API_KEY env vars."
            )

        self.llm_provider = self._normalize_provider(llm_provider)
        self.llm_fallback_provider = (
            self._normalize_provider(llm_fallback_provider)
            if llm_fallback_provider
            else None
        )
        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise AgentError("No Anthropic API key found for provider=anthropic.")
        if self.llm_provider == "openai" and self._openai_client is None:
            raise AgentError("No OpenAI API key found for provider=openai.")

    def _normalize_provider(self, value: str) -> Literal["anthropic", "openai", "auto"]:
        if value not in {"auto", "anthropic", "openai"}:
            raise AgentError(f"Unsupported provider: {value}")
        return value  # type: ignore[return-value]

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return OPENAI_FALLBACK_MODEL
        return self.model

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        fallback = self.llm_fallback_provider
        if fallback and fallback != "auto" and fallback not in chain:
            chain.append(fallback)
        return chain

    def _call_anthropic(self, prompt: str, max_tokens: int, temperature: float) -> LLMResponse:
        if not self._anthropic_client:
            raise LLMError("Anthropic client unavailable")
        model = self._resolve_model("anthropic")
        response = self._anthropic_client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        text = "".join(
            getattr(block, "text", "")
            for block in response.content
            if getattr(block, "type", "text") == "text"
        )
        usage = getattr(response, "usage", None)
        return LLMResponse(
            text=text,
            usage=TokenUsage(
                input_tokens=getattr(usage, "input_tokens", 0) or 0,
                output_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
            model=model,
            provider="anthropic",
        )

    def _call_openai(self, prompt: str, max_tokens: int, temperature: float) -> LLMResponse:
        if not self._openai_client:
            raise LLMError("OpenAI client unavailable")
        model = self._resolve_model("openai")
        response = self._openai_client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        message: Any = response.choices[0].message
        usage = getattr(response, "usage", None)
        return LLMResponse(
            text=message.content or "",
            usage=TokenUsage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
            model=model,
            provider="openai",
        )

    def complete(
        self,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> LLMResponse:
        """Complete a prompt, walking the provider chain on failure.

        Raises:
            LLMError: If every provider in the chain fails.
        """
        last_error: Exception | None = None
        for provider in self._provider_chain():
            try:
                if provider == "anthropic":
                    return self._call_anthropic(prompt, max_tokens, temperature)
                return self._call_openai(prompt, max_tokens, temperature)
            except Exception as error:
                last_error = error
                logger.warning("LLM call via %s failed: %s", provider, error)
        raise LLMError(f"Failed to call LLM: {last_error}") from last_error
