"""
LLM Client with OpenAI/Anthropic provider switch.

Uses the Factory pattern (LLMClient.create) to instantiate the right provider
based on env vars or explicit argument. Each provider implements BaseLLMClient
so the extractor doesn't need to know which LLM is behind the call.

Clients return LLMResponse: the raw text, the parsed JSON (complete_json only)
and token usage as reported by the provider.
"""

import json
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from .exceptions import LLMClientError
from .logger import get_module_logger
from .schemas import LLMResponse, Usage

logger = get_module_logger("llm_client")


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


DEFAULT_MODELS = {
    LLMProvider.OPENAI: "gpt-4o-mini",
    LLMProvider.ANTHROPIC: "claude-sonnet-4-20250514",
}


def parse_json_response(text: str, provider: str) -> Any:
    """
    Parse model output as JSON, tolerating a markdown code fence around it.

    Raises:
        LLMClientError: if the text is not JSON
    """
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    try:
        return json.loads(cleaned.strip())
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse {provider} response as JSON: {e}")
        raise LLMClientError(
            f"Failed to parse response as JSON: {str(e)}",
            provider=provider,
            details={"response": text}
        ) from e


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Send a prompt to the LLM and return the response.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt

        Returns:
            LLMResponse with text and usage
        """
        pass

    @abstractmethod
    def complete_json(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Send a prompt and parse the response as JSON.

        Returns:
            LLMResponse whose data holds the parsed JSON value
        """
        pass


class OpenAIClient(BaseLLMClient):
    """OpenAI API client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODELS[LLMProvider.OPENAI],
        temperature: float = 0.0
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise LLMClientError(
                "OpenAI API key not provided",
                provider="openai"
            )
        self.model = model
        self.temperature = temperature

        # Lazy import: only require the openai SDK when this provider is used
        try:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key)
        except ImportError as e:
            raise LLMClientError(
                "openai package not installed. Run: pip install openai",
                provider="openai"
            ) from e

    def _create(self, prompt: str, system_prompt: Optional[str], **kwargs):
        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                **kwargs
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise LLMClientError(
                f"OpenAI API call failed: {str(e)}",
                provider="openai",
                details={"error": str(e)}
            ) from e

        usage = Usage()
        if response.usage is not None:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens
            )
        return LLMResponse(text=response.choices[0].message.content or "", usage=usage)

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """Send prompt to OpenAI and return response."""
        return self._create(prompt, system_prompt)

    def complete_json(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """Send prompt to OpenAI in JSON mode and parse the response."""
        response = self._create(prompt, system_prompt, response_format={"type": "json_object"})
        response.data = parse_json_response(response.text, "openai")
        return response


class AnthropicClient(BaseLLMClient):
    """Anthropic API client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODELS[LLMProvider.ANTHROPIC],
        temperature: float = 0.0,
        max_tokens: int = 4096
    ):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise LLMClientError(
                "Anthropic API key not provided",
                provider="anthropic"
            )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        # Lazy import: same as OpenAIClient, only when this provider is selected
        try:
            import anthropic
            self.client = anthropic.Anthropic(api_key=self.api_key)
        except ImportError as e:
            raise LLMClientError(
                "anthropic package not installed. Run: pip install anthropic",
                provider="anthropic"
            ) from e

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """Send prompt to Anthropic and return response."""
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}]
        }

        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMClientError(
                f"Anthropic API call failed: {str(e)}",
                provider="anthropic",
                details={"error": str(e)}
            ) from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        usage = Usage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens
        )
        return LLMResponse(text=text, usage=usage)

    def complete_json(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """Send prompt to Anthropic and parse JSON response."""
        # No native JSON mode, so ask for it explicitly
        json_prompt = f"{prompt}\n\nRespond with valid JSON only, no additional text."

        response = self.complete(json_prompt, system_prompt)
        # Fenced ```json blocks are common here; parse_json_response strips them
        response.data = parse_json_response(response.text, "anthropic")
        return response


class LLMClient:
    """
    Factory class for creating LLM clients with provider switch.

    Usage:
        # Using environment variable LLM_PROVIDER
        client = LLMClient.create()

        # Explicit provider
        client = LLMClient.create(provider=LLMProvider.OPENAI)
        client = LLMClient.create(provider=LLMProvider.ANTHROPIC)
    """

    @staticmethod
    def create(
        provider: Optional[LLMProvider] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ) -> BaseLLMClient:
        """
        Create an LLM client for the specified provider.

        Args:
            provider: LLM provider (defaults to env var LLM_PROVIDER or 'openai')
            api_key: API key (defaults to provider-specific env var)
            model: Model name (defaults to provider-specific default)

        Returns:
            Configured LLM client
        """
        # Resolve provider: explicit arg > env var > default to OpenAI
        if provider is None:
            provider_str = os.getenv("LLM_PROVIDER", "openai").lower()
            try:
                provider = LLMProvider(provider_str)
            except ValueError:
                logger.warning(
                    f"Unknown LLM_PROVIDER '{provider_str}', defaulting to openai"
                )
                provider = LLMProvider.OPENAI

        logger.info(f"Creating LLM client for provider: {provider.value}")

        kwargs = {"api_key": api_key}
        if model:
            kwargs["model"] = model

        if provider == LLMProvider.OPENAI:
            return OpenAIClient(**kwargs)

        elif provider == LLMProvider.ANTHROPIC:
            return AnthropicClient(**kwargs)

        else:
            raise LLMClientError(
                f"Unsupported provider: {provider}",
                provider=str(provider)
            )
