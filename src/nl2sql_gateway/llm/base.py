"""
Completion Client Interface
===========================

Factory contract for provider clients plus the helpers every caller shares:
the connection probe and a single chat-completion call for a model.

Clients follow the OpenAI SDK surface (``client.models.list()``,
``client.chat.completions.create(...)``); all three provider flavors speak
that wire protocol.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from nl2sql_gateway.models import AIModel, LLMResponse, Provider, ProviderType

# Fallback model identifiers when neither the provider nor the store names one
DEFAULT_TEST_MODELS = {
    ProviderType.OLLAMA: "llama2",
    ProviderType.VLLM: "default",
    ProviderType.OPENAI: "gpt-3.5-turbo",
}


@dataclass
class ConnectionProbe:
    """Outcome of a live connection test against a provider."""

    success: bool
    message: str
    latency_ms: int
    model_count: int = 0


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class ClientFactory(ABC):
    """Builds completion clients for registered providers."""

    @abstractmethod
    def build_client(self, provider: Provider) -> Any:
        """
        Build a configured client for the provider.

        Args:
            provider: Provider record (endpoint, credential, timeout, retries)

        Returns:
            OpenAI-compatible client
        """
        pass

    def test_connection(self, provider: Provider) -> ConnectionProbe:
        """
        Probe a provider by listing its models.

        Ollama servers that refuse the listing get a one-token chat ping
        before the probe is declared failed.
        """
        start = time.perf_counter()
        try:
            client = self.build_client(provider)
            try:
                page = client.models.list()
            except Exception:
                if provider.type != ProviderType.OLLAMA:
                    raise
                client.chat.completions.create(
                    model=DEFAULT_TEST_MODELS[ProviderType.OLLAMA],
                    messages=[{"role": "user", "content": "ping"}],
                    max_tokens=1,
                )
                return ConnectionProbe(
                    success=True,
                    message="Connection successful",
                    latency_ms=_elapsed_ms(start),
                )

            count = len(list(page.data or []))
            return ConnectionProbe(
                success=True,
                message=f"Connection successful. Found {count} models.",
                latency_ms=_elapsed_ms(start),
                model_count=count,
            )
        except Exception as e:
            return ConnectionProbe(
                success=False,
                message=f"Connection failed: {e}",
                latency_ms=_elapsed_ms(start),
            )


def chat_completion(
    client: Any,
    model: AIModel,
    prompt: str,
    system_prompt: Optional[str] = None,
) -> LLMResponse:
    """
    Run one chat completion with the model's generation parameters.

    Args:
        client: OpenAI-compatible client for the model's provider
        model: Model record (identifier, max tokens, temperature, top_p)
        prompt: User message content
        system_prompt: Overrides the model's configured system prompt

    Returns:
        LLMResponse with content and token usage
    """
    system = system_prompt if system_prompt is not None else model.system_prompt
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    response = client.chat.completions.create(
        model=model.model_id,
        messages=messages,
        max_tokens=model.max_tokens,
        temperature=model.temperature,
        top_p=model.top_p,
    )

    content = ""
    if response.choices:
        content = response.choices[0].message.content or ""
    usage = response.usage
    return LLMResponse(
        content=content,
        model=model.model_id,
        input_tokens=(usage.prompt_tokens or 0) if usage else 0,
        output_tokens=(usage.completion_tokens or 0) if usage else 0,
    )
