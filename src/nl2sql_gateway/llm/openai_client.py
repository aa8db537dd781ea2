"""
OpenAI Client Factory
=====================

Builds ``openai.OpenAI`` clients for registered providers. Timeouts and
retries are enforced by the SDK's HTTP layer using the provider's settings.
"""

from openai import OpenAI

from nl2sql_gateway.llm.base import ClientFactory
from nl2sql_gateway.models import Provider, ProviderType

# Self-hosted servers don't always check credentials, but the SDK needs one
PLACEHOLDER_API_KEY = "not-needed"

# Flavors that serve the OpenAI-compatible API under /v1
_VERSIONED_PATH_TYPES = {ProviderType.OLLAMA, ProviderType.VLLM}


def normalize_endpoint(provider: Provider) -> str:
    """Append ``/v1`` to self-hosted endpoints that don't already carry it."""
    endpoint = provider.endpoint
    if provider.type in _VERSIONED_PATH_TYPES and "/v1" not in endpoint:
        endpoint = endpoint.rstrip("/") + "/v1"
    return endpoint


class OpenAIClientFactory(ClientFactory):
    """Client factory backed by the OpenAI Python SDK."""

    def build_client(self, provider: Provider) -> OpenAI:
        return OpenAI(
            api_key=provider.api_key or PLACEHOLDER_API_KEY,
            base_url=normalize_endpoint(provider),
            timeout=provider.timeout_ms / 1000,
            max_retries=provider.retry_count,
        )
