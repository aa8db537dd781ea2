"""
Unit Tests for Completion Clients
=================================

Tests for endpoint normalization, SDK client construction, connection
probes and the shared chat-completion helper.
"""

import pytest
from openai import OpenAI

from nl2sql_gateway.llm.base import chat_completion
from nl2sql_gateway.llm.mock import MockClientFactory, MockCompletionClient
from nl2sql_gateway.llm.openai_client import (
    PLACEHOLDER_API_KEY,
    OpenAIClientFactory,
    normalize_endpoint,
)
from nl2sql_gateway.models import AIModel, Provider, ProviderType


def _provider(provider_type: ProviderType, endpoint: str, **kwargs) -> Provider:
    return Provider(id="p1", name="p1", type=provider_type, endpoint=endpoint, **kwargs)


class TestNormalizeEndpoint:
    """Tests for the /v1 suffix rule."""

    @pytest.mark.parametrize(
        "provider_type,endpoint,expected",
        [
            (ProviderType.OLLAMA, "http://localhost:11434", "http://localhost:11434/v1"),
            (ProviderType.OLLAMA, "http://localhost:11434/", "http://localhost:11434/v1"),
            (ProviderType.VLLM, "http://gpu:8000/v1", "http://gpu:8000/v1"),
            (ProviderType.OPENAI, "https://api.openai.com", "https://api.openai.com"),
        ],
    )
    def test_normalize(self, provider_type, endpoint, expected) -> None:
        assert normalize_endpoint(_provider(provider_type, endpoint)) == expected


class TestOpenAIClientFactory:
    """Tests for SDK client construction."""

    def test_builds_configured_client(self) -> None:
        provider = _provider(
            ProviderType.VLLM,
            "http://gpu:8000",
            api_key="secret",
            timeout_ms=45000,
            retry_count=2,
        )
        client = OpenAIClientFactory().build_client(provider)

        assert isinstance(client, OpenAI)
        assert str(client.base_url).rstrip("/") == "http://gpu:8000/v1"
        assert client.api_key == "secret"
        assert client.timeout == 45.0
        assert client.max_retries == 2

    def test_placeholder_key_without_credential(self) -> None:
        client = OpenAIClientFactory().build_client(
            _provider(ProviderType.OLLAMA, "http://localhost:11434")
        )
        assert client.api_key == PLACEHOLDER_API_KEY


class TestConnectionProbe:
    """Tests for the connection probe shared by all factories."""

    def test_successful_listing(self) -> None:
        factory = MockClientFactory(default=MockCompletionClient(models=["a", "b", "c"]))

        probe = factory.test_connection(_provider(ProviderType.VLLM, "http://gpu:8000"))

        assert probe.success is True
        assert probe.model_count == 3
        assert probe.message == "Connection successful. Found 3 models."

    def test_listing_failure(self) -> None:
        factory = MockClientFactory(default=MockCompletionClient(fail_models_list=True))

        probe = factory.test_connection(_provider(ProviderType.OPENAI, "https://x"))

        assert probe.success is False
        assert probe.message == "Connection failed: Connection refused"

    def test_ollama_chat_ping_fallback(self) -> None:
        """Test that ollama falls back to a one-token chat ping."""
        client = MockCompletionClient(fail_models_list=True)
        factory = MockClientFactory(default=client)

        probe = factory.test_connection(_provider(ProviderType.OLLAMA, "http://localhost:11434"))

        assert probe.success is True
        assert probe.message == "Connection successful"
        assert client.calls[0]["model"] == "llama2"
        assert client.calls[0]["max_tokens"] == 1

    def test_ollama_ping_failure(self) -> None:
        client = MockCompletionClient(fail_models_list=True, fail_chat=True)
        factory = MockClientFactory(default=client)

        probe = factory.test_connection(_provider(ProviderType.OLLAMA, "http://localhost:11434"))

        assert probe.success is False

    def test_build_failure_is_a_failed_probe(self) -> None:
        class BrokenFactory(MockClientFactory):
            def build_client(self, provider):
                raise ValueError("bad endpoint")

        probe = BrokenFactory().test_connection(_provider(ProviderType.VLLM, "::"))

        assert probe.success is False
        assert probe.message == "Connection failed: bad endpoint"


class TestChatCompletion:
    """Tests for the single-call chat helper."""

    def test_sends_model_parameters(self) -> None:
        client = MockCompletionClient(default_response="SELECT 1;")
        model = AIModel(
            name="m",
            model_id="sqlcoder",
            provider_id="p1",
            max_tokens=256,
            temperature=0.2,
            top_p=0.8,
            system_prompt="You write SQL.",
        )

        response = chat_completion(client, model, "count the orders")

        call = client.calls[0]
        assert call["model"] == "sqlcoder"
        assert call["max_tokens"] == 256
        assert call["temperature"] == 0.2
        assert call["top_p"] == 0.8
        assert call["messages"][0] == {"role": "system", "content": "You write SQL."}
        assert call["messages"][1] == {"role": "user", "content": "count the orders"}
        assert response.content == "SELECT 1;"
        assert response.input_tokens == 6
        assert response.output_tokens == 2
        assert response.tokens_used == 8

    def test_no_system_message_without_prompt(self) -> None:
        client = MockCompletionClient()
        model = AIModel(name="m", model_id="x", provider_id="p1")

        chat_completion(client, model, "hello")

        assert [m["role"] for m in client.calls[0]["messages"]] == ["user"]

    def test_system_prompt_override(self) -> None:
        client = MockCompletionClient()
        model = AIModel(name="m", model_id="x", provider_id="p1", system_prompt="configured")

        chat_completion(client, model, "hello", system_prompt="override")

        assert client.calls[0]["messages"][0]["content"] == "override"
