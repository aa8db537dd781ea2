"""
Mock Completion Client
======================

In-process stand-in for an OpenAI-compatible server, for tests and demos
without a live provider. Responses are real ``openai`` response objects so
callers exercise the same attribute access as in production.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from openai.types import CompletionUsage, Model
from openai.types.chat import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatCompletionMessage,
)
from openai.types.chat.chat_completion import Choice
from openai.types.chat.chat_completion_chunk import Choice as ChunkChoice
from openai.types.chat.chat_completion_chunk import ChoiceDelta

from nl2sql_gateway.llm.base import ClientFactory
from nl2sql_gateway.models import Provider

DEFAULT_RESPONSE = "```sql\nSELECT 1;\n```"


@dataclass
class ModelPage:
    """Minimal stand-in for the SDK's paginated model listing."""

    data: list[Model] = field(default_factory=list)


def _count_tokens(text: str) -> int:
    return len(text.split())


class _Models:
    def __init__(self, owner: "MockCompletionClient") -> None:
        self._owner = owner

    def list(self) -> ModelPage:
        if self._owner.fail_models_list:
            raise ConnectionError(self._owner.failure_message)
        return ModelPage(
            data=[
                Model(id=name, created=0, object="model", owned_by="mock")
                for name in self._owner.model_names
            ]
        )


class _Completions:
    def __init__(self, owner: "MockCompletionClient") -> None:
        self._owner = owner

    def create(self, **kwargs: Any) -> Any:
        return self._owner._create(**kwargs)


class _Chat:
    def __init__(self, owner: "MockCompletionClient") -> None:
        self.completions = _Completions(owner)


class MockCompletionClient:
    """
    OpenAI-shaped client returning canned chat completions.

    Responses are matched by substring against the last user message; each
    key maps to a list of successive answers (the last one repeats).
    """

    def __init__(
        self,
        responses: dict[str, list[str]] | None = None,
        models: list[str] | None = None,
        default_response: str = DEFAULT_RESPONSE,
        fail_models_list: bool = False,
        fail_chat: bool = False,
        fail_stream: bool = False,
        failure_message: str = "Connection refused",
        delay_seconds: float = 0.0,
    ) -> None:
        """
        Initialize with canned responses and failure switches.

        Args:
            responses: Dict mapping prompt substrings to lists of answers
            models: Model identifiers returned by ``models.list()``
            default_response: Answer when no key matches
            fail_models_list: Make the model listing raise
            fail_chat: Make non-streaming completions raise
            fail_stream: Make streaming completions raise
            failure_message: Message carried by simulated failures
            delay_seconds: Artificial latency per completion call
        """
        self.responses = responses or {}
        self.model_names = models if models is not None else ["mock-sql-model"]
        self.default_response = default_response
        self.fail_models_list = fail_models_list
        self.fail_chat = fail_chat
        self.fail_stream = fail_stream
        self.failure_message = failure_message
        self.delay_seconds = delay_seconds
        self.call_counts: dict[str, int] = {}
        self.calls: list[dict[str, Any]] = []
        self.models = _Models(self)
        self.chat = _Chat(self)

    def _answer(self, prompt: str) -> str:
        for key, answers in self.responses.items():
            if key.lower() in prompt.lower():
                count = self.call_counts.get(key, 0)
                self.call_counts[key] = count + 1
                return answers[min(count, len(answers) - 1)]
        return self.default_response

    def _create(
        self,
        model: str,
        messages: list[dict[str, str]],
        stream: bool = False,
        **params: Any,
    ) -> Any:
        self.calls.append({"model": model, "messages": messages, "stream": stream, **params})
        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if stream and self.fail_stream:
            raise ConnectionError(self.failure_message)
        if not stream and self.fail_chat:
            raise ConnectionError(self.failure_message)

        prompt = messages[-1]["content"] if messages else ""
        content = self._answer(prompt)
        if stream:
            return self._stream(model, content)

        prompt_tokens = sum(_count_tokens(m["content"]) for m in messages)
        completion_tokens = _count_tokens(content)
        return ChatCompletion(
            id="chatcmpl-mock",
            object="chat.completion",
            created=int(time.time()),
            model=model,
            choices=[
                Choice(
                    index=0,
                    finish_reason="stop",
                    message=ChatCompletionMessage(role="assistant", content=content),
                )
            ],
            usage=CompletionUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    def _stream(self, model: str, content: str) -> Iterator[ChatCompletionChunk]:
        for piece in content.split(" "):
            yield ChatCompletionChunk(
                id="chatcmpl-mock",
                object="chat.completion.chunk",
                created=int(time.time()),
                model=model,
                choices=[
                    ChunkChoice(
                        index=0,
                        delta=ChoiceDelta(content=piece + " "),
                        finish_reason=None,
                    )
                ],
            )

    def reset(self) -> None:
        """Reset call counts and the call record for fresh test runs."""
        self.call_counts = {}
        self.calls = []


class MockClientFactory(ClientFactory):
    """
    Hands out mock clients per provider id.

    Providers without a dedicated client share ``default``.
    """

    def __init__(
        self,
        clients: dict[str, MockCompletionClient] | None = None,
        default: Optional[MockCompletionClient] = None,
    ) -> None:
        self.clients = clients or {}
        self.default = default or MockCompletionClient()
        self.built_for: list[str] = []

    def build_client(self, provider: Provider) -> MockCompletionClient:
        self.built_for.append(provider.id)
        return self.clients.get(provider.id, self.default)
