"""
LLM Module
==========

Provider client factories and the shared completion helpers.
"""

from nl2sql_gateway.llm.base import (
    DEFAULT_TEST_MODELS,
    ClientFactory,
    ConnectionProbe,
    chat_completion,
)
from nl2sql_gateway.llm.mock import MockClientFactory, MockCompletionClient
from nl2sql_gateway.llm.openai_client import OpenAIClientFactory, normalize_endpoint

__all__ = [
    "DEFAULT_TEST_MODELS",
    "ClientFactory",
    "ConnectionProbe",
    "chat_completion",
    "MockClientFactory",
    "MockCompletionClient",
    "OpenAIClientFactory",
    "normalize_endpoint",
]
