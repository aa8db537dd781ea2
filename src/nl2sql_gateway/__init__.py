"""
NL2SQL Gateway
==============

Provider routing, versioned prompts, security screening and diagnostics for
natural-language-to-SQL generation over OpenAI-compatible model servers.
"""

from nl2sql_gateway.models import (
    AIModel,
    ExecutionLog,
    LLMResponse,
    ModelPurpose,
    PromptPurpose,
    PromptTemplate,
    Provider,
    ProviderType,
    RoutedModel,
    RoutingContext,
    SecurityPolicy,
)
from nl2sql_gateway.config import Settings
from nl2sql_gateway.exceptions import GatewayError, NotFoundError
from nl2sql_gateway.store import (
    CachedConfigStore,
    ConfigStore,
    InMemoryConfigStore,
    load_seed,
)
from nl2sql_gateway.llm import (
    ClientFactory,
    MockClientFactory,
    MockCompletionClient,
    OpenAIClientFactory,
)
from nl2sql_gateway.routing import ModelRouter
from nl2sql_gateway.prompts import PromptManager, render_prompt
from nl2sql_gateway.security import (
    PolicyService,
    SecurityCheckResult,
    SecurityPolicyEngine,
    add_limit_clause,
)
from nl2sql_gateway.diagnostics import DiagnosticEngine
from nl2sql_gateway.schema_context import SchemaContextBuilder, StaticSchemaSource
from nl2sql_gateway.pipeline import GenerationRequest, GenerationResult, Nl2SqlPipeline
from nl2sql_gateway.assistants import QueryAssistant
from nl2sql_gateway.monitor import UsageMonitor
from nl2sql_gateway.gateway import Gateway, build_gateway

__version__ = "0.1.0"

__all__ = [
    # Models
    "AIModel",
    "ExecutionLog",
    "LLMResponse",
    "ModelPurpose",
    "PromptPurpose",
    "PromptTemplate",
    "Provider",
    "ProviderType",
    "RoutedModel",
    "RoutingContext",
    "SecurityPolicy",
    # Configuration and errors
    "Settings",
    "GatewayError",
    "NotFoundError",
    # Store
    "CachedConfigStore",
    "ConfigStore",
    "InMemoryConfigStore",
    "load_seed",
    # LLM
    "ClientFactory",
    "MockClientFactory",
    "MockCompletionClient",
    "OpenAIClientFactory",
    # Services
    "ModelRouter",
    "PromptManager",
    "render_prompt",
    "PolicyService",
    "SecurityCheckResult",
    "SecurityPolicyEngine",
    "add_limit_clause",
    "DiagnosticEngine",
    "SchemaContextBuilder",
    "StaticSchemaSource",
    "GenerationRequest",
    "GenerationResult",
    "Nl2SqlPipeline",
    "QueryAssistant",
    "UsageMonitor",
    "Gateway",
    "build_gateway",
]
