"""
Pytest Fixtures
===============

Shared fixtures for NL2SQL gateway tests.

Everything runs against the in-memory store and mock completion clients;
no test talks to a real provider.
"""

import pytest

from nl2sql_gateway.config import Settings
from nl2sql_gateway.diagnostics import DiagnosticEngine
from nl2sql_gateway.gateway import Gateway, build_gateway
from nl2sql_gateway.llm.mock import MockClientFactory, MockCompletionClient
from nl2sql_gateway.models import (
    AIModel,
    ModelPurpose,
    Provider,
    ProviderType,
    SecurityPolicy,
)
from nl2sql_gateway.pipeline import Nl2SqlPipeline
from nl2sql_gateway.prompts import PromptManager
from nl2sql_gateway.routing import ModelRouter
from nl2sql_gateway.schema_context import SchemaContextBuilder, StaticSchemaSource
from nl2sql_gateway.security.engine import SecurityPolicyEngine
from nl2sql_gateway.store.memory import InMemoryConfigStore

PRIMARY_ID = "primary"
BACKUP_ID = "backup"


@pytest.fixture
def settings() -> Settings:
    """Default settings with a short cache TTL."""
    return Settings(config_cache_ttl=0)


@pytest.fixture
def primary_provider() -> Provider:
    return Provider(
        id=PRIMARY_ID,
        name="Local Ollama",
        type=ProviderType.OLLAMA,
        endpoint="http://localhost:11434",
        priority=1,
    )


@pytest.fixture
def backup_provider() -> Provider:
    return Provider(
        id=BACKUP_ID,
        name="GPU vLLM",
        type=ProviderType.VLLM,
        endpoint="http://gpu-box:8000",
        priority=2,
    )


@pytest.fixture
def default_policy() -> SecurityPolicy:
    return SecurityPolicy(
        id="policy-default",
        name="Default",
        block_ddl=True,
        block_dml=True,
        blocked_keywords=["DROP", "TRUNCATE"],
        enable_pii_masking=True,
        max_result_rows=1000,
    )


@pytest.fixture
def store(
    primary_provider: Provider,
    backup_provider: Provider,
    default_policy: SecurityPolicy,
) -> InMemoryConfigStore:
    """In-memory store with two providers, three models and one policy."""
    store = InMemoryConfigStore()
    store.save_provider(primary_provider)
    store.save_provider(backup_provider)
    store.save_model(
        AIModel(
            id="m-sql-primary",
            name="SQLCoder",
            model_id="sqlcoder:7b",
            provider_id=PRIMARY_ID,
            purpose=ModelPurpose.SQL,
        )
    )
    store.save_model(
        AIModel(
            id="m-general",
            name="Llama 3",
            model_id="llama3:8b",
            provider_id=PRIMARY_ID,
            purpose=ModelPurpose.GENERAL,
        )
    )
    store.save_model(
        AIModel(
            id="m-sql-backup",
            name="DeepSeek Coder",
            model_id="deepseek-coder",
            provider_id=BACKUP_ID,
            purpose=ModelPurpose.SQL,
        )
    )
    store.save_policy(default_policy)
    return store


@pytest.fixture
def empty_store() -> InMemoryConfigStore:
    return InMemoryConfigStore()


@pytest.fixture
def primary_client() -> MockCompletionClient:
    """Mock client for the primary provider with canned SQL answers."""
    return MockCompletionClient(
        responses={
            "premium customers": [
                "```sql\nSELECT name, tier FROM customers WHERE tier = 'premium';\n```\n"
                "Returns every premium customer."
            ],
            "drop the orders table": ["```sql\nDROP TABLE orders;\n```"],
            "customer emails": ["```sql\nSELECT name, email FROM customers;\n```"],
            "top five orders": [
                "SELECT id, amount FROM orders ORDER BY amount DESC LIMIT 5;"
            ],
        },
        models=["sqlcoder:7b", "llama3:8b"],
    )


@pytest.fixture
def backup_client() -> MockCompletionClient:
    return MockCompletionClient(
        responses={
            "premium customers": [
                "```sql\nSELECT id FROM customers WHERE tier = 'premium'\n```"
            ],
        },
        models=["deepseek-coder"],
    )


@pytest.fixture
def client_factory(
    primary_client: MockCompletionClient,
    backup_client: MockCompletionClient,
) -> MockClientFactory:
    return MockClientFactory(clients={PRIMARY_ID: primary_client, BACKUP_ID: backup_client})


@pytest.fixture
def schema_source() -> StaticSchemaSource:
    """Static catalogue exposing the sample schema as connection "demo"."""
    return StaticSchemaSource()


@pytest.fixture
def diagnostics(store: InMemoryConfigStore, client_factory: MockClientFactory) -> DiagnosticEngine:
    return DiagnosticEngine(store, client_factory, max_workers=2)


@pytest.fixture
def router(store: InMemoryConfigStore, diagnostics: DiagnosticEngine) -> ModelRouter:
    return ModelRouter(store, diagnostics)


@pytest.fixture
def prompts(store: InMemoryConfigStore) -> PromptManager:
    return PromptManager(store)


@pytest.fixture
def security_engine(store: InMemoryConfigStore) -> SecurityPolicyEngine:
    return SecurityPolicyEngine(store)


@pytest.fixture
def pipeline(
    store: InMemoryConfigStore,
    router: ModelRouter,
    prompts: PromptManager,
    security_engine: SecurityPolicyEngine,
    schema_source: StaticSchemaSource,
    client_factory: MockClientFactory,
    settings: Settings,
) -> Nl2SqlPipeline:
    return Nl2SqlPipeline(
        store=store,
        router=router,
        prompts=prompts,
        security=security_engine,
        schema_builder=SchemaContextBuilder(schema_source, schema_source),
        client_factory=client_factory,
        settings=settings,
    )


@pytest.fixture
def gateway(
    settings: Settings,
    store: InMemoryConfigStore,
    client_factory: MockClientFactory,
    schema_source: StaticSchemaSource,
) -> Gateway:
    """Fully assembled gateway over the seeded store and mock clients."""
    return build_gateway(
        settings=settings,
        store=store,
        client_factory=client_factory,
        schema_source=schema_source,
    )
