"""
Gateway Assembly
================

Wires the store, client factory, schema collaborators and services into
one object shared by the HTTP layer and scripts.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from nl2sql_gateway.assistants import QueryAssistant
from nl2sql_gateway.config import Settings
from nl2sql_gateway.diagnostics import DiagnosticEngine
from nl2sql_gateway.llm.base import ClientFactory
from nl2sql_gateway.llm.mock import MockClientFactory
from nl2sql_gateway.llm.openai_client import OpenAIClientFactory
from nl2sql_gateway.monitor import UsageMonitor
from nl2sql_gateway.pipeline import Nl2SqlPipeline
from nl2sql_gateway.prompts import PromptManager
from nl2sql_gateway.routing import ModelRouter
from nl2sql_gateway.schema_context import (
    SchemaContextBuilder,
    SchemaSource,
    StaticSchemaSource,
    TranslationSource,
)
from nl2sql_gateway.security.engine import SecurityPolicyEngine
from nl2sql_gateway.security.policies import PolicyService
from nl2sql_gateway.store.base import ConfigStore
from nl2sql_gateway.store.cache import CachedConfigStore
from nl2sql_gateway.store.memory import InMemoryConfigStore
from nl2sql_gateway.store.seed import load_seed

logger = structlog.get_logger(__name__)


@dataclass
class Gateway:
    settings: Settings
    store: ConfigStore
    client_factory: ClientFactory
    diagnostics: DiagnosticEngine
    router: ModelRouter
    prompts: PromptManager
    security: SecurityPolicyEngine
    policies: PolicyService
    pipeline: Nl2SqlPipeline
    assistant: QueryAssistant
    monitor: UsageMonitor


def build_gateway(
    settings: Optional[Settings] = None,
    store: Optional[ConfigStore] = None,
    client_factory: Optional[ClientFactory] = None,
    schema_source: Optional[SchemaSource] = None,
    translation_source: Optional[TranslationSource] = None,
) -> Gateway:
    """
    Assemble the gateway services.

    Without an explicit store, an in-memory store is created and seeded from
    ``settings.seed_file`` when set. Without an explicit client factory, the
    OpenAI factory is used when any provider is configured and the mock
    factory otherwise, so a bare local run still answers requests.

    Args:
        settings: Runtime settings (defaults to environment)
        store: Configuration store
        client_factory: Provider client factory
        schema_source: Schema collaborator (defaults to the static catalogue)
        translation_source: Translation collaborator (defaults to the schema
            source when it also provides translations)

    Returns:
        Assembled Gateway
    """
    settings = settings or Settings.from_env()

    if store is None:
        backing = InMemoryConfigStore()
        catalogue = None
        if settings.seed_file:
            catalogue = load_seed(backing, settings.seed_file) or None
        store = CachedConfigStore(backing, ttl_seconds=settings.config_cache_ttl)
        if schema_source is None:
            schema_source = StaticSchemaSource(catalogue)

    if schema_source is None:
        schema_source = StaticSchemaSource()
    if translation_source is None and isinstance(schema_source, TranslationSource):
        translation_source = schema_source

    if client_factory is None:
        if store.list_providers():
            client_factory = OpenAIClientFactory()
        else:
            logger.warning("no_providers_configured", client_factory="mock")
            client_factory = MockClientFactory()

    diagnostics = DiagnosticEngine(store, client_factory, max_workers=settings.diagnostic_workers)
    router = ModelRouter(store, diagnostics)
    prompts = PromptManager(store)
    security = SecurityPolicyEngine(store)
    schema_builder = SchemaContextBuilder(
        schema_source,
        translation_source,
        max_tables=settings.max_schema_tables,
        max_columns=settings.max_schema_columns,
    )
    pipeline = Nl2SqlPipeline(
        store=store,
        router=router,
        prompts=prompts,
        security=security,
        schema_builder=schema_builder,
        client_factory=client_factory,
        settings=settings,
    )
    return Gateway(
        settings=settings,
        store=store,
        client_factory=client_factory,
        diagnostics=diagnostics,
        router=router,
        prompts=prompts,
        security=security,
        policies=PolicyService(store),
        pipeline=pipeline,
        assistant=QueryAssistant(router, client_factory, schema_source, translation_source),
        monitor=UsageMonitor(store),
    )
