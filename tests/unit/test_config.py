"""
Unit Tests for Settings and Gateway Assembly
============================================

Tests for environment parsing and build_gateway defaults.
"""

from nl2sql_gateway.config import Settings
from nl2sql_gateway.gateway import build_gateway
from nl2sql_gateway.llm.mock import MockClientFactory
from nl2sql_gateway.llm.openai_client import OpenAIClientFactory
from nl2sql_gateway.store.cache import CachedConfigStore

SEED_YAML = """
providers:
  - id: local
    name: Local Ollama
    type: ollama
    endpoint: http://localhost:11434
models:
  - name: SQLCoder
    model_id: sqlcoder:7b
    provider_id: local
    purpose: sql
schemas:
  shop:
    items:
      columns: [id, title]
"""


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch) -> None:
        for name in ("ENVIRONMENT", "NL2SQL_ENABLE_FAILOVER", "NL2SQL_API_KEYS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.environment == "development"
        assert settings.enable_failover is False
        assert settings.default_max_rows == 1000
        assert settings.api_keys == {}
        assert settings.is_production is False

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("NL2SQL_ENABLE_FAILOVER", "yes")
        monkeypatch.setenv("NL2SQL_DEFAULT_MAX_ROWS", "250")
        monkeypatch.setenv("NL2SQL_AUTH_ENABLED", "true")
        monkeypatch.setenv("NL2SQL_API_KEYS", "k1:alice, k2 ,")

        settings = Settings.from_env()

        assert settings.is_production is True
        assert settings.enable_failover is True
        assert settings.default_max_rows == 250
        assert settings.auth_enabled is True
        assert settings.api_keys == {"k1": "alice", "k2": "k2"}


class TestBuildGateway:
    """Tests for default gateway assembly."""

    def test_without_providers_uses_mock_factory(self) -> None:
        gateway = build_gateway(Settings())

        assert isinstance(gateway.client_factory, MockClientFactory)
        assert isinstance(gateway.store, CachedConfigStore)

    def test_seed_file(self, tmp_path) -> None:
        path = tmp_path / "seed.yaml"
        path.write_text(SEED_YAML, encoding="utf-8")

        gateway = build_gateway(Settings(seed_file=str(path)))

        assert isinstance(gateway.client_factory, OpenAIClientFactory)
        assert [p.id for p in gateway.store.list_providers()] == ["local"]
        assert "## items (items)" in gateway.pipeline.schema_builder.build("shop")

    def test_explicit_collaborators(self, gateway, store, client_factory) -> None:
        assert gateway.store is store
        assert gateway.client_factory is client_factory
        assert gateway.router.diagnostics is gateway.diagnostics
