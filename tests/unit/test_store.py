"""
Unit Tests for the Configuration Store
======================================

Tests for the in-memory store, the TTL cache and the YAML seed loader.
"""

from datetime import timedelta

import pytest

from nl2sql_gateway.exceptions import NotFoundError
from nl2sql_gateway.models import (
    ExecutionLog,
    ModelPurpose,
    PromptTemplate,
    Provider,
    ProviderType,
    utcnow,
)
from nl2sql_gateway.store.cache import MODELS, CachedConfigStore
from nl2sql_gateway.store.memory import InMemoryConfigStore
from nl2sql_gateway.store.seed import load_seed


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryStore:
    """Tests for the reference store."""

    def test_missing_record_raises(self, empty_store: InMemoryConfigStore) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            empty_store.get_provider("nope")
        assert exc_info.value.kind == "Provider"
        assert exc_info.value.record_id == "nope"

    def test_returned_records_are_copies(self, store: InMemoryConfigStore) -> None:
        provider = store.get_provider("primary")
        provider.is_active = False

        assert store.get_provider("primary").is_active is True

    def test_providers_sorted_by_priority(self, store: InMemoryConfigStore) -> None:
        store.save_provider(
            Provider(id="zero", name="z", type=ProviderType.OPENAI, endpoint="x", priority=0)
        )
        store.save_provider(
            Provider(id="none", name="n", type=ProviderType.OPENAI, endpoint="x", priority=None)
        )
        assert [p.id for p in store.list_providers()] == ["zero", "primary", "backup", "none"]

    def test_models_by_provider(self, store: InMemoryConfigStore) -> None:
        ids = [m.id for m in store.find_models_by_provider("primary")]
        assert ids == ["m-sql-primary", "m-general"]

    def test_save_template_requires_existing(self, empty_store: InMemoryConfigStore) -> None:
        with pytest.raises(NotFoundError):
            empty_store.save_template(PromptTemplate(name="t", content="x"))

    def test_delete_missing_template(self, empty_store: InMemoryConfigStore) -> None:
        with pytest.raises(NotFoundError):
            empty_store.delete_template("nope")

    def test_logs_filtered_by_time_newest_first(self, empty_store: InMemoryConfigStore) -> None:
        now = utcnow()
        old = ExecutionLog(user_input="old", created_at=now - timedelta(days=2))
        mid = ExecutionLog(user_input="mid", created_at=now - timedelta(days=1))
        new = ExecutionLog(user_input="new", created_at=now)
        for log in (old, new, mid):
            empty_store.add_execution_log(log)

        assert [log.user_input for log in empty_store.list_execution_logs()] == ["new", "mid", "old"]
        recent = empty_store.list_execution_logs(start=now - timedelta(hours=36))
        assert [log.user_input for log in recent] == ["new", "mid"]


class TestCachedStore:
    """Tests for the read-through TTL cache."""

    def test_hits_within_ttl(self, store: InMemoryConfigStore) -> None:
        clock = FakeClock()
        cached = CachedConfigStore(store, ttl_seconds=30, clock=clock)

        cached.find_active_providers()
        cached.find_active_providers()

        assert cached.stats["misses"] == 1
        assert cached.stats["hits"] == 1

    def test_expires_after_ttl(self, store: InMemoryConfigStore) -> None:
        clock = FakeClock()
        cached = CachedConfigStore(store, ttl_seconds=30, clock=clock)
        cached.find_active_models()

        # Written behind the cache's back
        model = store.get_model("m-general")
        model.is_active = False
        store.save_model(model)

        assert len(cached.find_active_models()) == 3
        clock.now = 31
        assert len(cached.find_active_models()) == 2

    def test_write_invalidates_family(self, store: InMemoryConfigStore) -> None:
        cached = CachedConfigStore(store, ttl_seconds=300, clock=FakeClock())
        cached.find_active_providers()
        cached.find_active_models()

        provider = cached.get_provider("primary")
        provider.is_active = False
        cached.save_provider(provider)

        assert [p.id for p in cached.find_active_providers()] == ["backup"]
        assert cached.stats["invalidations"] == 1
        # Models were not invalidated
        hits = cached.stats["hits"]
        cached.find_active_models()
        assert cached.stats["hits"] == hits + 1

    def test_manual_invalidate(self, store: InMemoryConfigStore) -> None:
        cached = CachedConfigStore(store, ttl_seconds=300, clock=FakeClock())
        cached.list_models()
        cached.list_providers()

        cached.invalidate(MODELS)
        cached.list_models()
        cached.list_providers()

        assert cached.stats["misses"] == 3

        cached.invalidate()
        cached.list_providers()
        assert cached.stats["misses"] == 4

    def test_cached_records_are_copies(self, store: InMemoryConfigStore) -> None:
        cached = CachedConfigStore(store, ttl_seconds=300, clock=FakeClock())
        first = cached.find_active_providers()
        first[0].name = "mutated"

        assert cached.find_active_providers()[0].name == "Local Ollama"

    def test_write_during_load_is_not_cached(self, store: InMemoryConfigStore, monkeypatch) -> None:
        cached = CachedConfigStore(store, ttl_seconds=300, clock=FakeClock())
        load_active = store.find_active_providers

        def load_then_deactivate() -> list[Provider]:
            loaded = load_active()
            provider = store.get_provider("primary")
            provider.is_active = False
            cached.save_provider(provider)
            return loaded

        monkeypatch.setattr(store, "find_active_providers", load_then_deactivate)
        stale = cached.find_active_providers()
        monkeypatch.setattr(store, "find_active_providers", load_active)

        assert [p.id for p in stale] == ["primary", "backup"]
        assert [p.id for p in cached.find_active_providers()] == ["backup"]

    def test_logs_pass_through(self, store: InMemoryConfigStore) -> None:
        cached = CachedConfigStore(store, ttl_seconds=300, clock=FakeClock())
        cached.add_execution_log(ExecutionLog(user_input="q"))

        assert len(store.list_execution_logs()) == 1
        assert len(cached.list_execution_logs()) == 1


SEED_YAML = """
providers:
  - id: local
    name: Local Ollama
    type: ollama
    endpoint: http://localhost:11434
    priority: 1
models:
  - id: sqlcoder
    name: SQLCoder
    model_id: sqlcoder:7b
    provider_id: local
    purpose: sql
policies:
  - name: Default
    block_ddl: true
    blocked_keywords: [DROP]
templates:
  - name: nl2sql-seeded
    purpose: nl2sql
    approved_by: admin
    content: "Question: {{user_query}}"
  - name: draft
    content: "draft"
schemas:
  sales:
    invoices:
      columns: [id, total]
      types: {id: INTEGER, total: DECIMAL}
      label: Invoices
"""


class TestSeedLoader:
    """Tests for YAML seeding."""

    def test_loads_records_and_catalogue(self, tmp_path, empty_store: InMemoryConfigStore) -> None:
        path = tmp_path / "seed.yaml"
        path.write_text(SEED_YAML, encoding="utf-8")

        catalogue = load_seed(empty_store, path)

        provider = empty_store.get_provider("local")
        assert provider.type == ProviderType.OLLAMA
        assert empty_store.get_model("sqlcoder").purpose == ModelPurpose.SQL
        policy = empty_store.find_active_policies()[0]
        assert policy.block_ddl is True
        assert policy.blocked_keywords == ["DROP"]
        assert set(catalogue) == {"sales"}
        assert catalogue["sales"]["invoices"]["label"] == "Invoices"

    def test_approver_marks_template_approved(
        self, tmp_path, empty_store: InMemoryConfigStore
    ) -> None:
        path = tmp_path / "seed.yaml"
        path.write_text(SEED_YAML, encoding="utf-8")

        load_seed(empty_store, path)

        approved = empty_store.find_templates(is_approved=True)
        assert [t.name for t in approved] == ["nl2sql-seeded"]
        assert approved[0].approved_at is not None

    def test_empty_file(self, tmp_path, empty_store: InMemoryConfigStore) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_seed(empty_store, path) == {}
        assert empty_store.list_providers() == []
