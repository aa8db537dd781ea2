"""
Read-Through Configuration Cache
================================

Time-bounded cache in front of a ConfigStore for the records routing and
policy resolution read on every request (providers, models, policies).

Entries expire after ``ttl_seconds``; any write through this wrapper drops
every cached entry of the written record family, so routing always sees the
current ``is_active``/priority state once the TTL or a write has passed.
Templates and execution logs are passed straight through.
"""

import copy
import time
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Optional

import structlog

from nl2sql_gateway.models import (
    AIModel,
    ExecutionLog,
    PromptPurpose,
    PromptTemplate,
    Provider,
    SecurityPolicy,
)
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)

PROVIDERS = "providers"
MODELS = "models"
POLICIES = "policies"


class CachedConfigStore(ConfigStore):
    """ConfigStore wrapper with a per-family TTL cache."""

    def __init__(
        self,
        store: ConfigStore,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[tuple, tuple[float, Any]] = {}
        # Bumped on every invalidation; a load that overlaps one is not cached
        self._generations: dict[str, int] = {}
        self._stats = {"hits": 0, "misses": 0, "invalidations": 0}

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            return dict(self._stats)

    def _cached(self, family: str, key: tuple, loader: Callable[[], Any]) -> Any:
        cache_key = (family, *key)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry and entry[0] > now:
                self._stats["hits"] += 1
                return copy.deepcopy(entry[1])
            self._stats["misses"] += 1
            generation = self._generations.get(family, 0)

        value = loader()
        with self._lock:
            if self._generations.get(family, 0) == generation:
                self._entries[cache_key] = (now + self.ttl_seconds, copy.deepcopy(value))
        return value

    def invalidate(self, family: Optional[str] = None) -> None:
        """Drop cached entries for one record family, or all of them."""
        with self._lock:
            if family is None:
                self._entries.clear()
                for name in (PROVIDERS, MODELS, POLICIES):
                    self._generations[name] = self._generations.get(name, 0) + 1
            else:
                self._generations[family] = self._generations.get(family, 0) + 1
                for key in [k for k in self._entries if k[0] == family]:
                    del self._entries[key]
            self._stats["invalidations"] += 1
        logger.debug("config_cache_invalidated", family=family or "all")

    # Providers

    def list_providers(self) -> list[Provider]:
        return self._cached(PROVIDERS, ("list",), self.store.list_providers)

    def get_provider(self, provider_id: str) -> Provider:
        return self._cached(
            PROVIDERS, ("get", provider_id), lambda: self.store.get_provider(provider_id)
        )

    def find_active_providers(self) -> list[Provider]:
        return self._cached(PROVIDERS, ("active",), self.store.find_active_providers)

    def save_provider(self, provider: Provider) -> Provider:
        saved = self.store.save_provider(provider)
        self.invalidate(PROVIDERS)
        return saved

    # Models

    def list_models(self) -> list[AIModel]:
        return self._cached(MODELS, ("list",), self.store.list_models)

    def get_model(self, model_id: str) -> AIModel:
        return self._cached(MODELS, ("get", model_id), lambda: self.store.get_model(model_id))

    def find_active_models(self) -> list[AIModel]:
        return self._cached(MODELS, ("active",), self.store.find_active_models)

    def find_models_by_provider(self, provider_id: str) -> list[AIModel]:
        return self._cached(
            MODELS,
            ("by_provider", provider_id),
            lambda: self.store.find_models_by_provider(provider_id),
        )

    def save_model(self, model: AIModel) -> AIModel:
        saved = self.store.save_model(model)
        self.invalidate(MODELS)
        return saved

    # Prompt templates (uncached)

    def get_template(self, template_id: str) -> PromptTemplate:
        return self.store.get_template(template_id)

    def list_templates(self) -> list[PromptTemplate]:
        return self.store.list_templates()

    def find_templates(
        self,
        name: Optional[str] = None,
        purpose: Optional[PromptPurpose] = None,
        is_active: Optional[bool] = None,
        is_approved: Optional[bool] = None,
    ) -> list[PromptTemplate]:
        return self.store.find_templates(
            name=name, purpose=purpose, is_active=is_active, is_approved=is_approved
        )

    def add_template(self, template: PromptTemplate) -> PromptTemplate:
        return self.store.add_template(template)

    def save_template(self, template: PromptTemplate) -> PromptTemplate:
        return self.store.save_template(template)

    def delete_template(self, template_id: str) -> None:
        self.store.delete_template(template_id)

    # Security policies

    def list_policies(self) -> list[SecurityPolicy]:
        return self._cached(POLICIES, ("list",), self.store.list_policies)

    def get_policy(self, policy_id: str) -> SecurityPolicy:
        return self._cached(
            POLICIES, ("get", policy_id), lambda: self.store.get_policy(policy_id)
        )

    def find_active_policies(self) -> list[SecurityPolicy]:
        return self._cached(POLICIES, ("active",), self.store.find_active_policies)

    def save_policy(self, policy: SecurityPolicy) -> SecurityPolicy:
        saved = self.store.save_policy(policy)
        self.invalidate(POLICIES)
        return saved

    # Execution logs (uncached)

    def add_execution_log(self, log: ExecutionLog) -> ExecutionLog:
        return self.store.add_execution_log(log)

    def save_execution_log(self, log: ExecutionLog) -> ExecutionLog:
        return self.store.save_execution_log(log)

    def list_execution_logs(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ExecutionLog]:
        return self.store.list_execution_logs(start=start, end=end)
