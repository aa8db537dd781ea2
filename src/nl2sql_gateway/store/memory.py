"""
In-Memory Store
===============

Thread-safe reference implementation of the configuration store.

Records are copied on the way in and on the way out, so a caller holding
a record never changes the stored state without an explicit save.
"""

import copy
from datetime import datetime
from threading import Lock
from typing import Optional, TypeVar

from nl2sql_gateway.exceptions import NotFoundError
from nl2sql_gateway.models import (
    AIModel,
    ExecutionLog,
    PromptPurpose,
    PromptTemplate,
    Provider,
    SecurityPolicy,
)
from nl2sql_gateway.store.base import ConfigStore

T = TypeVar("T")

# Missing priorities sort after every explicit one
_NO_PRIORITY = float("inf")


def _priority_key(record) -> float:
    return _NO_PRIORITY if record.priority is None else record.priority


class InMemoryConfigStore(ConfigStore):
    """Dict-backed configuration store."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._providers: dict[str, Provider] = {}
        self._models: dict[str, AIModel] = {}
        self._templates: dict[str, PromptTemplate] = {}
        self._policies: dict[str, SecurityPolicy] = {}
        self._logs: dict[str, ExecutionLog] = {}

    def _get(self, arena: dict[str, T], kind: str, record_id: str) -> T:
        with self._lock:
            record = arena.get(record_id)
            if record is None:
                raise NotFoundError(kind, record_id)
            return copy.deepcopy(record)

    def _put(self, arena: dict[str, T], record: T) -> T:
        with self._lock:
            arena[record.id] = copy.deepcopy(record)
        return record

    def _all(self, arena: dict[str, T]) -> list[T]:
        with self._lock:
            return [copy.deepcopy(r) for r in arena.values()]

    # Providers

    def list_providers(self) -> list[Provider]:
        return sorted(self._all(self._providers), key=_priority_key)

    def get_provider(self, provider_id: str) -> Provider:
        return self._get(self._providers, "Provider", provider_id)

    def find_active_providers(self) -> list[Provider]:
        return [p for p in self.list_providers() if p.is_active]

    def save_provider(self, provider: Provider) -> Provider:
        return self._put(self._providers, provider)

    # Models

    def list_models(self) -> list[AIModel]:
        return self._all(self._models)

    def get_model(self, model_id: str) -> AIModel:
        return self._get(self._models, "Model", model_id)

    def find_active_models(self) -> list[AIModel]:
        return [m for m in self._all(self._models) if m.is_active]

    def find_models_by_provider(self, provider_id: str) -> list[AIModel]:
        return [m for m in self._all(self._models) if m.provider_id == provider_id]

    def save_model(self, model: AIModel) -> AIModel:
        return self._put(self._models, model)

    # Prompt templates

    def get_template(self, template_id: str) -> PromptTemplate:
        return self._get(self._templates, "Prompt template", template_id)

    def list_templates(self) -> list[PromptTemplate]:
        templates = self._all(self._templates)
        templates.sort(key=lambda t: (t.version, t.created_at), reverse=True)
        templates.sort(key=lambda t: t.name)
        return templates

    def find_templates(
        self,
        name: Optional[str] = None,
        purpose: Optional[PromptPurpose] = None,
        is_active: Optional[bool] = None,
        is_approved: Optional[bool] = None,
    ) -> list[PromptTemplate]:
        matches = [
            t
            for t in self._all(self._templates)
            if (name is None or t.name == name)
            and (purpose is None or t.purpose == purpose)
            and (is_active is None or t.is_active == is_active)
            and (is_approved is None or t.is_approved == is_approved)
        ]
        matches.sort(key=lambda t: (t.version, t.created_at), reverse=True)
        return matches

    def add_template(self, template: PromptTemplate) -> PromptTemplate:
        return self._put(self._templates, template)

    def save_template(self, template: PromptTemplate) -> PromptTemplate:
        self.get_template(template.id)
        return self._put(self._templates, template)

    def delete_template(self, template_id: str) -> None:
        with self._lock:
            if self._templates.pop(template_id, None) is None:
                raise NotFoundError("Prompt template", template_id)

    # Security policies

    def list_policies(self) -> list[SecurityPolicy]:
        return sorted(self._all(self._policies), key=_priority_key)

    def get_policy(self, policy_id: str) -> SecurityPolicy:
        return self._get(self._policies, "Security policy", policy_id)

    def find_active_policies(self) -> list[SecurityPolicy]:
        return [p for p in self.list_policies() if p.is_active]

    def save_policy(self, policy: SecurityPolicy) -> SecurityPolicy:
        return self._put(self._policies, policy)

    # Execution logs

    def add_execution_log(self, log: ExecutionLog) -> ExecutionLog:
        return self._put(self._logs, log)

    def save_execution_log(self, log: ExecutionLog) -> ExecutionLog:
        return self._put(self._logs, log)

    def list_execution_logs(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ExecutionLog]:
        logs = [
            log
            for log in self._all(self._logs)
            if (start is None or log.created_at >= start)
            and (end is None or log.created_at <= end)
        ]
        logs.sort(key=lambda log: log.created_at, reverse=True)
        return logs
