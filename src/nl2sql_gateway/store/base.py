"""
Configuration Store Interface
=============================

Contract for the persistence collaborator that owns providers, models,
prompt templates, security policies and execution logs.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from nl2sql_gateway.models import (
    AIModel,
    ExecutionLog,
    PromptPurpose,
    PromptTemplate,
    Provider,
    SecurityPolicy,
)


class ConfigStore(ABC):
    """
    Abstract configuration store.

    Lookups by id raise ``NotFoundError`` when the record is missing.
    Ordering guarantees:
        - ``find_active_providers`` / ``find_active_policies``: ascending priority
        - ``find_templates`` / ``list_templates``: descending version within a name
        - ``list_execution_logs``: newest first
    """

    # Providers

    @abstractmethod
    def list_providers(self) -> list[Provider]:
        pass

    @abstractmethod
    def get_provider(self, provider_id: str) -> Provider:
        pass

    @abstractmethod
    def find_active_providers(self) -> list[Provider]:
        pass

    @abstractmethod
    def save_provider(self, provider: Provider) -> Provider:
        pass

    # Models

    @abstractmethod
    def list_models(self) -> list[AIModel]:
        pass

    @abstractmethod
    def get_model(self, model_id: str) -> AIModel:
        pass

    @abstractmethod
    def find_active_models(self) -> list[AIModel]:
        pass

    @abstractmethod
    def find_models_by_provider(self, provider_id: str) -> list[AIModel]:
        pass

    @abstractmethod
    def save_model(self, model: AIModel) -> AIModel:
        pass

    # Prompt templates

    @abstractmethod
    def get_template(self, template_id: str) -> PromptTemplate:
        pass

    @abstractmethod
    def list_templates(self) -> list[PromptTemplate]:
        pass

    @abstractmethod
    def find_templates(
        self,
        name: Optional[str] = None,
        purpose: Optional[PromptPurpose] = None,
        is_active: Optional[bool] = None,
        is_approved: Optional[bool] = None,
    ) -> list[PromptTemplate]:
        pass

    @abstractmethod
    def add_template(self, template: PromptTemplate) -> PromptTemplate:
        pass

    @abstractmethod
    def save_template(self, template: PromptTemplate) -> PromptTemplate:
        pass

    @abstractmethod
    def delete_template(self, template_id: str) -> None:
        pass

    # Security policies

    @abstractmethod
    def list_policies(self) -> list[SecurityPolicy]:
        pass

    @abstractmethod
    def get_policy(self, policy_id: str) -> SecurityPolicy:
        pass

    @abstractmethod
    def find_active_policies(self) -> list[SecurityPolicy]:
        pass

    @abstractmethod
    def save_policy(self, policy: SecurityPolicy) -> SecurityPolicy:
        pass

    # Execution logs

    @abstractmethod
    def add_execution_log(self, log: ExecutionLog) -> ExecutionLog:
        pass

    @abstractmethod
    def save_execution_log(self, log: ExecutionLog) -> ExecutionLog:
        pass

    @abstractmethod
    def list_execution_logs(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ExecutionLog]:
        pass
