"""
Data Models
===========

Configuration records and per-request data structures for the NL2SQL gateway.

Providers, models, templates and policies are owned by an external
configuration store; this package only reads them (and writes template
versions, policy activation and execution logs through the store contract).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def new_id() -> str:
    """Generate a record identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderType(str, Enum):
    """Wire-compatible completion backend flavors."""

    OLLAMA = "ollama"
    VLLM = "vllm"
    OPENAI = "openai"


class ModelPurpose(str, Enum):
    """What a model is registered to do."""

    SQL = "sql"
    EXPLAIN = "explain"
    OPTIMIZE = "optimize"
    GENERAL = "general"


class PromptPurpose(str, Enum):
    """What a prompt template is written for."""

    NL2SQL = "nl2sql"
    EXPLAIN = "explain"
    OPTIMIZE = "optimize"
    VALIDATE = "validate"


@dataclass
class Provider:
    """A registered completion backend."""

    name: str
    type: ProviderType
    endpoint: str
    api_key: Optional[str] = None
    timeout_ms: int = 30000
    retry_count: int = 3
    is_active: bool = True
    priority: Optional[int] = 1
    description: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class AIModel:
    """A model exposed by exactly one provider."""

    name: str
    model_id: str
    provider_id: str
    purpose: ModelPurpose = ModelPurpose.GENERAL
    max_tokens: int = 4096
    temperature: float = 0.1
    top_p: float = 0.9
    system_prompt: Optional[str] = None
    is_active: bool = True
    description: Optional[str] = None
    version: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class PromptTemplate:
    """
    One immutable version of a prompt template.

    Versions of the same name form a singly linked chain through
    ``parent_id``; edits always produce a new record.
    """

    name: str
    content: str
    purpose: PromptPurpose = PromptPurpose.NL2SQL
    version: int = 1
    variables: list[str] = field(default_factory=list)
    is_active: bool = True
    is_approved: bool = False
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    parent_id: Optional[str] = None
    description: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class SecurityPolicy:
    """Prioritized bundle of SQL screening rules and thresholds."""

    name: str
    is_active: bool = True
    blocked_keywords: list[str] = field(default_factory=list)
    allowed_tables: list[str] = field(default_factory=list)
    denied_columns: list[str] = field(default_factory=list)
    max_result_rows: int = 1000
    require_approval: bool = False
    block_ddl: bool = False
    block_dml: bool = False
    enable_injection_check: bool = True
    enable_pii_masking: bool = True
    priority: int = 1
    description: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ExecutionLog:
    """Audit record of one pipeline run."""

    user_input: str
    connection_id: Optional[str] = None
    user_id: Optional[str] = None
    provider_id: Optional[str] = None
    model_id: Optional[str] = None
    prompt_template_id: Optional[str] = None
    full_prompt: Optional[str] = None
    generated_sql: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0
    success: bool = True
    error_message: Optional[str] = None
    was_blocked: bool = False
    block_reason: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class RoutingContext:
    """Hints used to pick a model for a request."""

    purpose: Optional[ModelPurpose] = None
    db_type: Optional[str] = None
    preferred_provider_id: Optional[str] = None
    preferred_model_id: Optional[str] = None


@dataclass
class RoutedModel:
    """Routing decision: the chosen model, its provider and why."""

    model: AIModel
    provider: Provider
    reason: str


@dataclass
class LLMResponse:
    """Response from a completion call."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens
