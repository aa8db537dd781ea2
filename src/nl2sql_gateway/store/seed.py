"""
YAML Seed Loader
================

Populates a ConfigStore (and a static schema catalogue) from a YAML file,
for local runs and demos where no external configuration store exists.

Example file::

    providers:
      - id: local
        name: Local Ollama
        type: ollama
        endpoint: http://localhost:11434
        priority: 1
    models:
      - name: SQLCoder
        model_id: sqlcoder:7b
        provider_id: local
        purpose: sql
    policies:
      - name: Default
        block_ddl: true
        blocked_keywords: [DROP, TRUNCATE]
    templates:
      - name: nl2sql-default
        purpose: nl2sql
        approved_by: admin
        content: "..."
    schemas:
      demo:
        users:
          columns: [id, email]
          types: {id: INTEGER, email: TEXT}
"""

from pathlib import Path
from typing import Any

import structlog
import yaml

from nl2sql_gateway.models import (
    AIModel,
    ModelPurpose,
    PromptPurpose,
    PromptTemplate,
    Provider,
    ProviderType,
    SecurityPolicy,
    utcnow,
)
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)


def _provider(data: dict[str, Any]) -> Provider:
    data = dict(data)
    data["type"] = ProviderType(data["type"])
    return Provider(**data)


def _model(data: dict[str, Any]) -> AIModel:
    data = dict(data)
    data["purpose"] = ModelPurpose(data.get("purpose", ModelPurpose.GENERAL.value))
    return AIModel(**data)


def _template(data: dict[str, Any]) -> PromptTemplate:
    data = dict(data)
    data["purpose"] = PromptPurpose(data.get("purpose", PromptPurpose.NL2SQL.value))
    # A seeded template that names an approver is considered approved
    if data.get("approved_by"):
        data.setdefault("is_approved", True)
        data.setdefault("approved_at", utcnow())
    return PromptTemplate(**data)


def load_seed(store: ConfigStore, path: str | Path) -> dict[str, dict]:
    """
    Load records from a YAML seed file into the store.

    Args:
        store: Store receiving providers, models, templates and policies
        path: YAML file location

    Returns:
        Schema catalogue (connection id -> tables) from the ``schemas`` key
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    for item in data.get("providers", []):
        store.save_provider(_provider(item))
    for item in data.get("models", []):
        store.save_model(_model(item))
    for item in data.get("templates", []):
        store.add_template(_template(item))
    for item in data.get("policies", []):
        store.save_policy(SecurityPolicy(**item))

    logger.info(
        "seed_loaded",
        path=str(path),
        providers=len(data.get("providers", [])),
        models=len(data.get("models", [])),
        templates=len(data.get("templates", [])),
        policies=len(data.get("policies", [])),
    )
    return data.get("schemas", {}) or {}
