"""
Prompt Template Manager
=======================

Versioned prompt templates with an approval gate.

Templates are never edited in place. An update inserts a new version that
points back at the one it supersedes, resets approval and leaves at most
one active version per template name.
"""

from typing import Optional

import structlog

from nl2sql_gateway.models import PromptPurpose, PromptTemplate, utcnow
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATE_NAME = "nl2sql-builtin"

DEFAULT_NL2SQL_PROMPT = """You are an expert SQL query generator. Given a natural language question and database schema information, generate a valid SQL query.

CRITICAL:
- Use EXACT table and column names from the schema with CORRECT CASE
{{quote_note}}
- The schema includes localized names in parentheses for reference

## Database Schema
{{schema}}

## User Question
{{user_query}}

## Instructions
1. Generate ONLY the SQL query, no explanations
2. Use the EXACT table/column names from the schema
3. Match keywords in the question to the localized names to find the right tables/columns
4. Add a LIMIT clause for SELECT queries
5. Use standard SQL syntax compatible with {{db_type}}

## Generated SQL:"""

POSTGRES_QUOTE_NOTE = (
    '- For PostgreSQL: Use double quotes around table/column names to preserve '
    'case (e.g., "CareerMovement", "startDate")'
)


def quote_note_for(db_type: Optional[str]) -> str:
    """Identifier-quoting hint for databases that fold unquoted case."""
    if db_type and "postgres" in db_type.lower():
        return POSTGRES_QUOTE_NOTE
    return ""


def render_prompt(template: PromptTemplate, variables: dict[str, Optional[str]]) -> str:
    """
    Substitute ``{{key}}`` placeholders with variable values.

    Variables set to None are skipped and placeholders without a variable
    stay in the output as written. Values are inserted verbatim.

    Args:
        template: Template whose content is rendered
        variables: Placeholder name to value

    Returns:
        Rendered prompt text
    """
    content = template.content
    for key, value in variables.items():
        if value is not None:
            content = content.replace("{{" + key + "}}", str(value))
    return content


class PromptManager:
    """Template lookup, versioning and approval on top of the config store."""

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def find_all(self) -> list[PromptTemplate]:
        """All templates, by name then newest version first."""
        return self.store.list_templates()

    def find_one(self, template_id: str) -> PromptTemplate:
        """
        Raises:
            NotFoundError: If no template has this id
        """
        return self.store.get_template(template_id)

    def find_by_purpose(self, purpose: PromptPurpose) -> list[PromptTemplate]:
        """Active and approved templates for a purpose, newest version first."""
        return self.store.find_templates(purpose=purpose, is_active=True, is_approved=True)

    def find_latest_active(self, purpose: PromptPurpose) -> Optional[PromptTemplate]:
        templates = self.find_by_purpose(purpose)
        return templates[0] if templates else None

    def get_version_history(self, name: str) -> list[PromptTemplate]:
        return self.store.find_templates(name=name)

    def create(
        self,
        name: str,
        content: str,
        purpose: PromptPurpose = PromptPurpose.NL2SQL,
        variables: Optional[list[str]] = None,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> PromptTemplate:
        """Create version 1 of a template. New templates start unapproved."""
        template = PromptTemplate(
            name=name,
            content=content,
            purpose=purpose,
            version=1,
            variables=list(variables or []),
            is_active=is_active,
            is_approved=False,
            description=description,
        )
        self.store.add_template(template)
        logger.info("prompt_template_created", name=name, template_id=template.id)
        return template

    def update(
        self,
        template_id: str,
        content: Optional[str] = None,
        description: Optional[str] = None,
        variables: Optional[list[str]] = None,
        is_active: Optional[bool] = None,
    ) -> PromptTemplate:
        """
        Publish a new version derived from an existing one.

        The target keeps its content; every active version sharing its name
        is deactivated and a new unapproved version is inserted with
        ``version = target.version + 1`` and ``parent_id = target.id``.

        Raises:
            NotFoundError: If no template has this id
        """
        target = self.find_one(template_id)

        new_version = PromptTemplate(
            name=target.name,
            content=target.content if content is None else content,
            purpose=target.purpose,
            version=target.version + 1,
            variables=list(variables) if variables is not None else list(target.variables),
            is_active=True if is_active is None else is_active,
            is_approved=False,
            parent_id=target.id,
            description=target.description if description is None else description,
        )

        for existing in self.store.find_templates(name=target.name, is_active=True):
            existing.is_active = False
            self.store.save_template(existing)

        self.store.add_template(new_version)
        logger.info(
            "prompt_template_versioned",
            name=target.name,
            parent_id=target.id,
            version=new_version.version,
        )
        return new_version

    def approve(self, template_id: str, approved_by: str) -> PromptTemplate:
        """Approve one version. Approval never carries over to later versions."""
        template = self.find_one(template_id)
        template.is_approved = True
        template.approved_by = approved_by
        template.approved_at = utcnow()
        self.store.save_template(template)
        logger.info("prompt_template_approved", template_id=template_id, approved_by=approved_by)
        return template

    def remove(self, template_id: str) -> None:
        self.store.delete_template(template_id)
        logger.info("prompt_template_removed", template_id=template_id)

    def render_prompt(
        self, template: PromptTemplate, variables: dict[str, Optional[str]]
    ) -> str:
        return render_prompt(template, variables)

    def default_template(self, purpose: PromptPurpose = PromptPurpose.NL2SQL) -> PromptTemplate:
        """Built-in template used when no approved template exists."""
        return PromptTemplate(
            id=DEFAULT_TEMPLATE_NAME,
            name=DEFAULT_TEMPLATE_NAME,
            content=DEFAULT_NL2SQL_PROMPT,
            purpose=purpose,
            variables=["schema", "user_query", "db_type", "quote_note"],
            is_approved=True,
            description="Built-in NL2SQL prompt",
        )
