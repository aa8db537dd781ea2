"""
Query Assistants
================

Companion helpers around the SQL pipeline: suggested questions for a
connection and cause/solution analysis for failed SQL.

Both try a routed model first and fall back to deterministic answers when
no model is available or the model's answer is unusable.
"""

import json
import re
from dataclasses import dataclass
from typing import Optional

import structlog

from nl2sql_gateway.llm.base import ClientFactory, chat_completion
from nl2sql_gateway.models import ModelPurpose, RoutingContext
from nl2sql_gateway.routing import ModelRouter
from nl2sql_gateway.schema_context import (
    SchemaSource,
    TableTranslation,
    TranslationSource,
)

logger = structlog.get_logger(__name__)

MAX_QUESTIONS = 5
MAX_PROMPT_TABLES = 10

EMPTY_SCHEMA_QUESTIONS = ["List all tables", "Show database information"]
GENERIC_QUESTIONS = ["Show all data", "Show recent data", "Show summary statistics"]

SUGGEST_SYSTEM_PROMPT = "You help users explore a database by proposing short questions."

SUGGEST_PROMPT = """Propose {count} example questions a user could ask about a database with these tables.
Tables: {tables}

Rules:
1. Keep each question short
2. Only ask for data that can actually be queried
3. One question per line
4. No numbering, only the questions"""

ANALYZE_SYSTEM_PROMPT = "You are a database expert who explains SQL errors."

ANALYZE_PROMPT = """A SQL statement failed.

SQL:
{sql}

Error:
{error}

Reply with JSON only: {{"cause": "<why it failed>", "solution": "<how to fix it>"}}"""

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

# (error pattern, cause, solution)
ERROR_RULES = [
    (
        re.compile(r"column .*does not exist|unknown column|no such column", re.I),
        "The referenced column does not exist",
        "Check the column name spelling against the schema browser.",
    ),
    (
        re.compile(r"relation .*does not exist|table .*(doesn't|does not) exist|no such table", re.I),
        "The referenced table does not exist",
        "Check the table name spelling or verify you are connected to the correct database.",
    ),
    (
        re.compile(r"syntax error", re.I),
        "The statement has a syntax error",
        "Check for missing keywords, commas or parentheses near the reported position.",
    ),
    (
        re.compile(r"permission denied|access denied|insufficient privilege", re.I),
        "The database user lacks permission for this object",
        "Ask your database administrator for access to the table.",
    ),
    (
        re.compile(r"connection refused", re.I),
        "The database server is not reachable",
        "Check the connection settings and the network path to the server.",
    ),
    (
        re.compile(r"timeout|timed out", re.I),
        "The query took too long",
        "Add a LIMIT, filter with WHERE or add indexes on the filtered columns.",
    ),
]

GENERIC_CAUSE = "The database rejected the statement"
GENERIC_SOLUTION = "Review the error message and the statement, then try again."


@dataclass
class SuggestedQuestions:
    questions: list[str]
    source: str  # ai, template, default


@dataclass
class ErrorAnalysis:
    cause: str
    solution: str
    source: str  # ai, rules


def clean_question_lines(content: str) -> list[str]:
    """Split model output into question lines without bullets or numbering."""
    questions = []
    for line in content.splitlines():
        line = _LIST_MARKER.sub("", line).strip()
        if 3 < len(line) <= 80 and not line.startswith(("#", "```")):
            questions.append(line)
    return questions[:MAX_QUESTIONS]


def analyze_with_rules(error_message: str) -> ErrorAnalysis:
    """Keyword-matched explanation for common database errors."""
    for pattern, cause, solution in ERROR_RULES:
        if pattern.search(error_message or ""):
            return ErrorAnalysis(cause=cause, solution=solution, source="rules")
    return ErrorAnalysis(cause=GENERIC_CAUSE, solution=GENERIC_SOLUTION, source="rules")


class QueryAssistant:
    """Suggested questions and error analysis for a connection."""

    def __init__(
        self,
        router: ModelRouter,
        client_factory: ClientFactory,
        schema_source: SchemaSource,
        translation_source: Optional[TranslationSource] = None,
    ) -> None:
        self.router = router
        self.client_factory = client_factory
        self.schema_source = schema_source
        self.translation_source = translation_source

    def _translations(self, connection_id: str) -> dict[str, TableTranslation]:
        if self.translation_source is None:
            return {}
        try:
            return self.translation_source.get_translations_map(connection_id)
        except Exception as e:
            logger.warning("translation_lookup_failed", connection_id=connection_id, error=str(e))
            return {}

    def _ask(self, prompt: str, system_prompt: str, purpose: ModelPurpose) -> Optional[str]:
        routed = self.router.select_model(RoutingContext(purpose=purpose))
        if routed is None:
            return None
        client = self.client_factory.build_client(routed.provider)
        return chat_completion(client, routed.model, prompt, system_prompt=system_prompt).content

    def suggest_questions(self, connection_id: str) -> SuggestedQuestions:
        """
        Suggest natural-language questions for a connection's schema.

        Args:
            connection_id: Target connection

        Returns:
            Up to five questions, tagged with where they came from
        """
        try:
            tables = self.schema_source.get_tables(connection_id)
            if not tables:
                return SuggestedQuestions(questions=list(EMPTY_SCHEMA_QUESTIONS), source="default")

            translations = self._translations(connection_id)
            table_info = ", ".join(
                f"{t.name} ({self._label(translations, t.name)})"
                for t in tables[:MAX_PROMPT_TABLES]
            )
            try:
                content = self._ask(
                    SUGGEST_PROMPT.format(count=MAX_QUESTIONS, tables=table_info),
                    SUGGEST_SYSTEM_PROMPT,
                    ModelPurpose.SQL,
                )
            except Exception as e:
                # Tables are loaded, so template questions still apply
                logger.warning(
                    "suggested_questions_model_failed", connection_id=connection_id, error=str(e)
                )
                content = None
            questions = clean_question_lines(content) if content else []
            if questions:
                return SuggestedQuestions(questions=questions, source="ai")
            return SuggestedQuestions(
                questions=self._template_questions(tables, translations), source="template"
            )
        except Exception as e:
            logger.error("suggested_questions_failed", connection_id=connection_id, error=str(e))
            return SuggestedQuestions(questions=list(GENERIC_QUESTIONS), source="default")

    def _label(self, translations: dict[str, TableTranslation], table: str) -> str:
        translation = translations.get(table)
        return (translation.localized_name if translation else None) or table

    def _template_questions(self, tables, translations) -> list[str]:
        questions = []
        for table in tables[:MAX_QUESTIONS]:
            label = self._label(translations, table.name)
            if label != table.name:
                questions.append(f"Show all {label} ({table.name})")
            else:
                questions.append(f"Show {table.name} data")
        return questions

    def analyze_error(self, connection_id: str, sql: str, error_message: str) -> ErrorAnalysis:
        """
        Explain why a SQL statement failed and how to fix it.

        Args:
            connection_id: Connection the statement ran against
            sql: Failed statement
            error_message: Database error text

        Returns:
            ErrorAnalysis from the model when it answers usable JSON,
            otherwise from the keyword rules
        """
        try:
            content = self._ask(
                ANALYZE_PROMPT.format(sql=sql, error=error_message),
                ANALYZE_SYSTEM_PROMPT,
                ModelPurpose.GENERAL,
            )
        except Exception as e:
            logger.warning("error_analysis_model_failed", connection_id=connection_id, error=str(e))
            content = None

        if content:
            match = _JSON_OBJECT.search(content)
            if match:
                try:
                    data = json.loads(match.group(0))
                except json.JSONDecodeError:
                    data = None
                if isinstance(data, dict) and data.get("cause") and data.get("solution"):
                    return ErrorAnalysis(
                        cause=str(data["cause"]), solution=str(data["solution"]), source="ai"
                    )
            logger.info("error_analysis_unparseable", connection_id=connection_id)

        return analyze_with_rules(error_message)
