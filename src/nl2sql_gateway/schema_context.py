"""
Schema Context
==============

Contracts for the schema-introspection and translation collaborators, a
static in-process implementation of both, and the builder that turns
table/column metadata into the schema section of an NL2SQL prompt.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


# Default catalogue used by the demo connection
SAMPLE_SCHEMA = {
    "customers": {
        "columns": ["id", "name", "email", "created_at", "tier"],
        "types": {
            "id": "INTEGER",
            "name": "TEXT",
            "email": "TEXT",
            "created_at": "DATE",
            "tier": "TEXT",
        },
        "primary_key": ["id"],
        "not_null": ["id", "name"],
        "label": "고객",
        "column_labels": {"name": "이름", "email": "이메일", "tier": "등급"},
    },
    "orders": {
        "columns": ["id", "customer_id", "amount", "order_date", "status"],
        "types": {
            "id": "INTEGER",
            "customer_id": "INTEGER",
            "amount": "DECIMAL",
            "order_date": "DATE",
            "status": "TEXT",
        },
        "primary_key": ["id"],
        "not_null": ["id", "customer_id", "amount"],
        "label": "주문",
        "column_labels": {"amount": "금액", "order_date": "주문일", "status": "상태"},
    },
    "products": {
        "columns": ["id", "name", "price", "category", "stock"],
        "types": {
            "id": "INTEGER",
            "name": "TEXT",
            "price": "DECIMAL",
            "category": "TEXT",
            "stock": "INTEGER",
        },
        "primary_key": ["id"],
        "not_null": ["id", "name", "price"],
        "label": "상품",
        "column_labels": {"price": "가격", "category": "분류", "stock": "재고"},
    },
}


@dataclass
class TableInfo:
    name: str


@dataclass
class ColumnInfo:
    name: str
    type: str
    primary_key: bool = False
    nullable: bool = True


@dataclass
class TableTranslation:
    """Human-readable (localized) labels for a table and its columns."""

    localized_name: Optional[str] = None
    column_translations: dict[str, str] = field(default_factory=dict)


class SchemaSource(ABC):
    """Schema-introspection collaborator."""

    @abstractmethod
    def get_tables(self, connection_id: str) -> list[TableInfo]:
        pass

    @abstractmethod
    def get_columns(self, connection_id: str, table: str) -> list[ColumnInfo]:
        pass


class TranslationSource(ABC):
    """Translation/localization collaborator."""

    @abstractmethod
    def get_translations_map(self, connection_id: str) -> dict[str, TableTranslation]:
        pass


class StaticSchemaSource(SchemaSource, TranslationSource):
    """
    Schema and translation lookups backed by an in-process catalogue.

    The catalogue maps connection id to a table dict in the SAMPLE_SCHEMA
    shape (``columns``, ``types`` and optional ``primary_key``, ``not_null``,
    ``label``, ``column_labels``).
    """

    def __init__(self, catalogue: dict[str, dict] | None = None) -> None:
        self.catalogue = catalogue if catalogue is not None else {"demo": SAMPLE_SCHEMA}

    def _tables(self, connection_id: str) -> dict:
        if connection_id not in self.catalogue:
            raise KeyError(f"Unknown connection: {connection_id}")
        return self.catalogue[connection_id]

    def get_tables(self, connection_id: str) -> list[TableInfo]:
        return [TableInfo(name=name) for name in self._tables(connection_id)]

    def get_columns(self, connection_id: str, table: str) -> list[ColumnInfo]:
        table_info = self._tables(connection_id)[table]
        types = table_info.get("types", {})
        primary_key = set(table_info.get("primary_key", []))
        not_null = set(table_info.get("not_null", []))
        return [
            ColumnInfo(
                name=col,
                type=types.get(col, "TEXT"),
                primary_key=col in primary_key,
                nullable=col not in not_null and col not in primary_key,
            )
            for col in table_info["columns"]
        ]

    def get_translations_map(self, connection_id: str) -> dict[str, TableTranslation]:
        translations = {}
        for name, table_info in self._tables(connection_id).items():
            if "label" in table_info or "column_labels" in table_info:
                translations[name] = TableTranslation(
                    localized_name=table_info.get("label"),
                    column_translations=dict(table_info.get("column_labels", {})),
                )
        return translations


class SchemaContextBuilder:
    """Builds the bounded schema description embedded in NL2SQL prompts."""

    def __init__(
        self,
        schema_source: SchemaSource,
        translation_source: TranslationSource | None = None,
        max_tables: int = 50,
        max_columns: int = 50,
    ) -> None:
        self.schema_source = schema_source
        self.translation_source = translation_source
        self.max_tables = max_tables
        self.max_columns = max_columns

    def load_translations(self, connection_id: str) -> dict[str, TableTranslation]:
        """Fetch translations, degrading to an empty map on any failure."""
        if self.translation_source is None:
            return {}
        try:
            return self.translation_source.get_translations_map(connection_id)
        except Exception as e:
            logger.warning(
                "translation_lookup_failed", connection_id=connection_id, error=str(e)
            )
            return {}

    def build(self, connection_id: str) -> str:
        """
        Render tables and columns (with localized labels) for a connection.

        Raises whatever the schema source raises for the table listing;
        a failing column lookup only marks that table as unavailable.
        """
        tables = self.schema_source.get_tables(connection_id)
        translations = self.load_translations(connection_id)
        lines = ["Tables in database (table name / localized name):"]

        for table in tables[: self.max_tables]:
            translation = translations.get(table.name) or TableTranslation()
            label = translation.localized_name or table.name
            lines.append(f"\n## {table.name} ({label})")

            try:
                columns = self.schema_source.get_columns(connection_id, table.name)
            except Exception as e:
                logger.warning(
                    "column_lookup_failed", table=table.name, error=str(e)
                )
                lines.append("  (columns not available)")
                continue

            for col in columns[: self.max_columns]:
                col_label = translation.column_translations.get(col.name, col.name)
                pk = " (PK)" if col.primary_key else ""
                not_null = "" if col.nullable else " NOT NULL"
                lines.append(f"  - {col.name} ({col_label}): {col.type}{pk}{not_null}")

        logger.info(
            "schema_context_built",
            connection_id=connection_id,
            tables=len(tables),
            lines=len(lines),
        )
        return "\n".join(lines)
