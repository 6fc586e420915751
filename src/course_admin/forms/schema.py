"""Schema reconciliation for dynamic form tables.

Makes sure every table of a form batch exists with a column for each of
its field definitions.  Missing tables are created with a ``SERIAL``
primary key and a creation timestamp; existing tables get the missing
columns added.  Running the same batch twice is a no-op.

Statements are executed on the caller's connection and committed table
by table, so DDL applied to earlier tables stays when a later table
fails.

Usage:
    reconciler = SchemaReconciler()
    async with adapter.connect() as conn:
        summary = await reconciler.reconcile(conn, ["tutores", "cursos"], fields)
"""

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from course_admin.config.models import FormsConfig
from course_admin.forms.errors import SchemaReconciliationError
from course_admin.forms.models import FieldDefinition, FieldType

logger = logging.getLogger(__name__)

TABLE_EXISTS_SQL = """
    SELECT EXISTS (
        SELECT 1
        FROM information_schema.tables
        WHERE table_schema = :schema
          AND table_name = :table
    )
"""

COLUMNS_SQL = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = :schema
      AND table_name = :table
"""


# ------------------------------------------------------------------
# DDL statements
# ------------------------------------------------------------------


@dataclass
class ColumnSpec:
    """A column definition inside CREATE TABLE or ALTER TABLE.

    Example:
        ColumnSpec("cursoId", "INTEGER", references="cursos").to_sql()
        # 'cursoId INTEGER REFERENCES cursos(id)'
    """

    name: str
    sql_type: str
    references: str | None = None
    primary_key: str = "id"

    def to_sql(self) -> str:
        definition = f"{self.name} {self.sql_type}"
        if self.references:
            definition += f" REFERENCES {self.references}({self.primary_key})"
        return definition


@dataclass
class CreateTable:
    """A table to be created with the standard id and timestamp columns."""

    table: str
    columns: list[ColumnSpec] = field(default_factory=list)
    primary_key: str = "id"
    created_at_column: str = "fechacreacion"

    def to_sql(self) -> str:
        parts = [
            f"{self.primary_key} SERIAL PRIMARY KEY",
            f"{self.created_at_column} TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        ]
        parts.extend(column.to_sql() for column in self.columns)
        return f"CREATE TABLE IF NOT EXISTS {self.table} ({', '.join(parts)})"


@dataclass
class AddColumn:
    """A column to be added to an existing table."""

    table: str
    column: ColumnSpec

    def to_sql(self) -> str:
        return f"ALTER TABLE {self.table} ADD COLUMN IF NOT EXISTS {self.column.to_sql()}"


class ReconcileSummary(BaseModel):
    """What one ``reconcile()`` call changed.

    Attributes:
        tables_created: Tables created from scratch.
        columns_added: ``"table.column"`` entries added to existing tables.
        tables_cached: Tables skipped because an identical definition was
            already reconciled by this reconciler.
        unresolved_references: ``"table.column"`` foreign-key fields whose
            referenced table exists neither in the batch nor in the
            catalog.  Those columns keep their logical type.
    """

    tables_created: list[str] = Field(default_factory=list)
    columns_added: list[str] = Field(default_factory=list)
    tables_cached: list[str] = Field(default_factory=list)
    unresolved_references: list[str] = Field(default_factory=list)


# ------------------------------------------------------------------
# Reconciler
# ------------------------------------------------------------------


class SchemaReconciler:
    """Creates and evolves form tables to match field definitions.

    Args:
        schema_name: PostgreSQL schema holding the form tables.
        varchar_length: Length of ``varchar`` (short text) columns.
        primary_key: Name of the surrogate primary key column.
        created_at_column: Name of the creation timestamp column.
        cache: Remember reconciled (table, definitions) pairs and skip
            the catalog lookups when the same batch comes again.
    """

    def __init__(
        self,
        schema_name: str = "public",
        varchar_length: int = 150,
        primary_key: str = "id",
        created_at_column: str = "fechacreacion",
        cache: bool = True,
    ) -> None:
        self.schema_name = schema_name
        self.varchar_length = varchar_length
        self.primary_key = primary_key
        self.created_at_column = created_at_column
        self._cache_enabled = cache
        # cache key -> unresolved references found when it was reconciled
        self._reconciled: dict[tuple, list[str]] = {}

    @classmethod
    def from_config(cls, config: FormsConfig) -> "SchemaReconciler":
        return cls(
            schema_name=config.schema_name,
            varchar_length=config.varchar_length,
            primary_key=config.primary_key,
            created_at_column=config.created_at_column,
            cache=config.cache_schema,
        )

    def clear_cache(self) -> None:
        """Forget every reconciled batch."""
        self._reconciled.clear()

    def column_type(self, field_type: FieldType) -> str:
        """Map a logical field type to a PostgreSQL column type."""
        if field_type is FieldType.NUMBER:
            return "NUMERIC"
        if field_type is FieldType.TEXT:
            return "TEXT"
        if field_type is FieldType.BOOLEAN:
            return "BOOLEAN"
        return f"VARCHAR({self.varchar_length})"

    async def reconcile(
        self,
        conn: AsyncConnection,
        tables: list[str],
        fields: list[FieldDefinition],
    ) -> ReconcileSummary:
        """Create or alter each table in *tables*, in the given order.

        Pass tables parent-first so that ``REFERENCES`` clauses point at
        tables that already exist.

        Raises:
            SchemaReconciliationError: On the first failing statement.
                Tables reconciled before it keep their changes.
        """
        summary = ReconcileSummary()
        existing_tables: dict[str, bool] = {}

        for table in tables:
            definitions = self._table_fields(table, fields)
            cache_key = (
                table,
                tuple(
                    sorted(
                        (d.name.lower(), d.type.value, d.referenced_table or "")
                        for d in definitions
                    )
                ),
            )
            if self._cache_enabled and cache_key in self._reconciled:
                summary.tables_cached.append(table)
                summary.unresolved_references.extend(self._reconciled[cache_key])
                existing_tables[table] = True
                continue

            unresolved_before = len(summary.unresolved_references)
            try:
                await self._reconcile_table(
                    conn, table, definitions, existing_tables, summary
                )
                await conn.commit()
            except Exception as e:
                await conn.rollback()
                raise SchemaReconciliationError(table, e) from e

            existing_tables[table] = True
            self._reconciled[cache_key] = summary.unresolved_references[unresolved_before:]

        return summary

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _table_fields(
        self, table: str, fields: list[FieldDefinition]
    ) -> list[FieldDefinition]:
        """Field definitions of *table*, without reserved or repeated names."""
        reserved = {self.primary_key.lower(), self.created_at_column.lower()}
        seen: set[str] = set()
        result: list[FieldDefinition] = []
        for definition in fields:
            if definition.table != table:
                continue
            key = definition.name.lower()
            if key in reserved or key in seen:
                continue
            seen.add(key)
            result.append(definition)
        return result

    async def _reconcile_table(
        self,
        conn: AsyncConnection,
        table: str,
        definitions: list[FieldDefinition],
        existing_tables: dict[str, bool],
        summary: ReconcileSummary,
    ) -> None:
        for definition in definitions:
            if not definition.is_foreign_key:
                continue
            if not await self._table_exists(conn, definition.referenced_table, existing_tables):
                logger.warning(
                    "Table %s referenced by %s.%s does not exist; "
                    "column keeps its logical type without a foreign-key constraint",
                    definition.referenced_table,
                    table,
                    definition.name,
                )
                summary.unresolved_references.append(f"{table}.{definition.name.lower()}")

        current_columns = await self._table_columns(conn, table)

        if current_columns is None:
            statement = CreateTable(
                table=table,
                columns=[self._column_spec(d, existing_tables) for d in definitions],
                primary_key=self.primary_key,
                created_at_column=self.created_at_column,
            )
            logger.info("Creating table %s", table)
            await conn.execute(text(statement.to_sql()))
            summary.tables_created.append(table)
            return

        for definition in definitions:
            # Unquoted identifiers are folded to lower case by PostgreSQL
            if definition.name.lower() in current_columns:
                continue
            spec = self._column_spec(definition, existing_tables)
            logger.info("Adding column %s.%s", table, definition.name)
            await conn.execute(text(AddColumn(table=table, column=spec).to_sql()))
            summary.columns_added.append(f"{table}.{definition.name}")

    def _column_spec(
        self, definition: FieldDefinition, existing_tables: dict[str, bool]
    ) -> ColumnSpec:
        sql_type = self.column_type(definition.type)
        if not definition.is_foreign_key or not existing_tables.get(
            definition.referenced_table
        ):
            return ColumnSpec(definition.name, sql_type)

        # Must match the SERIAL primary key it points at
        return ColumnSpec(
            definition.name,
            "INTEGER",
            references=definition.referenced_table,
            primary_key=self.primary_key,
        )

    async def _table_exists(
        self, conn: AsyncConnection, table: str, existing_tables: dict[str, bool]
    ) -> bool:
        if table not in existing_tables:
            existing_tables[table] = await self._table_columns(conn, table) is not None
        return existing_tables[table]

    async def _table_columns(
        self, conn: AsyncConnection, table: str
    ) -> set[str] | None:
        """Lower-cased column names of *table*, or ``None`` if it does not exist."""
        params = {"schema": self.schema_name, "table": table.lower()}

        result = await conn.execute(text(TABLE_EXISTS_SQL), params)
        if not result.scalar():
            return None

        result = await conn.execute(text(COLUMNS_SQL), params)
        return {row[0].lower() for row in result.fetchall()}
