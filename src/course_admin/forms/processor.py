"""Dynamic relational form processor.

Stores one submitted form spread over several related tables:

1. Detect foreign keys by naming convention and order the tables
   parent-first (a cycle rejects the form before anything is written).
2. Reconcile the schema: create missing tables, add missing columns.
3. In one transaction: hash sensitive values, then insert one row per
   table, wiring foreign-key fields to the ids generated earlier in the
   same batch.  Any failure rolls back every insert of the call.

Usage:
    from course_admin.forms.processor import FormProcessor

    processor = FormProcessor(adapter)
    result = await processor.process_form(
        ["tutores", "cursos", "alumnos"], fields, values
    )
    if result.success:
        print(result.generated_ids)
"""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from course_admin.adapters.base import DatabaseClient
from course_admin.config.models import FormsConfig
from course_admin.forms.errors import (
    CircularDependencyError,
    FormInputError,
    SchemaReconciliationError,
)
from course_admin.forms.models import (
    FieldDefinition,
    FormSubmission,
    ProcessingResult,
    RowValue,
    normalize_table_name,
    validate_identifier,
)
from course_admin.forms.naming import (
    ExplicitMappingConvention,
    NamingConvention,
    SuffixPluralConvention,
    detect_foreign_keys,
)
from course_admin.forms.ordering import order_tables
from course_admin.forms.schema import SchemaReconciler
from course_admin.forms.transform import coerce_value, hash_sensitive_values, is_sensitive

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Form data saved"
SCHEMA_FAILURE_MESSAGE = "Failed to reconcile schema"
CYCLE_FAILURE_MESSAGE = "Circular foreign-key dependency"
INPUT_FAILURE_MESSAGE = "Invalid form input"
FAILURE_MESSAGE = "Failed to process form"


def naming_convention_from_config(config: FormsConfig) -> NamingConvention:
    """Build the foreign-key naming convention described by *config*."""
    convention = SuffixPluralConvention(
        suffix=config.foreign_key_suffix,
        plural_suffix=config.plural_suffix,
        primary_key=config.primary_key,
    )
    if config.foreign_keys:
        return ExplicitMappingConvention(config.foreign_keys, fallback=convention)
    return convention


def _normalize_input(
    tables: list[str],
    fields: list[FieldDefinition],
    values: list[RowValue],
) -> tuple[list[str], list[FieldDefinition], list[RowValue]]:
    """Validate table and field names; fold table names to lower case.

    Models built with ``model_copy`` or ``model_construct`` skip their
    validators, so every name that reaches SQL is checked again here.

    Raises:
        ValueError: On the first invalid table or field name.
    """
    folded_fields = []
    for definition in fields:
        validate_identifier(definition.name, "field")
        update = {"table": normalize_table_name(definition.table)}
        if definition.referenced_table:
            update["referenced_table"] = normalize_table_name(definition.referenced_table)
        folded_fields.append(definition.model_copy(update=update))

    folded_values = []
    for row_value in values:
        validate_identifier(row_value.field, "field")
        folded_values.append(
            row_value.model_copy(update={"table": normalize_table_name(row_value.table)})
        )
    return [normalize_table_name(t) for t in tables], folded_fields, folded_values


class FormProcessor:
    """Processes dynamic forms against one database.

    Args:
        adapter: Database adapter; one pooled connection is checked out
            per ``process_form`` call.
        config: Form processor settings (defaults when ``None``).
        naming: Foreign-key naming convention.  Built from *config* when
            ``None``.
        reconciler: Schema reconciler.  Built from *config* when ``None``.
            Its schema cache lives as long as the processor.
    """

    def __init__(
        self,
        adapter: DatabaseClient,
        config: FormsConfig | None = None,
        naming: NamingConvention | None = None,
        reconciler: SchemaReconciler | None = None,
    ) -> None:
        self._adapter = adapter
        self._config = config or FormsConfig()
        self._naming = naming or naming_convention_from_config(self._config)
        self._reconciler = reconciler or SchemaReconciler.from_config(self._config)

    @property
    def reconciler(self) -> SchemaReconciler:
        return self._reconciler

    async def process_submission(self, submission: FormSubmission) -> ProcessingResult:
        """Process an already validated ``FormSubmission``."""
        return await self.process_form(
            submission.tables, submission.fields, submission.values
        )

    async def process_form(
        self,
        tables: list[str],
        fields: list[FieldDefinition],
        values: list[RowValue],
    ) -> ProcessingResult:
        """Store one form submission across *tables*.

        Never raises for schema, ordering, transform or insert problems:
        they come back as ``ProcessingResult(success=False, ...)`` with the
        error text in ``errors``.

        Table names are validated and folded to lower case before any SQL
        is built, so ``generated_ids`` is keyed by the lower-case names.

        Args:
            tables: Logical tables of the form.
            fields: Field definitions (columns) of those tables.
            values: Submitted values, each tagged with field and table.

        Returns:
            On success, ``generated_ids`` maps every table that received a
            row to the id of that row.
        """
        try:
            tables, fields, values = _normalize_input(tables, fields, values)
            annotated = detect_foreign_keys(fields, self._naming)
        except ValueError as e:
            logger.warning("Form rejected: %s", e)
            return ProcessingResult.failure(INPUT_FAILURE_MESSAGE, [str(e)])

        try:
            order = order_tables(tables, annotated)
        except CircularDependencyError as e:
            logger.warning("Form rejected: %s", e)
            return ProcessingResult.failure(CYCLE_FAILURE_MESSAGE, [str(e)])
        logger.debug("Table order: %s", order)

        try:
            async with self._adapter.connect() as conn:
                try:
                    summary = await self._reconciler.reconcile(conn, order, annotated)
                except SchemaReconciliationError as e:
                    logger.warning("Form rejected: %s", e)
                    return ProcessingResult.failure(SCHEMA_FAILURE_MESSAGE, [str(e)])
                logger.debug("Schema reconciled: %s", summary)

                async with conn.begin():
                    generated_ids = await self._insert_batch(
                        conn, order, annotated, values,
                        set(summary.unresolved_references),
                    )
        except Exception as e:
            logger.warning("Form processing failed, transaction rolled back: %s", e)
            return ProcessingResult.failure(FAILURE_MESSAGE, [str(e)])

        logger.info("Form saved: %s", generated_ids)
        return ProcessingResult(
            success=True,
            message=SUCCESS_MESSAGE,
            generated_ids=generated_ids,
        )

    async def find_record_id(self, table: str, field: str, value: Any) -> int | None:
        """Return the id of the first row of *table* where *field* equals *value*."""
        validate_identifier(table, "table")
        validate_identifier(field, "field")
        primary_key = self._config.primary_key

        rows = await self._adapter.select(
            table, primary_key, filters={field: value}, limit=1
        )
        return rows[0][primary_key] if rows else None

    # ------------------------------------------------------------------
    # Insert phase
    # ------------------------------------------------------------------

    async def _insert_batch(
        self,
        conn: AsyncConnection,
        order: list[str],
        fields: list[FieldDefinition],
        values: list[RowValue],
        unresolved: set[str],
    ) -> dict[str, int]:
        batch = set(order)
        outside = sorted({v.table for v in values if v.table not in batch})
        if outside:
            logger.warning("Ignoring values for tables outside the batch: %s", outside)

        transformed = await hash_sensitive_values(
            [v for v in values if v.table in batch],
            self._config.sensitive_fields,
            self._config.hash_rounds,
        )

        generated_ids: dict[str, int] = {}
        for table in order:
            table_values = [v for v in transformed if v.table == table]
            if not table_values:
                continue
            row = self._build_row(
                table, table_values, fields, generated_ids, unresolved
            )
            generated_ids[table] = await self._insert_row(conn, table, row)

        return generated_ids

    def _build_row(
        self,
        table: str,
        table_values: list[RowValue],
        fields: list[FieldDefinition],
        generated_ids: dict[str, int],
        unresolved: set[str],
    ) -> dict[str, Any]:
        """Column -> value mapping for one table's row.

        *unresolved* holds ``"table.column"`` foreign keys whose target
        table does not exist; their values are coerced by logical type.
        """
        definitions: dict[str, FieldDefinition] = {}
        for definition in fields:
            if definition.table == table:
                definitions.setdefault(definition.name.lower(), definition)

        row: dict[str, Any] = {}
        seen: set[str] = set()

        for row_value in table_values:
            key = row_value.field.lower()
            if key in seen:
                raise FormInputError(
                    f"Field '{row_value.field}' given more than once for table '{table}'"
                )
            seen.add(key)

            definition = definitions.get(key)
            if definition is None:
                row[row_value.field] = row_value.value
            elif definition.is_foreign_key and definition.referenced_table in generated_ids:
                row[row_value.field] = generated_ids[definition.referenced_table]
            elif is_sensitive(row_value.field, self._config.sensitive_fields):
                row[row_value.field] = row_value.value
            else:
                row[row_value.field] = coerce_value(
                    definition,
                    row_value.value,
                    resolved_reference=f"{table}.{key}" not in unresolved,
                )

        # Foreign keys the caller left out still point at their batch parent
        for key, definition in definitions.items():
            if (
                key not in seen
                and definition.is_foreign_key
                and definition.referenced_table in generated_ids
            ):
                row[definition.name] = generated_ids[definition.referenced_table]

        return row

    async def _insert_row(
        self, conn: AsyncConnection, table: str, row: dict[str, Any]
    ) -> int:
        primary_key = self._config.primary_key

        if row:
            columns = list(row.keys())
            placeholders = [f":p_{i}" for i in range(len(columns))]
            params = {f"p_{i}": row[col] for i, col in enumerate(columns)}
            query = (
                f"INSERT INTO {table} ({', '.join(columns)}) "
                f"VALUES ({', '.join(placeholders)}) RETURNING {primary_key}"
            )
        else:
            params = {}
            query = f"INSERT INTO {table} DEFAULT VALUES RETURNING {primary_key}"

        result = await conn.execute(text(query), params)
        new_id = int(result.scalar_one())
        logger.debug("Inserted %s row with id %s", table, new_id)
        return new_id


async def process_form(
    adapter: DatabaseClient,
    tables: list[str],
    fields: list[FieldDefinition],
    values: list[RowValue],
    config: FormsConfig | None = None,
) -> ProcessingResult:
    """One-shot helper: build a ``FormProcessor`` and process one form."""
    return await FormProcessor(adapter, config).process_form(tables, fields, values)
