"""Tests for schema reconciliation (CREATE TABLE / ADD COLUMN)."""

import asyncio
import logging

import pytest
from conftest import FakeConnection

from course_admin.config.models import FormsConfig
from course_admin.forms.errors import SchemaReconciliationError
from course_admin.forms.models import FieldDefinition, FieldType
from course_admin.forms.schema import AddColumn, ColumnSpec, CreateTable, SchemaReconciler


class TestDDLStatements:
    """SQL produced by the statement dataclasses."""

    def test_column_spec(self):
        assert ColumnSpec("nombre", "VARCHAR(150)").to_sql() == "nombre VARCHAR(150)"

    def test_column_spec_references(self):
        spec = ColumnSpec("cursoId", "INTEGER", references="cursos")
        assert spec.to_sql() == "cursoId INTEGER REFERENCES cursos(id)"

    def test_create_table(self):
        statement = CreateTable("tutores", [ColumnSpec("nombre", "TEXT")])
        assert statement.to_sql() == (
            "CREATE TABLE IF NOT EXISTS tutores (id SERIAL PRIMARY KEY, "
            "fechacreacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP, nombre TEXT)"
        )

    def test_add_column(self):
        statement = AddColumn("tutores", ColumnSpec("activo", "BOOLEAN"))
        assert statement.to_sql() == (
            "ALTER TABLE tutores ADD COLUMN IF NOT EXISTS activo BOOLEAN"
        )


class TestColumnType:
    """Logical type -> PostgreSQL type."""

    @pytest.mark.parametrize(
        "field_type, expected",
        [
            (FieldType.NUMBER, "NUMERIC"),
            (FieldType.TEXT, "TEXT"),
            (FieldType.VARCHAR, "VARCHAR(150)"),
            (FieldType.BOOLEAN, "BOOLEAN"),
        ],
    )
    def test_mapping(self, field_type, expected):
        assert SchemaReconciler().column_type(field_type) == expected

    def test_varchar_length_configurable(self):
        reconciler = SchemaReconciler.from_config(FormsConfig(varchar_length=80))
        assert reconciler.column_type(FieldType.VARCHAR) == "VARCHAR(80)"


class TestReconcile:
    """reconcile() against the in-memory connection."""

    def test_creates_missing_table(self):
        conn = FakeConnection()
        fields = [
            FieldDefinition(name="nombre", type="varchar", table="tutores"),
            FieldDefinition(name="activo", type="boolean", table="tutores"),
        ]

        summary = asyncio.run(SchemaReconciler().reconcile(conn, ["tutores"], fields))

        assert summary.tables_created == ["tutores"]
        assert conn.tables["tutores"] == ["id", "fechacreacion", "nombre", "activo"]
        assert conn.commits == 1

    def test_reserved_and_duplicate_fields_skipped(self):
        """id, fechacreacion and repeated names produce no extra columns."""
        conn = FakeConnection()
        fields = [
            FieldDefinition(name="id", type="number", table="t"),
            FieldDefinition(name="fechaCreacion", table="t"),
            FieldDefinition(name="nombre", table="t"),
            FieldDefinition(name="NOMBRE", table="t"),
        ]

        asyncio.run(SchemaReconciler().reconcile(conn, ["t"], fields))

        assert conn.tables["t"] == ["id", "fechacreacion", "nombre"]

    def test_adds_missing_columns_only(self):
        conn = FakeConnection(tables={"tutores": ["id", "fechacreacion", "nombre"]})
        fields = [
            FieldDefinition(name="Nombre", table="tutores"),
            FieldDefinition(name="email", table="tutores"),
        ]

        summary = asyncio.run(SchemaReconciler().reconcile(conn, ["tutores"], fields))

        assert summary.tables_created == []
        assert summary.columns_added == ["tutores.email"]
        assert conn.ddl() == [
            "ALTER TABLE tutores ADD COLUMN IF NOT EXISTS email VARCHAR(150)"
        ]

    def test_existing_table_complete_is_noop(self):
        conn = FakeConnection(tables={"tutores": ["id", "fechacreacion", "nombre"]})
        fields = [FieldDefinition(name="nombre", table="tutores")]

        summary = asyncio.run(SchemaReconciler().reconcile(conn, ["tutores"], fields))

        assert conn.ddl() == []
        assert summary.columns_added == []

    def test_foreign_key_to_existing_table(self):
        conn = FakeConnection(tables={"cursos": ["id"]})
        fields = [
            FieldDefinition(
                name="cursoId",
                type="number",
                table="alumnos",
                is_foreign_key=True,
                referenced_table="cursos",
            )
        ]

        asyncio.run(SchemaReconciler().reconcile(conn, ["alumnos"], fields))

        assert "cursoId INTEGER REFERENCES cursos(id)" in conn.ddl()[0]

    def test_foreign_key_to_missing_table_warns(self, caplog):
        """No REFERENCES clause when the target does not exist."""
        conn = FakeConnection()
        fields = [
            FieldDefinition(
                name="tutorId",
                type="number",
                table="cursos",
                is_foreign_key=True,
                referenced_table="tutors",
            )
        ]

        with caplog.at_level(logging.WARNING, logger="course_admin.forms.schema"):
            summary = asyncio.run(SchemaReconciler().reconcile(conn, ["cursos"], fields))

        assert summary.unresolved_references == ["cursos.tutorid"]
        assert "REFERENCES" not in conn.ddl()[0]
        assert "tutorId NUMERIC" in conn.ddl()[0]
        assert any("tutors" in r.getMessage() for r in caplog.records)

    def test_unresolved_reference_reported_for_existing_column(self):
        """Reported on every call, including cached and no-op ones."""
        conn = FakeConnection(tables={"alumnos": ["id", "fechacreacion", "uuid"]})
        fields = [
            FieldDefinition(
                name="uuid", type="text", table="alumnos",
                is_foreign_key=True, referenced_table="uus",
            )
        ]
        reconciler = SchemaReconciler()

        first = asyncio.run(reconciler.reconcile(conn, ["alumnos"], fields))
        second = asyncio.run(reconciler.reconcile(conn, ["alumnos"], fields))

        assert conn.ddl() == []
        assert first.unresolved_references == ["alumnos.uuid"]
        assert second.tables_cached == ["alumnos"]
        assert second.unresolved_references == ["alumnos.uuid"]

    def test_resolved_reference_not_reported(self):
        conn = FakeConnection(tables={"cursos": ["id"]})
        fields = [
            FieldDefinition(
                name="cursoId", table="alumnos", is_foreign_key=True, referenced_table="cursos"
            )
        ]

        summary = asyncio.run(SchemaReconciler().reconcile(conn, ["alumnos"], fields))

        assert summary.unresolved_references == []

    def test_failure_wrapped_and_rolled_back(self):
        conn = FakeConnection(fail_on="IF NOT EXISTS alumnos")
        fields = [
            FieldDefinition(name="nombre", table="cursos"),
            FieldDefinition(name="nombre", table="alumnos"),
        ]

        with pytest.raises(SchemaReconciliationError) as exc_info:
            asyncio.run(SchemaReconciler().reconcile(conn, ["cursos", "alumnos"], fields))

        assert exc_info.value.table == "alumnos"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert conn.rollbacks == 1
        assert "cursos" in conn.tables


class TestSchemaCache:
    """Identical batches skip the catalog after the first run."""

    def test_cached_batch_skipped(self):
        conn = FakeConnection()
        fields = [FieldDefinition(name="nombre", table="tutores")]
        reconciler = SchemaReconciler()

        asyncio.run(reconciler.reconcile(conn, ["tutores"], fields))
        summary = asyncio.run(reconciler.reconcile(conn, ["tutores"], fields))

        assert summary.tables_cached == ["tutores"]
        assert len(conn.ddl()) == 1

    def test_changed_fields_not_cached(self):
        conn = FakeConnection()
        reconciler = SchemaReconciler()

        asyncio.run(
            reconciler.reconcile(conn, ["t"], [FieldDefinition(name="a", table="t")])
        )
        summary = asyncio.run(
            reconciler.reconcile(
                conn,
                ["t"],
                [FieldDefinition(name="a", table="t"), FieldDefinition(name="b", table="t")],
            )
        )

        assert summary.tables_cached == []
        assert summary.columns_added == ["t.b"]

    def test_clear_cache(self):
        conn = FakeConnection()
        fields = [FieldDefinition(name="nombre", table="tutores")]
        reconciler = SchemaReconciler()

        asyncio.run(reconciler.reconcile(conn, ["tutores"], fields))
        reconciler.clear_cache()
        summary = asyncio.run(reconciler.reconcile(conn, ["tutores"], fields))

        assert summary.tables_cached == []

    def test_cache_disabled(self):
        conn = FakeConnection()
        fields = [FieldDefinition(name="nombre", table="tutores")]
        reconciler = SchemaReconciler(cache=False)

        asyncio.run(reconciler.reconcile(conn, ["tutores"], fields))
        summary = asyncio.run(reconciler.reconcile(conn, ["tutores"], fields))

        assert summary.tables_cached == []
        assert len(conn.ddl()) == 1
