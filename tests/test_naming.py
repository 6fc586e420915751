"""Tests for foreign-key detection by naming convention."""

import pytest

from course_admin.forms.errors import FormInputError
from course_admin.forms.models import FieldDefinition
from course_admin.forms.naming import (
    ExplicitMappingConvention,
    SuffixPluralConvention,
    detect_foreign_keys,
)


class TestSuffixPluralConvention:
    """``<stem>id`` references ``<stem>s``."""

    def test_camel_case_suffix(self):
        assert SuffixPluralConvention().field_name_to_table("cursoId") == "cursos"

    def test_case_insensitive(self):
        assert SuffixPluralConvention().field_name_to_table("ALUMNOID") == "alumnos"

    def test_snake_case_suffix(self):
        """A separating underscore is dropped with the suffix."""
        assert SuffixPluralConvention().field_name_to_table("curso_id") == "cursos"

    def test_primary_key_is_not_foreign(self):
        assert SuffixPluralConvention().field_name_to_table("id") is None
        assert SuffixPluralConvention().field_name_to_table("ID") is None

    def test_plain_field(self):
        assert SuffixPluralConvention().field_name_to_table("nombre") is None

    def test_underscore_only_stem(self):
        assert SuffixPluralConvention().field_name_to_table("_id") is None

    def test_custom_suffixes(self):
        convention = SuffixPluralConvention(suffix="_ref", plural_suffix="es")
        assert convention.field_name_to_table("tutor_ref") == "tutores"


class TestExplicitMappingConvention:
    """Overrides first, then the fallback convention."""

    def test_override_wins(self):
        convention = ExplicitMappingConvention({"tutorId": "tutores"})
        assert convention.field_name_to_table("tutorid") == "tutores"

    def test_fallback(self):
        convention = ExplicitMappingConvention({"tutorId": "tutores"})
        assert convention.field_name_to_table("cursoId") == "cursos"

    def test_no_fallback(self):
        convention = ExplicitMappingConvention({"tutorId": "tutores"}, fallback=None)
        assert convention.field_name_to_table("cursoId") is None


class TestDetectForeignKeys:
    """detect_foreign_keys() annotates unflagged fields only."""

    def test_marks_convention_matches(self):
        fields = [
            FieldDefinition(name="nombre", table="alumnos"),
            FieldDefinition(name="cursoId", type="number", table="alumnos"),
        ]

        annotated = detect_foreign_keys(fields, SuffixPluralConvention())

        assert annotated[0].is_foreign_key is False
        assert annotated[1].is_foreign_key is True
        assert annotated[1].referenced_table == "cursos"

    def test_explicit_flag_kept(self):
        """A caller-declared target is not replaced by the heuristic."""
        fields = [
            FieldDefinition(
                name="tutorId",
                table="cursos",
                is_foreign_key=True,
                referenced_table="tutores",
            )
        ]

        annotated = detect_foreign_keys(fields, SuffixPluralConvention())

        assert annotated[0].referenced_table == "tutores"

    def test_input_not_mutated(self):
        fields = [FieldDefinition(name="cursoId", table="alumnos")]
        detect_foreign_keys(fields, SuffixPluralConvention())
        assert fields[0].is_foreign_key is False

    def test_order_preserved(self):
        fields = [
            FieldDefinition(name="b", table="t"),
            FieldDefinition(name="cursoId", table="t"),
            FieldDefinition(name="a", table="t"),
        ]
        names = [f.name for f in detect_foreign_keys(fields, SuffixPluralConvention())]
        assert names == ["b", "cursoId", "a"]

    def test_mapped_table_lower_cased(self):
        convention = ExplicitMappingConvention({"tutorId": "Tutores"})
        fields = [FieldDefinition(name="tutorId", table="cursos")]

        annotated = detect_foreign_keys(fields, convention)

        assert annotated[0].referenced_table == "tutores"

    def test_invalid_mapped_table_rejected(self):
        """Mapped names reach DDL, so they are validated like submitted ones."""
        convention = ExplicitMappingConvention({"tutorId": "tutores(id); DROP TABLE usuarios"})
        fields = [FieldDefinition(name="tutorId", table="cursos")]

        with pytest.raises(FormInputError, match="cursos.tutorId"):
            detect_foreign_keys(fields, convention)
