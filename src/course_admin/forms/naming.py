"""Foreign-key detection by field naming convention.

A field such as ``cursoId`` is taken to reference the table ``cursos``:
the identifier suffix is stripped and a plural suffix appended.  The
convention is pluggable -- anything with a ``field_name_to_table`` method
can stand in for ``SuffixPluralConvention``.

Usage:
    from course_admin.forms.naming import SuffixPluralConvention, detect_foreign_keys

    annotated = detect_foreign_keys(fields, SuffixPluralConvention())
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from course_admin.forms.errors import FormInputError
from course_admin.forms.models import FieldDefinition, normalize_table_name


class NamingConvention(Protocol):
    """Maps a field name to the table it references, if any."""

    def field_name_to_table(self, field_name: str) -> str | None:
        """Return the referenced table name, or ``None`` for plain fields."""
        ...


@dataclass(frozen=True)
class SuffixPluralConvention:
    """``<stem><suffix>`` references ``<stem><plural_suffix>``.

    Matching is case-insensitive and the derived table name is lower case.
    A field named exactly like the suffix or the primary key is the
    primary key itself, never a foreign key.

    Example:
        >>> SuffixPluralConvention().field_name_to_table("cursoId")
        'cursos'
        >>> SuffixPluralConvention().field_name_to_table("curso_id")
        'cursos'
        >>> SuffixPluralConvention().field_name_to_table("id") is None
        True
    """

    suffix: str = "id"
    plural_suffix: str = "s"
    primary_key: str = "id"

    def field_name_to_table(self, field_name: str) -> str | None:
        lowered = field_name.lower()
        suffix = self.suffix.lower()

        if lowered in (suffix, self.primary_key.lower()):
            return None
        if not lowered.endswith(suffix):
            return None

        stem = lowered[: -len(suffix)].rstrip("_")
        if not stem:
            return None
        return stem + self.plural_suffix


@dataclass(frozen=True)
class ExplicitMappingConvention:
    """Explicit field-name -> table overrides with a fallback convention.

    Example:
        >>> c = ExplicitMappingConvention({"tutorId": "tutores"})
        >>> c.field_name_to_table("TUTORID")
        'tutores'
        >>> c.field_name_to_table("cursoId")
        'cursos'
    """

    mapping: Mapping[str, str]
    fallback: NamingConvention | None = field(default_factory=SuffixPluralConvention)

    def field_name_to_table(self, field_name: str) -> str | None:
        for name, table in self.mapping.items():
            if name.lower() == field_name.lower():
                return table
        if self.fallback is None:
            return None
        return self.fallback.field_name_to_table(field_name)


def detect_foreign_keys(
    fields: list[FieldDefinition],
    convention: NamingConvention,
) -> list[FieldDefinition]:
    """Mark foreign-key fields and fill in their referenced tables.

    Fields the caller already flagged as foreign keys keep their declared
    target.  The convention only decides for the rest; it does not check
    that the referenced table exists.  Derived table names are validated
    and lower-cased like submitted ones.

    Args:
        fields: Field definitions as submitted.
        convention: Naming convention used for unflagged fields.

    Returns:
        New list of field definitions, same order, foreign keys annotated.

    Raises:
        FormInputError: If the convention maps a field to an invalid
            table name.
    """
    annotated: list[FieldDefinition] = []
    for definition in fields:
        if definition.is_foreign_key:
            annotated.append(definition)
            continue

        referenced = convention.field_name_to_table(definition.name)
        if referenced:
            try:
                referenced = normalize_table_name(referenced)
            except ValueError as e:
                raise FormInputError(
                    f"Field '{definition.table}.{definition.name}' maps to an "
                    f"invalid referenced table: {e}"
                ) from e
            definition = definition.model_copy(
                update={"is_foreign_key": True, "referenced_table": referenced}
            )
        annotated.append(definition)
    return annotated
