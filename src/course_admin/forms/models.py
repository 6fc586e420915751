"""Pydantic models for the dynamic form processor.

- Input models: FieldType, FieldDefinition, RowValue, FormSubmission
- Output model: ProcessingResult

Every model accepts the legacy Spanish payload keys (``nombre``, ``tipo``,
``tabla``, ``esClaveForanea``, ``tablaReferenciada``, ``campo``, ``valor``,
``tablas``, ``campos``, ``datos``) as well as the English field names.
"""

import re
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# Unquoted PostgreSQL identifier: letter or underscore first, max 63 chars
IDENTIFIER_PATTERN = re.compile(r"[^\W\d]\w{0,62}")


def validate_identifier(value: str, kind: str = "identifier") -> str:
    """Return *value* unchanged if it is a safe SQL identifier.

    Table and column names are interpolated into DDL and DML, so anything
    outside ``[letter_][letter digit _]*`` is rejected.

    Raises:
        ValueError: If *value* is not a plain identifier.
    """
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid {kind} name: {value!r}")
    return value


def normalize_table_name(value: str) -> str:
    """Validate a table name and fold it to lower case.

    PostgreSQL folds unquoted identifiers, so ``Cursos`` and ``cursos`` are
    the same table and must compare equal everywhere a batch is wired.
    """
    return validate_identifier(value, "table").lower()


# ============================================================================
# Input Models
# ============================================================================


class FieldType(str, Enum):
    """Logical column type of a form field."""

    NUMBER = "number"
    TEXT = "text"
    VARCHAR = "varchar"  # short text
    BOOLEAN = "boolean"


_FIELD_TYPE_ALIASES = {
    "short-text": FieldType.VARCHAR,
    "short_text": FieldType.VARCHAR,
    "string": FieldType.VARCHAR,
    "numeric": FieldType.NUMBER,
    "bool": FieldType.BOOLEAN,
}


class FieldDefinition(BaseModel):
    """One column of a logical table.

    Example:
        >>> f = FieldDefinition(name="cursoId", type="number", table="alumnos")
        >>> f.is_foreign_key
        False
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(validation_alias=AliasChoices("name", "nombre"))
    type: FieldType = Field(
        default=FieldType.VARCHAR, validation_alias=AliasChoices("type", "tipo")
    )
    table: str = Field(validation_alias=AliasChoices("table", "tabla"))
    is_foreign_key: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_foreign_key", "esClaveForanea"),
    )
    referenced_table: str | None = Field(
        default=None,
        validation_alias=AliasChoices("referenced_table", "tablaReferenciada"),
    )

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _FIELD_TYPE_ALIASES.get(normalized, normalized)
        return value

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_identifier(value, "field")

    @field_validator("table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        return normalize_table_name(value)

    @field_validator("referenced_table")
    @classmethod
    def _check_referenced_table(cls, value: str | None) -> str | None:
        if not value:
            return None
        return normalize_table_name(value)

    @model_validator(mode="after")
    def _check_reference(self) -> "FieldDefinition":
        if self.is_foreign_key and not self.referenced_table:
            raise ValueError(
                f"Foreign key field '{self.name}' needs a referenced table"
            )
        return self


class RowValue(BaseModel):
    """A value submitted for one field of one table."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(validation_alias=AliasChoices("field", "campo"))
    table: str = Field(validation_alias=AliasChoices("table", "tabla"))
    value: Any = Field(default=None, validation_alias=AliasChoices("value", "valor"))

    @field_validator("field")
    @classmethod
    def _check_field(cls, value: str) -> str:
        return validate_identifier(value, "field")

    @field_validator("table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        return normalize_table_name(value)


class FormSubmission(BaseModel):
    """A complete form payload: tables, field definitions and values.

    Validation rejects empty lists before the processor is called.
    """

    tables: list[str] = Field(
        min_length=1, validation_alias=AliasChoices("tables", "tablas")
    )
    fields: list[FieldDefinition] = Field(
        min_length=1, validation_alias=AliasChoices("fields", "campos")
    )
    values: list[RowValue] = Field(
        min_length=1, validation_alias=AliasChoices("values", "datos")
    )

    @field_validator("tables")
    @classmethod
    def _check_tables(cls, value: list[str]) -> list[str]:
        return [normalize_table_name(t) for t in value]


# ============================================================================
# Result Model
# ============================================================================


class ProcessingResult(BaseModel):
    """Result of one ``process_form`` call.

    Example:
        >>> ProcessingResult.failure("Failed to process form", ["boom"]).success
        False
    """

    success: bool
    message: str
    errors: list[str] | None = None
    generated_ids: dict[str, int] | None = None

    @classmethod
    def failure(cls, message: str, errors: list[str]) -> "ProcessingResult":
        """Build a failed result."""
        return cls(success=False, message=message, errors=errors)
