"""Value transformation before insert.

Two steps are applied to submitted row values:

1. Sensitive fields (passwords) are replaced by a salted bcrypt hash.
   The hash is one-way: checking a password means hashing the candidate
   again via ``verify_password``, never decrypting.
2. Values of known fields are coerced to the Python type matching their
   logical type, so the driver receives ``int``/``Decimal``/``bool``/``str``
   instead of raw form strings.  A blank string is NULL for numbers and
   booleans alike.
"""

import asyncio
import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

import bcrypt

from course_admin.forms.errors import FormInputError, ValueTransformError
from course_admin.forms.models import FieldDefinition, FieldType, RowValue

logger = logging.getLogger(__name__)

DEFAULT_SENSITIVE_FIELDS = frozenset({"password", "contraseña"})
DEFAULT_HASH_ROUNDS = 10

_TRUE_STRINGS = {"true", "t", "1", "yes", "y", "si", "sí", "on"}
_FALSE_STRINGS = {"false", "f", "0", "no", "n", "off"}


# ------------------------------------------------------------------
# Password hashing
# ------------------------------------------------------------------


def hash_password(plain: str, rounds: int = DEFAULT_HASH_ROUNDS) -> str:
    """Hash a password with bcrypt and a fresh salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Check *plain* against a stored bcrypt hash.

    Returns ``False`` for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def is_sensitive(field_name: str, sensitive_fields: Iterable[str]) -> bool:
    """True if *field_name* matches a sensitive field, ignoring case."""
    folded = field_name.casefold()
    return any(folded == name.casefold() for name in sensitive_fields)


async def hash_sensitive_values(
    values: list[RowValue],
    sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS,
    rounds: int = DEFAULT_HASH_ROUNDS,
) -> list[RowValue]:
    """Return *values* with every sensitive value replaced by its hash.

    Hashing runs in a worker thread; bcrypt is CPU bound.

    Raises:
        ValueTransformError: If a sensitive value is missing or cannot be
            hashed.
    """
    sensitive = list(sensitive_fields)
    processed: list[RowValue] = []

    for row_value in values:
        if not is_sensitive(row_value.field, sensitive):
            processed.append(row_value)
            continue

        if row_value.value is None:
            raise ValueTransformError(
                f"Sensitive field '{row_value.table}.{row_value.field}' has no value"
            )
        try:
            hashed = await asyncio.to_thread(
                hash_password, str(row_value.value), rounds
            )
        except ValueError as e:
            raise ValueTransformError(
                f"Could not hash '{row_value.table}.{row_value.field}': {e}"
            ) from e

        logger.debug("Hashed sensitive field %s.%s", row_value.table, row_value.field)
        processed.append(row_value.model_copy(update={"value": hashed}))

    return processed


# ------------------------------------------------------------------
# Type coercion
# ------------------------------------------------------------------


def coerce_value(
    definition: FieldDefinition, value: Any, resolved_reference: bool = True
) -> Any:
    """Convert *value* to the Python type of the field's logical type.

    ``None`` is passed through.  Foreign keys become ``int`` when their
    referenced table exists (*resolved_reference*); otherwise the column
    kept its logical type and the value is coerced by that type.

    Raises:
        FormInputError: If the value cannot represent the logical type.
    """
    if value is None:
        return None

    label = f"{definition.table}.{definition.name}"

    if definition.is_foreign_key and resolved_reference:
        return _to_int(value, label)
    if definition.type is FieldType.NUMBER:
        return _to_number(value, label)
    if definition.type is FieldType.BOOLEAN:
        return _to_bool(value, label)
    return value if isinstance(value, str) else str(value)


def _to_number(value: Any, label: str) -> int | float | Decimal | None:
    if isinstance(value, bool):
        raise FormInputError(f"Expected a number for {label}, got a boolean")
    if isinstance(value, (int, float, Decimal)):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise FormInputError(f"Expected a number for {label}, got {value!r}") from None


def _to_int(value: Any, label: str) -> int | None:
    number = _to_number(value, label)
    if number is None or isinstance(number, int):
        return number
    try:
        integral = int(number)
    except (ValueError, OverflowError):
        integral = None
    if integral is None or number != integral:
        raise FormInputError(f"Expected an integer id for {label}, got {value!r}")
    return integral


def _to_bool(value: Any, label: str) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    raw = str(value).strip().lower()
    if not raw:
        return None
    if raw in _TRUE_STRINGS:
        return True
    if raw in _FALSE_STRINGS:
        return False
    raise FormInputError(f"Expected a boolean for {label}, got {value!r}")
