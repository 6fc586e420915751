"""Exceptions raised by the dynamic form processor."""


class FormError(Exception):
    """Base class for form processing errors."""

    pass


class FormInputError(FormError, ValueError):
    """Input values that cannot be stored (bad identifier, duplicate field, bad value)."""

    pass


class SchemaReconciliationError(FormError):
    """A CREATE TABLE or ALTER TABLE statement failed."""

    def __init__(self, table: str, cause: Exception):
        self.table = table
        self.cause = cause
        super().__init__(f"Schema reconciliation failed for table '{table}': {cause}")


class CircularDependencyError(FormError):
    """Foreign keys between the batch tables form a cycle."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Circular dependency detected at table: {table}")


class ValueTransformError(FormError):
    """A sensitive value could not be hashed."""

    pass
