"""Dynamic relational form processing.

Provides the form processor (``FormProcessor``, ``process_form``), its
input/output models, foreign-key naming conventions, dependency ordering,
schema reconciliation and value transformation.

Usage:
    from course_admin.forms import FormProcessor, FieldDefinition, RowValue
    from course_admin.forms import order_tables, SchemaReconciler
"""

from course_admin.forms.errors import (
    CircularDependencyError,
    FormError,
    FormInputError,
    SchemaReconciliationError,
    ValueTransformError,
)
from course_admin.forms.models import (
    FieldDefinition,
    FieldType,
    FormSubmission,
    ProcessingResult,
    RowValue,
)
from course_admin.forms.naming import (
    ExplicitMappingConvention,
    NamingConvention,
    SuffixPluralConvention,
    detect_foreign_keys,
)
from course_admin.forms.ordering import build_dependency_graph, order_tables
from course_admin.forms.processor import FormProcessor, process_form
from course_admin.forms.schema import ReconcileSummary, SchemaReconciler
from course_admin.forms.transform import hash_password, verify_password

__all__ = [
    "FormProcessor",
    "process_form",
    "FieldDefinition",
    "FieldType",
    "FormSubmission",
    "ProcessingResult",
    "RowValue",
    "NamingConvention",
    "SuffixPluralConvention",
    "ExplicitMappingConvention",
    "detect_foreign_keys",
    "build_dependency_graph",
    "order_tables",
    "SchemaReconciler",
    "ReconcileSummary",
    "hash_password",
    "verify_password",
    "FormError",
    "FormInputError",
    "SchemaReconciliationError",
    "CircularDependencyError",
    "ValueTransformError",
]
