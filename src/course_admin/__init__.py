"""course-admin: course-management back office over PostgreSQL.

Provides the dynamic relational form processor (one form, several
related tables, one transaction), multi-profile configuration, base
schema bootstrap and the course-edition hours rule.

Usage:
    from course_admin import FormProcessor, FieldDefinition, RowValue, get_adapter
    from course_admin import init_database, check_edition_hours
    from course_admin import load_config, AppConfig
"""

__version__ = "0.1.0"

# Adapters
from course_admin.adapters.base import DatabaseClient
from course_admin.adapters.postgres import AsyncPostgresAdapter

# Config
from course_admin.config.loader import load_config
from course_admin.config.models import AppConfig, DatabaseProfile, FormsConfig

# Factory
from course_admin.factory import ProfileNotFoundError, get_adapter, resolve_url

# Forms
from course_admin.forms.models import (
    FieldDefinition,
    FieldType,
    FormSubmission,
    ProcessingResult,
    RowValue,
)
from course_admin.forms.processor import FormProcessor, process_form

# Back office
from course_admin.bootstrap import init_database
from course_admin.editions import EditionHoursCheck, check_edition_hours, working_days

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_config",
    "AppConfig",
    "DatabaseProfile",
    "FormsConfig",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Forms
    "FormProcessor",
    "process_form",
    "FieldDefinition",
    "FieldType",
    "FormSubmission",
    "ProcessingResult",
    "RowValue",
    # Back office
    "init_database",
    "check_edition_hours",
    "working_days",
    "EditionHoursCheck",
]
