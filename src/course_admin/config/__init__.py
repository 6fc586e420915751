"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from course_admin.config import load_config, AppConfig, DatabaseProfile
"""

from course_admin.config.loader import load_config
from course_admin.config.models import (
    AppConfig,
    DatabaseProfile,
    EditionsConfig,
    FormsConfig,
)

__all__ = [
    "load_config",
    "AppConfig",
    "DatabaseProfile",
    "EditionsConfig",
    "FormsConfig",
]
