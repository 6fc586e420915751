"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL
adapter implementation.

Usage:
    from course_admin.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from course_admin.adapters.base import DatabaseClient
from course_admin.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
