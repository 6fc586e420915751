"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the form processor, the
bootstrap routine and the CLI depend on.  All data methods are
``async def`` -- the library is async-first.

Usage:
    from course_admin.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select("cursos", "id, codigo")
        await client.insert("cursos", {"codigo": "PY-01"})
        await client.execute("CREATE INDEX idx_codigo ON cursos (codigo)")

        async with client.connect() as conn:
            async with conn.begin():
                ...

        await client.close()
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncConnection


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    All data methods are async -- callers must ``await`` every operation.
    ``connect()`` hands out one pooled connection for callers that need
    several statements (DDL plus a transaction) on the same session.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names (e.g., ``"id, email, rol"``).
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by.
            limit: Optional maximum number of rows.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await client.select(
                "usuarios",
                "id, email",
                filters={"rol": "admin"},
                order_by="email",
            )
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row into table and return the created row.

        Args:
            table: Table name.
            data: Dict of field=value pairs to insert.

        Returns:
            Dict representing the created row (includes id, timestamps, etc.).

        Raises:
            Exception: If duplicate key or constraint violation.
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations).

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the SQL statement.

        Example:
            await client.execute(
                "ALTER TABLE alumnos ADD COLUMN grupo VARCHAR(155)"
            )
        """
        ...

    def connect(self) -> AbstractAsyncContextManager[AsyncConnection]:
        """Check out one connection from the pool.

        The connection is returned to the pool when the ``async with``
        block exits, on success and on error alike.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
