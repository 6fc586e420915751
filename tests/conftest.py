"""Shared test fixtures: an in-memory stand-in for a pooled connection.

``FakeConnection`` understands the handful of statements the form
processor sends (catalog lookups, CREATE TABLE, ALTER TABLE ADD COLUMN,
INSERT ... RETURNING id) and keeps rows written inside ``begin()``
pending until the block exits cleanly, so atomicity can be checked
without a database.
"""

import re
from contextlib import asynccontextmanager
from typing import Any

import pytest

_CREATE_RE = re.compile(r"CREATE TABLE IF NOT EXISTS (\w+) \((.*)\)\s*$", re.DOTALL)
_ALTER_RE = re.compile(r"ALTER TABLE (\w+) ADD COLUMN IF NOT EXISTS (\w+)")
_INSERT_RE = re.compile(
    r"INSERT INTO (\w+) (?:\(([^)]*)\) VALUES|DEFAULT VALUES)", re.DOTALL
)


class FakeResult:
    def __init__(self, scalar: Any = None, rows: list[tuple] | None = None):
        self._scalar = scalar
        self._rows = rows or []

    def scalar(self) -> Any:
        return self._scalar

    def scalar_one(self) -> Any:
        if self._scalar is None:
            raise RuntimeError("No row returned")
        return self._scalar

    def fetchall(self) -> list[tuple]:
        return list(self._rows)


class FakeTransaction:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn

    async def __aenter__(self) -> "FakeTransaction":
        self._conn.in_transaction = True
        self._conn.pending = []
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        conn = self._conn
        conn.in_transaction = False
        if exc_type is None:
            for table, row in conn.pending:
                conn.rows[table].append(row)
            conn.commits += 1
        else:
            conn.rollbacks += 1
        conn.pending = []
        return False


class FakeConnection:
    """In-memory PostgreSQL look-alike for one pooled connection.

    Args:
        tables: Pre-existing tables, name -> column names.
        fail_on: SQL fragment; any statement containing it raises.
    """

    def __init__(
        self,
        tables: dict[str, list[str]] | None = None,
        fail_on: str | None = None,
    ):
        self.tables: dict[str, list[str]] = {
            name.lower(): [c.lower() for c in cols] for name, cols in (tables or {}).items()
        }
        self.rows: dict[str, list[dict]] = {name: [] for name in self.tables}
        self.statements: list[str] = []
        self.fail_on = fail_on
        self.in_transaction = False
        self.pending: list[tuple[str, dict]] = []
        self.commits = 0
        self.rollbacks = 0
        self._sequences: dict[str, int] = {}

    # -- statement inspection -------------------------------------------

    def ddl(self) -> list[str]:
        return [
            s for s in self.statements if s.startswith(("CREATE TABLE", "ALTER TABLE"))
        ]

    def inserts(self) -> list[str]:
        return [s for s in self.statements if s.startswith("INSERT")]

    # -- AsyncConnection surface ----------------------------------------

    def begin(self) -> FakeTransaction:
        return FakeTransaction(self)

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def execute(self, clause: Any, params: dict | None = None) -> FakeResult:
        sql = " ".join(str(clause).split())
        params = params or {}

        if "information_schema.tables" in sql:
            return FakeResult(scalar=params["table"] in self.tables)
        if "information_schema.columns" in sql:
            columns = self.tables.get(params["table"], [])
            return FakeResult(rows=[(c,) for c in columns])

        self.statements.append(sql)
        if self.fail_on and self.fail_on in sql:
            raise RuntimeError(f"simulated failure: {self.fail_on}")

        match = _CREATE_RE.match(sql)
        if match:
            table = match.group(1).lower()
            if table not in self.tables:
                self.tables[table] = [
                    part.split()[0].lower() for part in match.group(2).split(", ")
                ]
                self.rows[table] = []
            return FakeResult()

        match = _ALTER_RE.match(sql)
        if match:
            table, column = match.group(1).lower(), match.group(2).lower()
            if table not in self.tables:
                raise RuntimeError(f'relation "{table}" does not exist')
            if column not in self.tables[table]:
                self.tables[table].append(column)
            return FakeResult()

        match = _INSERT_RE.match(sql)
        if match:
            return FakeResult(scalar=self._insert(match, params))

        return FakeResult()

    def _insert(self, match: re.Match, params: dict) -> int:
        table = match.group(1).lower()
        if table not in self.tables:
            raise RuntimeError(f'relation "{table}" does not exist')

        columns = [c.strip() for c in match.group(2).split(",")] if match.group(2) else []
        row: dict[str, Any] = {}
        for i, column in enumerate(columns):
            if column.lower() not in self.tables[table]:
                raise RuntimeError(f'column "{column}" of relation "{table}" does not exist')
            row[column.lower()] = params[f"p_{i}"]

        new_id = self._sequences.get(table, 0) + 1
        self._sequences[table] = new_id
        row["id"] = new_id

        if self.in_transaction:
            self.pending.append((table, row))
        else:
            self.rows[table].append(row)
        return new_id


class FakeAdapter:
    """``DatabaseClient`` whose ``connect()`` hands out one ``FakeConnection``."""

    def __init__(self, conn: FakeConnection | None = None):
        self.conn = conn or FakeConnection()
        self.connect_calls = 0
        self.closed = False

    @asynccontextmanager
    async def connect(self):
        self.connect_calls += 1
        yield self.conn

    async def select(self, table, columns, filters=None, order_by=None, limit=None):
        rows = [
            row
            for row in self.conn.rows.get(table.lower(), [])
            if all(row.get(k.lower()) == v for k, v in (filters or {}).items())
        ]
        if limit is not None:
            rows = rows[:limit]
        wanted = [c.strip().lower() for c in columns.split(",")]
        return [{c: row.get(c) for c in wanted} for row in rows]

    async def insert(self, table, data):
        raise NotImplementedError

    async def execute(self, sql, params=None):
        await self.conn.execute(sql, params)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_adapter(fake_conn: FakeConnection) -> FakeAdapter:
    return FakeAdapter(fake_conn)
