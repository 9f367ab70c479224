import itertools
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from db.client import DatabaseClient, QueryResult, TableQuery
from main import create_app


class InMemoryDatabase(DatabaseClient):
    """
    Dict-backed stand-in for a database backend.

    Records every executed query. `fail_next(message)` makes the next
    query report that error instead of running.
    """

    def __init__(self, tables: Optional[dict[str, list[dict]]] = None):
        self.tables: dict[str, list[dict]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.executed: list[TableQuery] = []
        self._ids = itertools.count(1)
        self._next_error: Optional[str] = None
        self.closed = False

    def seed(self, table: str, *rows: dict) -> None:
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)

    def fail_next(self, message: str) -> None:
        self._next_error = message

    def execute(self, query: TableQuery) -> QueryResult:
        self.executed.append(query)
        if self._next_error is not None:
            message, self._next_error = self._next_error, None
            return QueryResult.fail(message)

        rows = self.tables.setdefault(query.table, [])
        matches = [r for r in rows if all(str(r.get(c)) == str(v) for c, v in query.filters)]

        if query.action == "select":
            for column, desc in reversed(query.ordering):
                matches.sort(key=lambda r: r.get(column), reverse=desc)
            return QueryResult.ok([dict(r) for r in matches])

        if query.action == "insert":
            inserted = []
            for row in query.payload:
                if not isinstance(row, dict):
                    return QueryResult.fail('null value in column "name" violates not-null constraint')
                stored = {"id": next(self._ids), **row}
                rows.append(stored)
                inserted.append(dict(stored))
            return QueryResult.ok(inserted if query.returning else [])

        if query.action == "update":
            if not isinstance(query.payload, dict):
                return QueryResult.fail("Empty or invalid json")
            for row in matches:
                row.update(query.payload)
            return QueryResult.ok([dict(r) for r in matches] if query.returning else [])

        if query.action == "delete":
            self.tables[query.table] = [r for r in rows if r not in matches]
            return QueryResult.ok([])

        raise AssertionError(f"unexpected action {query.action}")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def client(db: InMemoryDatabase) -> TestClient:
    return TestClient(create_app(db_client=db, api_prefix=""))
