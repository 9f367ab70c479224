"""
db/postgres_client.py
---------------------
Direct PostgreSQL backend for the database client contract.

Queries are composed with `psycopg2.sql` so table and column names are
always quoted identifiers, and values are always bound parameters.
"""

from typing import Any

import psycopg2
from psycopg2 import sql
from psycopg2.extras import Json, RealDictCursor

from db.client import DatabaseClient, QueryResult, TableQuery
from db.connection import ConnectionPool
from utils.logger import get_logger

logger = get_logger(__name__)


class PostgresDatabase(DatabaseClient):
    """Runs table queries through a psycopg2 connection pool."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    def execute(self, query: TableQuery) -> QueryResult:
        try:
            statement, params = compile_query(query)
        except ValueError as e:
            return QueryResult.fail(str(e))

        try:
            with self._pool.connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(statement, params)
                    rows = cur.fetchall() if cur.description else []
        except psycopg2.Error as e:
            logger.error(f"{query.action} on '{query.table}' failed: {e}")
            diag = getattr(e, "diag", None)
            message = (diag.message_primary if diag else None) or str(e).strip()
            return QueryResult.fail(
                message,
                code=e.pgcode,
                details=diag.message_detail if diag else None,
                hint=diag.message_hint if diag else None,
            )
        return QueryResult.ok([dict(row) for row in rows])

    def close(self) -> None:
        self._pool.close()


# ── Query compilation ─────────────────────────────────────

def compile_query(query: TableQuery) -> tuple[sql.Composable, list[Any]]:
    """
    Translate a TableQuery into a composed SQL statement and its parameters.

    Raises:
        ValueError: If the payload cannot be expressed as SQL.
    """
    table = (
        sql.Identifier(query.schema, query.table)
        if query.schema
        else sql.Identifier(query.table)
    )
    where, params = _where_clause(query.filters)

    if query.action == "select":
        statement = sql.SQL("SELECT {} FROM {}{}{}").format(
            _column_list(query.columns), table, where, _order_clause(query.ordering)
        )
        return statement, params

    if query.action == "insert":
        return _compile_insert(query, table)

    if query.action in ("update", "delete") and not query.filters:
        raise ValueError(f"{query.action.upper()} requires a WHERE clause")

    if query.action == "update":
        patch = query.payload
        if not isinstance(patch, dict) or not patch:
            raise ValueError("update payload must be a non-empty object")
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
            for column in patch
        )
        statement = sql.SQL("UPDATE {} SET {}{}{}").format(
            table, assignments, where, _returning_clause(query)
        )
        return statement, [_adapt(v) for v in patch.values()] + params

    if query.action == "delete":
        statement = sql.SQL("DELETE FROM {}{}{}").format(
            table, where, _returning_clause(query)
        )
        return statement, params

    raise ValueError(f"Unsupported operation: {query.action}")


def _compile_insert(query: TableQuery, table: sql.Identifier) -> tuple[sql.Composable, list[Any]]:
    rows = query.payload if isinstance(query.payload, list) else [query.payload]
    if not rows or not all(isinstance(row, dict) for row in rows):
        raise ValueError("insert payload must be an object or a list of objects")

    columns: list[str] = []
    for row in rows:
        columns.extend(c for c in row if c not in columns)

    if not columns:
        if len(rows) > 1:
            raise ValueError("cannot insert several empty rows")
        statement = sql.SQL("INSERT INTO {} DEFAULT VALUES{}").format(
            table, _returning_clause(query)
        )
        return statement, []

    params: list[Any] = []
    tuples = []
    for row in rows:
        values = []
        for column in columns:
            if column in row:
                values.append(sql.Placeholder())
                params.append(_adapt(row[column]))
            else:
                values.append(sql.SQL("DEFAULT"))
        tuples.append(sql.SQL("({})").format(sql.SQL(", ").join(values)))

    statement = sql.SQL("INSERT INTO {} ({}) VALUES {}{}").format(
        table,
        sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        sql.SQL(", ").join(tuples),
        _returning_clause(query),
    )
    return statement, params


def _column_list(columns: str) -> sql.Composable:
    names = [c.strip() for c in columns.split(",") if c.strip()]
    if not names or names == ["*"]:
        return sql.SQL("*")
    return sql.SQL(", ").join(sql.Identifier(n) for n in names)


def _where_clause(filters: list[tuple[str, Any]]) -> tuple[sql.Composable, list[Any]]:
    if not filters:
        return sql.SQL(""), []
    conditions = sql.SQL(" AND ").join(
        sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
        for column, _ in filters
    )
    return sql.SQL(" WHERE {}").format(conditions), [_adapt(v) for _, v in filters]


def _order_clause(ordering: list[tuple[str, bool]]) -> sql.Composable:
    if not ordering:
        return sql.SQL("")
    terms = sql.SQL(", ").join(
        sql.SQL("{} DESC" if desc else "{} ASC").format(sql.Identifier(column))
        for column, desc in ordering
    )
    return sql.SQL(" ORDER BY {}").format(terms)


def _returning_clause(query: TableQuery) -> sql.Composable:
    if not query.returning:
        return sql.SQL("")
    return sql.SQL(" RETURNING {}").format(_column_list(query.columns))


def _adapt(value: Any) -> Any:
    """Nested objects and arrays are stored as JSON (jsonb columns)."""
    if isinstance(value, (dict, list)):
        return Json(value)
    return value
