"""
db/supabase_client.py
---------------------
Hosted backend for the database client contract, backed by supabase-py.

The service-role key bypasses row-level security; it must only ever be
used server-side.
"""

import httpx
from postgrest.exceptions import APIError
from postgrest.types import ReturnMethod
from supabase import Client, create_client

from db.client import DatabaseClient, QueryResult, TableQuery
from utils.logger import get_logger

logger = get_logger(__name__)


def _check_insert_payload(payload) -> None:
    rows = payload if isinstance(payload, list) else [payload]
    if not all(isinstance(row, dict) for row in rows):
        raise ValueError("insert payload must be an object or a list of objects")


class SupabaseDatabase(DatabaseClient):
    """Translates table queries into PostgREST requests."""

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def from_credentials(cls, url: str, service_role_key: str) -> "SupabaseDatabase":
        """Build a backend from the project URL and service-role key."""
        return cls(create_client(url, service_role_key))

    def execute(self, query: TableQuery) -> QueryResult:
        try:
            builder = self._build(query)
        except ValueError as e:
            logger.error(f"{query.action} on '{query.table}' rejected: {e}")
            return QueryResult.fail(str(e))

        try:
            response = builder.execute()
        except APIError as e:
            logger.error(f"{query.action} on '{query.table}' failed: {e.message}")
            return QueryResult.fail(
                e.message or str(e), code=e.code, details=e.details, hint=e.hint
            )
        except httpx.HTTPError as e:
            logger.error(f"{query.action} on '{query.table}' could not reach Supabase: {e}")
            return QueryResult.fail(str(e) or type(e).__name__)
        return QueryResult.ok(response.data)

    def _build(self, query: TableQuery):
        """
        Translate `query` into a ready-to-execute postgrest builder.

        Every request is sent exactly once: postgrest's automatic retry is
        turned off so a request that timed out is never replayed.

        Raises:
            ValueError: If the payload cannot be expressed as a request.
        """
        if query.schema:
            source = self._client.schema(query.schema).from_(query.table)
        else:
            source = self._client.table(query.table)

        returning = ReturnMethod.representation if query.returning else ReturnMethod.minimal

        if query.action == "select":
            builder = source.select(query.columns)
        elif query.action == "insert":
            # postgrest reads the column list off every row before sending
            _check_insert_payload(query.payload)
            # insert() cannot be filtered
            return source.insert(query.payload, returning=returning).retry(False)
        elif query.action == "update":
            builder = source.update(query.payload, returning=returning)
        elif query.action == "delete":
            builder = source.delete(returning=returning)
        else:
            raise ValueError(f"Unsupported operation: {query.action}")

        for column, value in query.filters:
            builder = builder.eq(column, value)
        for column, desc in query.ordering:
            builder = builder.order(column, desc=desc)
        return builder.retry(False)
