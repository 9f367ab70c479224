"""
repositories/resource_repo.py
-----------------------------
Data access layer for the CRUD resources.
Each method issues exactly one database operation and returns the
client's (data, error) pair untouched.
"""

from typing import Any

from db.client import DatabaseClient, QueryResult
from models.resource import Record, Resource


class ResourceRepository:
    """Table-scoped CRUD operations for one resource."""

    def __init__(self, db: DatabaseClient, resource: Resource):
        self.db = db
        self.resource = resource

    # ── READ ──────────────────────────────────────────────

    def list_all(self) -> QueryResult:
        """Fetch every row, ordered by the resource's `order_by` columns."""
        query = self.db.table(self.resource.table).select("*")
        for column in self.resource.order_by:
            query = query.order(column)
        return query.execute()

    # ── CREATE ────────────────────────────────────────────

    def create(self, record: Record | None) -> QueryResult:
        """
        Insert one row and return it as stored.

        `record` is forwarded as-is, including None; rejecting it is up to
        the database.
        """
        return self.db.table(self.resource.table).insert([record]).select().execute()

    # ── UPDATE ────────────────────────────────────────────

    def update(self, record_id: str, patch: Any) -> QueryResult:
        """Apply `patch` to the row with this id and return the updated row."""
        return (
            self.db.table(self.resource.table)
            .update(patch)
            .eq(self.resource.id_column, record_id)
            .select()
            .execute()
        )

    # ── DELETE ────────────────────────────────────────────

    def delete(self, record_id: str) -> QueryResult:
        """Delete the row with this id."""
        return (
            self.db.table(self.resource.table)
            .delete()
            .eq(self.resource.id_column, record_id)
            .execute()
        )
