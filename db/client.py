"""
db/client.py
------------
The database client contract shared by every backend.

A query is built fluently on a table and executed once:

    data, error = db.table("characters").update(patch).eq("id", "42").select().execute()

`execute()` never raises for failures reported by the store; it returns a
QueryResult whose `error` carries the store's message instead.
"""

from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional


@dataclass(frozen=True)
class DatabaseError:
    """
    A failure reported by the database backend.

    Attributes:
        message: Human-readable message, passed to API clients verbatim.
        code: Backend error code (SQLSTATE or PostgREST code), if any.
        details: Extra detail text from the backend, if any.
        hint: Remediation hint from the backend, if any.
    """
    message: str
    code: Optional[str] = None
    details: Optional[str] = None
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class QueryResult(NamedTuple):
    """The (data, error) pair returned by every executed query."""
    data: Any
    error: Optional[DatabaseError]

    @classmethod
    def ok(cls, data: Any) -> "QueryResult":
        return cls(data, None)

    @classmethod
    def fail(cls, message: str, **extra) -> "QueryResult":
        return cls(None, DatabaseError(message, **extra))


@dataclass
class TableQuery:
    """
    A single table-scoped operation under construction.

    Backends read the recorded fields in `DatabaseClient.execute()`.
    """
    client: "DatabaseClient"
    table: str
    schema: Optional[str] = None
    action: Optional[str] = None  # 'select' | 'insert' | 'update' | 'delete'
    columns: str = "*"
    payload: Any = None
    returning: bool = False
    filters: list[tuple[str, Any]] = field(default_factory=list)
    ordering: list[tuple[str, bool]] = field(default_factory=list)

    # ── Operations ────────────────────────────────────────

    def select(self, columns: str = "*") -> "TableQuery":
        """Read rows, or ask a pending mutation to return the affected rows."""
        if self.action is None:
            self.action = "select"
        else:
            self.returning = True
        self.columns = columns
        return self

    def insert(self, rows: Any) -> "TableQuery":
        self._set_action("insert")
        self.payload = rows
        return self

    def update(self, patch: Any) -> "TableQuery":
        self._set_action("update")
        self.payload = patch
        return self

    def delete(self) -> "TableQuery":
        self._set_action("delete")
        return self

    # ── Modifiers ─────────────────────────────────────────

    def eq(self, column: str, value: Any) -> "TableQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "TableQuery":
        self.ordering.append((column, desc))
        return self

    def execute(self) -> QueryResult:
        if self.action is None:
            raise ValueError(f"No operation set on query for table '{self.table}'")
        return self.client.execute(self)

    def _set_action(self, action: str) -> None:
        if self.action is not None:
            raise ValueError(
                f"Query on '{self.table}' already has operation '{self.action}'"
            )
        self.action = action


class DatabaseClient:
    """Base class for database backends."""

    def table(self, name: str, schema: Optional[str] = None) -> TableQuery:
        """Start a query on `name` (optionally inside `schema`)."""
        return TableQuery(client=self, table=name, schema=schema)

    def execute(self, query: TableQuery) -> QueryResult:
        """Run `query` in one round trip. Implemented by each backend."""
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources. No-op by default."""
