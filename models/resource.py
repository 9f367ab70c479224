"""
models/resource.py
------------------
Definitions of the resources exposed over the CRUD API.

Rows themselves are plain mappings (`Record`). This layer does not
validate, default-fill or interpret them beyond the `id` used to target
updates and deletes; the database's own constraints are the only schema.
"""

from dataclasses import dataclass
from typing import Any

Record = dict[str, Any]


@dataclass(frozen=True)
class Resource:
    """
    Describes one resource kind and how it is named on the wire.

    Attributes:
        table: Database table holding the rows.
        path: Collection route, e.g. '/characters'.
        collection_key: Response key wrapping a list of rows.
        item_key: Response key wrapping a single row. Also the key under
            which POST bodies carry the new row.
        label: Capitalized name used in messages ('<label> deleted').
        order_by: Columns (ascending) used to order listings.
    """
    table: str
    path: str
    collection_key: str
    item_key: str
    label: str
    order_by: tuple[str, ...] = ()
    id_column: str = "id"

    @property
    def missing_id_message(self) -> str:
        return f"Missing {self.item_key} ID"

    @property
    def deleted_message(self) -> str:
        return f"{self.label} deleted"


CHARACTERS = Resource(
    table="characters",
    path="/characters",
    collection_key="characters",
    item_key="character",
    label="Character",
)

# The collection key is 'events', not 'timeline_events'; clients depend on it.
TIMELINE_EVENTS = Resource(
    table="timeline_events",
    path="/timeline-events",
    collection_key="events",
    item_key="event",
    label="Event",
    order_by=("era", "order_index"),
)

RESOURCES: tuple[Resource, ...] = (CHARACTERS, TIMELINE_EVENTS)
