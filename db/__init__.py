"""
db/ - Database Layer
====================
The database client contract (table-scoped select/insert/update/delete
returning a ``(data, error)`` pair) and its two backends: the hosted
Supabase REST client and a direct PostgreSQL connection pool.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""
