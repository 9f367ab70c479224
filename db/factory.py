"""
db/factory.py
-------------
Builds the database client selected by the DB_PROVIDER setting.
"""

import config
from db.client import DatabaseClient
from utils.logger import get_logger

logger = get_logger(__name__)

PROVIDERS = ("supabase", "postgres")


def create_db_client(provider: str | None = None) -> DatabaseClient:
    """
    Construct the configured database client.

    Args:
        provider: 'supabase' or 'postgres'; defaults to config.DB_PROVIDER.

    Raises:
        ValueError: If the provider is unknown.
    """
    provider = (provider or config.DB_PROVIDER).lower()

    if provider == "supabase":
        from db.supabase_client import SupabaseDatabase

        logger.info(f"Using Supabase backend at {config.SUPABASE_URL or '<unset>'}")
        return SupabaseDatabase.from_credentials(
            config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE
        )

    if provider == "postgres":
        from db.connection import ConnectionPool
        from db.postgres_client import PostgresDatabase

        pool = ConnectionPool(config.DATABASE_URL, config.DB_POOL_MIN, config.DB_POOL_MAX)
        pool.init()
        logger.info("Using direct PostgreSQL backend")
        return PostgresDatabase(pool)

    raise ValueError(f"Unknown DB_PROVIDER '{provider}'. Expected one of: {', '.join(PROVIDERS)}")
