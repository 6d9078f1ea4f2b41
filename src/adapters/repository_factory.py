"""Factory for creating event store instances."""

from typing import cast

from src.adapters.postgres_repository import PostgresEventStore
from src.adapters.sqlite_repository import SQLiteEventStore
from src.config.logging_config import get_logger
from src.config.settings import Settings
from src.domain.exceptions import ConfigurationError
from src.domain.protocols import EventStoreProtocol

logger = get_logger(__name__)


def create_repository(settings: Settings) -> EventStoreProtocol:
    """Create appropriate event store based on settings.

    Args:
        settings: Application settings

    Returns:
        Event store instance (SQLite or PostgreSQL)

    Raises:
        ConfigurationError: If database_type is unsupported or credentials are missing
        RepositoryError: On connection errors
    """
    if settings.database_type == "sqlite":
        logger.info("repository_sqlite_selected", path=settings.db_path)
        return cast(EventStoreProtocol, SQLiteEventStore(db_path=settings.db_path))

    elif settings.database_type == "postgres":
        # Validate that password is provided
        if not settings.postgres_password:
            raise ConfigurationError(
                "POSTGRES_PASSWORD environment variable must be set when using PostgreSQL"
            )

        logger.info(
            "repository_postgres_selected",
            host=settings.postgres_host,
            port=settings.postgres_port,
            database=settings.postgres_database,
            user=settings.postgres_user,
        )
        return cast(
            EventStoreProtocol,
            PostgresEventStore(
                host=settings.postgres_host,
                port=settings.postgres_port,
                database=settings.postgres_database,
                user=settings.postgres_user,
                password=settings.postgres_password.get_secret_value(),
                settings=settings,
            ),
        )

    else:
        raise ConfigurationError(
            f"Unsupported database type: {settings.database_type}. "
            f"Must be 'sqlite' or 'postgres'"
        )
