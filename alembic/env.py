"""Alembic environment: PostgreSQL URL built from application settings."""

from urllib.parse import quote_plus

from sqlalchemy import create_engine, pool

from alembic import context
from src.config.settings import get_settings


def _database_url() -> str:
    settings = get_settings()
    password = (
        settings.postgres_password.get_secret_value()
        if settings.postgres_password
        else ""
    )
    return (
        f"postgresql+psycopg2://{quote_plus(settings.postgres_user)}:"
        f"{quote_plus(password)}@{settings.postgres_host}:{settings.postgres_port}/"
        f"{settings.postgres_database}"
    )


def run_migrations_offline() -> None:
    """Emit SQL without a database connection."""
    context.configure(
        url=_database_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against the configured database."""
    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
