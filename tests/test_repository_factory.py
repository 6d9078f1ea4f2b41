"""Tests for the event store factory."""

from unittest.mock import patch

import pytest
from pydantic import SecretStr

from src.adapters.repository_factory import create_repository
from src.adapters.sqlite_repository import SQLiteEventStore
from src.config.settings import Settings
from src.domain.exceptions import ConfigurationError


def test_sqlite_selected(settings: Settings) -> None:
    store = create_repository(settings)
    try:
        assert isinstance(store, SQLiteEventStore)
        assert store.get_last_processed_message_id("any") == 0
    finally:
        store.close()


def test_postgres_requires_password(settings: Settings) -> None:
    configured = settings.model_copy(
        update={"database_type": "postgres", "postgres_password": None}
    )

    with pytest.raises(ConfigurationError, match="POSTGRES_PASSWORD"):
        create_repository(configured)


def test_postgres_store_built_from_settings(settings: Settings) -> None:
    configured = settings.model_copy(
        update={
            "database_type": "postgres",
            "postgres_password": SecretStr("secret"),
            "postgres_host": "db.internal",
        }
    )

    with patch("src.adapters.repository_factory.PostgresEventStore") as store_cls:
        create_repository(configured)

    kwargs = store_cls.call_args.kwargs
    assert kwargs["host"] == "db.internal"
    assert kwargs["password"] == "secret"
    assert kwargs["settings"] is configured


def test_unsupported_type(settings: Settings) -> None:
    configured = settings.model_copy(update={"database_type": "mysql"})

    with pytest.raises(ConfigurationError, match="Unsupported database type"):
        create_repository(configured)
