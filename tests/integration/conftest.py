"""
PostgreSQL fixtures for integration tests.

One testcontainer per session; ``DatabaseService`` is initialized against it
for each test and every table is truncated afterwards, so tests start from a
clean schema. The engine uses NullPool under ``TESTING`` which keeps
connections off any particular event loop.

Docker is required. Without it the integration tests are skipped.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from sqlalchemy import text
from testcontainers.postgres import PostgresContainer

from questboard.core.database.service import DatabaseService
from questboard.database.models import Base
from questboard.modules.progression.sql_store import SqlProgressionStore

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")

    logger.info("PostgreSQL testcontainer started: %s", container.get_connection_url())

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def database_url(postgres_container: PostgresContainer) -> str:
    return postgres_container.get_connection_url()


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncGenerator[type[DatabaseService], None]:
    """
    Initialized DatabaseService with the full schema.

    Scope: function (tables are truncated after each test)
    """
    await DatabaseService.initialize(database_url)
    async with DatabaseService.get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield DatabaseService

    tables = ", ".join(table.name for table in Base.metadata.sorted_tables)
    async with DatabaseService.get_engine().begin() as conn:
        await conn.execute(text(f"TRUNCATE {tables} RESTART IDENTITY CASCADE"))
    await DatabaseService.shutdown()


@pytest.fixture
def sql_store(database) -> SqlProgressionStore:
    return SqlProgressionStore()
