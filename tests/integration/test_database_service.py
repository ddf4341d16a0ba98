"""
Integration Tests for DatabaseService
=====================================

Purpose
-------
Test engine lifecycle, sessions and transactions against real PostgreSQL
using testcontainers.

Test Coverage
-------------
- Connection, schema creation and health check
- Transaction commit and rollback
- Constraint enforcement on progression tables
- Behaviour before initialization
"""

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from questboard.core.database.service import (
    DatabaseNotInitializedError,
    DatabaseService,
)
from questboard.database.models import RewardClaim, UserStats


# ============================================================================
# DATABASE CONNECTION TESTS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDatabaseConnection:
    """Test database connection and basic operations."""

    async def test_database_connection(self, database):
        # Act
        async with database.get_session() as session:
            result = await session.execute(text("SELECT 1 as value"))
            row = result.fetchone()

        # Assert
        assert row is not None
        assert row.value == 1

    async def test_database_schema_created(self, database):
        # Act
        async with database.get_session() as session:
            result = await session.execute(
                text(
                    """
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = 'public'
                    """
                )
            )
            tables = {row.table_name for row in result.fetchall()}

        # Assert
        assert {"user_stats", "reward_claims"} <= tables

    async def test_health_check(self, database):
        assert await database.health_check() is True

    async def test_initialize_is_idempotent(self, database, database_url):
        engine = database.get_engine()

        await database.initialize(database_url)

        assert database.get_engine() is engine


# ============================================================================
# TRANSACTION TESTS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDatabaseTransactions:
    """Test transaction commit and rollback."""

    async def test_transaction_commit(self, database):
        # Act
        async with database.get_transaction() as session:
            session.add(UserStats(user_id="commit-user", unlocked_zones=["zone-1"]))

        # Assert
        async with database.get_session() as session:
            row = await session.scalar(
                select(UserStats).where(UserStats.user_id == "commit-user")
            )
        assert row is not None
        assert row.version == 1
        assert row.category_stats == {}
        assert row.created_at is not None

    async def test_transaction_rollback_on_error(self, database):
        # Act
        with pytest.raises(RuntimeError):
            async with database.get_transaction() as session:
                session.add(UserStats(user_id="rollback-user", unlocked_zones=["zone-1"]))
                await session.flush()
                raise RuntimeError("abort")

        # Assert
        async with database.get_session() as session:
            row = await session.scalar(
                select(UserStats).where(UserStats.user_id == "rollback-user")
            )
        assert row is None


# ============================================================================
# ERROR HANDLING TESTS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDatabaseErrorHandling:
    """Test database error handling."""

    async def test_duplicate_user_stats_violates_unique_constraint(self, database):
        with pytest.raises(IntegrityError):
            async with database.get_transaction() as session:
                session.add(UserStats(user_id="dup", unlocked_zones=["zone-1"]))
                session.add(UserStats(user_id="dup", unlocked_zones=["zone-1"]))

    async def test_duplicate_claim_violates_primary_key(self, database):
        # Arrange
        async with database.get_transaction() as session:
            session.add(RewardClaim(user_id="u", claim_type="milestone", claim_key="xp-100"))

        # Act & Assert
        with pytest.raises(IntegrityError):
            async with database.get_transaction() as session:
                session.add(RewardClaim(user_id="u", claim_type="milestone", claim_key="xp-100"))


@pytest.mark.integration
class TestUninitialized:
    async def test_session_before_initialize_raises(self):
        await DatabaseService.shutdown()

        with pytest.raises(DatabaseNotInitializedError):
            async with DatabaseService.get_session():
                pass

    async def test_health_check_before_initialize_is_false(self):
        await DatabaseService.shutdown()

        assert await DatabaseService.health_check() is False
