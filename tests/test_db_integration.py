"""Integration smoke tests for the database fixtures.

Verifies the testcontainers + Alembic migration + savepoint rollback
pipeline works end-to-end.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from pipelinemap.build_service.db.tables import PipelineEnvMap

pytestmark = pytest.mark.integration

SPACE_ID = uuid.UUID("11111111-2222-4333-8444-555555555555")


async def test_alembic_migrations_applied(db_session: AsyncSession):
    """All tables from the initial migration should exist."""
    result = await db_session.execute(
        text("SELECT table_name FROM information_schema.tables WHERE table_schema = 'public' ORDER BY table_name")
    )
    tables = sorted(row[0] for row in result)
    assert "pipeline_env_maps" in tables
    assert "pipeline_environments" in tables
    assert "alembic_version" in tables


async def test_name_space_index_is_partial(db_session: AsyncSession):
    result = await db_session.execute(
        text("SELECT indexdef FROM pg_indexes WHERE indexname = 'uq_pipeline_env_maps_name_space_id'")
    )
    indexdef = result.scalar_one()
    assert "UNIQUE" in indexdef
    assert "deleted_at IS NULL" in indexdef


async def test_savepoint_rollback_isolation(db_session: AsyncSession):
    """Rows inserted in a test should not persist to the next test."""
    db_session.add(PipelineEnvMap(name="smoke", space_id=SPACE_ID))
    await db_session.commit()  # commits savepoint, not the real txn

    result = await db_session.execute(select(PipelineEnvMap).where(PipelineEnvMap.space_id == SPACE_ID))
    assert result.scalar_one().name == "smoke"


async def test_savepoint_rollback_clean_state(db_session: AsyncSession):
    """Previous test's data should have been rolled back."""
    result = await db_session.execute(select(PipelineEnvMap).where(PipelineEnvMap.space_id == SPACE_ID))
    row = result.scalar_one_or_none()
    assert row is None, "Savepoint rollback did not clean up previous test's data"
