"""Integration tests for the workflow against PostgreSQL.

Remote services are the in-memory doubles from ``conftest.py``; storage is
the real container.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine

from pipelinemap.build_service.db.engine import create_session_factory
from pipelinemap.build_service.db.tables import PipelineEnvMap
from pipelinemap.build_service.db.transaction import TransactionCoordinator
from pipelinemap.build_service.errors import BadParameterError, ConflictError, NotFoundError
from pipelinemap.build_service.workflow import PipelineEnvMapWorkflow

pytestmark = pytest.mark.integration


async def test_create_conflict_then_list(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_id = spaces.add("space1")
    (env1,) = environments.add(space_id, "E1")

    created = await workflow.create(space_id, "stage", [env1], token="tok")
    assert created.environment_ids == [env1]

    with pytest.raises(ConflictError):
        await workflow.create(space_id, "stage", [env1], token="tok")

    rows = await workflow.list(space_id, token="tok")
    assert [(row.id, row.name) for row in rows] == [(created.id, "stage")]


async def test_same_name_in_other_space(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_a, space_b = spaces.add("a"), spaces.add("b")
    (env_a,) = environments.add(space_a, "E1")
    (env_b,) = environments.add(space_b, "E1")

    first = await workflow.create(space_a, "stage", [env_a])
    second = await workflow.create(space_b, "stage", [env_b])

    assert first.id != second.id


async def test_unknown_environment_leaves_no_row(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_id = spaces.add()
    (env1,) = environments.add(space_id, "E1")

    with pytest.raises(NotFoundError):
        await workflow.create(space_id, "stage", [env1, uuid.uuid4()])

    assert await workflow.list(space_id) == []


async def test_update_replaces_environments(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_id = spaces.add()
    env_a, env_b = environments.add(space_id, "A", "B")
    created = await workflow.create(space_id, "stage", [env_a])

    await workflow.update(created.id, space_id=space_id, name="stage", environment_ids=[env_b])

    shown = await workflow.show(created.id)
    assert shown.environment_ids == [env_b]


async def test_update_name_clash_changes_nothing(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_id = spaces.add()
    env_a, env_b = environments.add(space_id, "A", "B")
    await workflow.create(space_id, "stage", [env_a])
    prod = await workflow.create(space_id, "prod", [env_a])

    with pytest.raises(BadParameterError):
        await workflow.update(prod.id, space_id=space_id, name="stage", environment_ids=[env_b])

    shown = await workflow.show(prod.id)
    assert shown.name == "prod"
    assert shown.environment_ids == [env_a]


async def test_update_other_space_is_rejected(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_a, space_b = spaces.add("a"), spaces.add("b")
    (env_a,) = environments.add(space_a, "E1")
    (env_b,) = environments.add(space_b, "E1")
    created = await workflow.create(space_a, "stage", [env_a])

    with pytest.raises(BadParameterError):
        await workflow.update(created.id, space_id=space_b, name="stage", environment_ids=[env_b])

    assert (await workflow.show(created.id)).space_id == space_a


async def test_update_missing(workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_id = spaces.add()
    (env1,) = environments.add(space_id, "E1")

    with pytest.raises(NotFoundError):
        await workflow.update(uuid.uuid4(), space_id=space_id, name="stage", environment_ids=[env1])


async def test_show_missing(workflow: PipelineEnvMapWorkflow) -> None:
    with pytest.raises(NotFoundError):
        await workflow.show(uuid.uuid4())


async def test_list_unknown_space(workflow: PipelineEnvMapWorkflow) -> None:
    with pytest.raises(NotFoundError):
        await workflow.list(uuid.uuid4())


# ---------------------------------------------------------------------------
# Concurrency: real commits on separate connections
# ---------------------------------------------------------------------------


@pytest.fixture
async def committing_workflow(
    async_engine: AsyncEngine, spaces, environments
) -> AsyncIterator[PipelineEnvMapWorkflow]:
    """Workflow whose transactions really commit; rows are deleted afterwards."""
    coordinator = TransactionCoordinator(create_session_factory(async_engine))
    yield PipelineEnvMapWorkflow(coordinator, spaces=spaces, environments=environments)

    async with async_engine.begin() as conn:
        await conn.execute(delete(PipelineEnvMap).where(PipelineEnvMap.space_id.in_(list(spaces.spaces))))


async def test_concurrent_creates_same_name(committing_workflow: PipelineEnvMapWorkflow, spaces, environments) -> None:
    space_id = spaces.add()
    (env1,) = environments.add(space_id, "E1")

    results = await asyncio.gather(
        *(committing_workflow.create(space_id, "stage", [env1]) for _ in range(2)),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, BaseException)]
    assert len(errors) == 1
    assert isinstance(errors[0], ConflictError)
    assert len(await committing_workflow.list(space_id)) == 1
