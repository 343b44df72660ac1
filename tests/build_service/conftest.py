"""Shared fixtures for build-service tests.

Provides in-memory doubles for the two remote lookup services, a
transaction coordinator and workflow wired to the savepoint-isolated
database, and an HTTP client for the app.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pipelinemap.build_service.app import app
from pipelinemap.build_service.db.transaction import TransactionCoordinator
from pipelinemap.build_service.deps import get_workflow
from pipelinemap.build_service.errors import NotFoundError
from pipelinemap.build_service.remote.base import Environment, Space
from pipelinemap.build_service.workflow import PipelineEnvMapWorkflow

# ---------------------------------------------------------------------------
# Remote service doubles
# ---------------------------------------------------------------------------


class FakeSpaceService:
    """Space service double: knows the spaces registered with ``add``."""

    def __init__(self) -> None:
        self.spaces: dict[uuid.UUID, Space] = {}
        self.calls: list[tuple[uuid.UUID, str | None]] = []
        self.error: Exception | None = None

    def add(self, name: str = "space") -> uuid.UUID:
        space_id = uuid.uuid4()
        self.spaces[space_id] = Space(
            id=space_id, owner_id=uuid.uuid4(), name=name, description=f"Description of {name}"
        )
        return space_id

    async def get_space(self, space_id: uuid.UUID, *, token: str | None = None) -> Space:
        self.calls.append((space_id, token))
        if self.error is not None:
            raise self.error
        try:
            return self.spaces[space_id]
        except KeyError:
            raise NotFoundError("space", space_id) from None


class FakeEnvironmentService:
    """Environment service double: returns the environments registered per space."""

    def __init__(self) -> None:
        self.environments: dict[uuid.UUID, list[Environment]] = {}
        self.calls: list[tuple[uuid.UUID, str | None]] = []
        self.error: Exception | None = None

    def add(self, space_id: uuid.UUID, *names: str) -> list[uuid.UUID]:
        envs = [Environment(id=uuid.uuid4(), name=name) for name in names]
        self.environments.setdefault(space_id, []).extend(envs)
        return [env.id for env in envs]

    async def list_environments(self, space_id: uuid.UUID, *, token: str | None = None) -> list[Environment]:
        self.calls.append((space_id, token))
        if self.error is not None:
            raise self.error
        return list(self.environments.get(space_id, []))


@pytest.fixture
def spaces() -> FakeSpaceService:
    return FakeSpaceService()


@pytest.fixture
def environments() -> FakeEnvironmentService:
    return FakeEnvironmentService()


# ---------------------------------------------------------------------------
# Database-backed workflow (integration)
# ---------------------------------------------------------------------------


@pytest.fixture
def coordinator(session_factory: async_sessionmaker[AsyncSession]) -> TransactionCoordinator:
    return TransactionCoordinator(session_factory)


@pytest.fixture
def workflow(
    coordinator: TransactionCoordinator,
    spaces: FakeSpaceService,
    environments: FakeEnvironmentService,
) -> PipelineEnvMapWorkflow:
    return PipelineEnvMapWorkflow(coordinator, spaces=spaces, environments=environments)


@pytest.fixture
async def client(workflow: PipelineEnvMapWorkflow) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with the test workflow.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set and ``get_workflow`` is overridden.
    """
    app.dependency_overrides[get_workflow] = lambda: workflow
    app.state.db_engine = None
    app.state.workflow = workflow

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
