"""Pipeline environment map workflow.

Request-level use cases combining remote validation with a transactional
write.  Remote validation (space exists, every requested environment exists
in that space) always completes before a transaction is opened, so an
invalid request never touches the database.

The workflow is a process-level singleton built in the app lifespan from
the transaction coordinator and the two remote lookup clients.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING

from loguru import logger

from pipelinemap.build_service.errors import BadParameterError, NotFoundError

if TYPE_CHECKING:
    from pipelinemap.build_service.db.tables import PipelineEnvMap
    from pipelinemap.build_service.db.transaction import TransactionCoordinator, UnitOfWork
    from pipelinemap.build_service.remote.base import EnvironmentService, SpaceService


def _validate_input(name: str | None, environment_ids: Iterable[uuid.UUID] | None) -> list[uuid.UUID]:
    """Reject empty names and empty environment lists; collapse duplicate IDs."""
    if not name:
        raise BadParameterError("data.name", name, expected="not empty")
    unique_ids = list(dict.fromkeys(environment_ids or []))
    if not unique_ids:
        raise BadParameterError("data.environments", environment_ids, expected="not empty")
    return unique_ids


class PipelineEnvMapWorkflow:
    """Create / update / list / show for pipeline environment maps."""

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        spaces: SpaceService,
        environments: EnvironmentService,
    ) -> None:
        self._coordinator = coordinator
        self._spaces = spaces
        self._environments = environments

    # -- Create ----------------------------------------------------------------

    async def create(
        self,
        space_id: uuid.UUID,
        name: str,
        environment_ids: Iterable[uuid.UUID] | None,
        *,
        token: str | None = None,
    ) -> PipelineEnvMap:
        """Create a map after checking the space and every environment exist.

        Raises ``ConflictError`` when ``name`` is already used in the space.
        """
        env_ids = _validate_input(name, environment_ids)
        await self._check_space_exists(space_id, token)
        await self._check_environments_exist(space_id, env_ids, token)

        async def _create(uow: UnitOfWork) -> PipelineEnvMap:
            return await uow.pipeline_env_maps.create(space_id, name, env_ids)

        return await self._coordinator.run(_create)

    # -- Update ----------------------------------------------------------------

    async def update(
        self,
        map_id: uuid.UUID,
        *,
        space_id: uuid.UUID | None,
        name: str,
        environment_ids: Iterable[uuid.UUID] | None,
        token: str | None = None,
    ) -> PipelineEnvMap:
        """Overwrite name and environment set of an existing map.

        Load and save run in the same transaction.  Name clashes are reported
        as ``BadParameterError``, unlike ``create`` which reports a conflict.
        """
        if space_id is None:
            raise BadParameterError("data.spaceId", None, expected="not nil")
        env_ids = _validate_input(name, environment_ids)
        await self._check_space_exists(space_id, token)
        await self._check_environments_exist(space_id, env_ids, token)

        async def _update(uow: UnitOfWork) -> PipelineEnvMap:
            repo = uow.pipeline_env_maps
            existing = await repo.load(map_id)
            if existing.space_id != space_id:
                raise BadParameterError("data.spaceId", space_id, expected=str(existing.space_id))
            return await repo.save(map_id, name=name, environment_ids=env_ids)

        return await self._coordinator.run(_update)

    # -- Read ------------------------------------------------------------------

    async def list(self, space_id: uuid.UUID, *, token: str | None = None) -> list[PipelineEnvMap]:
        """All maps of an existing space."""
        await self._check_space_exists(space_id, token)
        async with self._coordinator.unscoped() as uow:
            return await uow.pipeline_env_maps.list(space_id)

    async def show(self, map_id: uuid.UUID) -> PipelineEnvMap:
        """Load one map by ID; the space is not re-checked."""
        async with self._coordinator.unscoped() as uow:
            return await uow.pipeline_env_maps.load(map_id)

    # -- Remote validation -----------------------------------------------------

    async def _check_space_exists(self, space_id: uuid.UUID, token: str | None) -> None:
        try:
            await self._spaces.get_space(space_id, token=token)
        except Exception:
            logger.warning("Failed to get space {} from the space service", space_id)
            raise

    async def _check_environments_exist(
        self,
        space_id: uuid.UUID,
        environment_ids: list[uuid.UUID],
        token: str | None,
    ) -> None:
        try:
            known = await self._environments.list_environments(space_id, token=token)
        except Exception:
            logger.warning("Failed to get environment list for space {} from the environment service", space_id)
            raise

        known_ids = {env.id for env in known}
        for env_id in environment_ids:
            if env_id not in known_ids:
                raise NotFoundError("environment", env_id)
