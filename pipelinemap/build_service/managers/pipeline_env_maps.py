"""Pipeline environment map store.

Encapsulates all data access for pipeline environment maps and their child
environment rows: create, load, list and save.  The repository is bound to
one ``AsyncSession``; it flushes but never commits -- the transaction
coordinator owns the transaction.

Storage errors are classified by SQLSTATE:

- ``create``: unique violation -> ``ConflictError``; empty name ->
  ``BadParameterError``.
- ``save``: unique violation and empty name -> ``BadParameterError``.

Anything else is logged and raised as ``InternalError``.  Every operation is
timed into ``store_operation_duration_histogram``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pipelinemap.build_service.db.tables import PipelineEnvironment, PipelineEnvMap
from pipelinemap.build_service.errors import BadParameterError, ConflictError, InternalError, NotFoundError
from pipelinemap.build_service.metrics import store_operation_duration_histogram

ENTITY = "pipeline-environment-map"

# PostgreSQL SQLSTATE codes (class 23 -- integrity constraint violation).
UNIQUE_VIOLATION = "23505"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"


def _sqlstate(exc: SQLAlchemyError) -> str | None:
    """Return the SQLSTATE of the driver error wrapped by *exc*, if any."""
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _environment_rows(environment_ids: Iterable[uuid.UUID]) -> list[PipelineEnvironment]:
    return [PipelineEnvironment(environment_id=env_id) for env_id in environment_ids]


class PipelineEnvMapRepository:
    """Create / load / list / save for pipeline environment maps."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(
        self,
        space_id: uuid.UUID,
        name: str,
        environment_ids: Iterable[uuid.UUID],
    ) -> PipelineEnvMap:
        """Insert a map and its environment rows.

        Raises ``ConflictError`` if ``(name, space_id)`` already exists and
        ``BadParameterError`` if the name is empty.
        """
        with store_operation_duration_histogram.labels("create").time():
            row = PipelineEnvMap(
                name=name,
                space_id=space_id,
                environments=_environment_rows(environment_ids),
            )
            self._db.add(row)
            try:
                await self._db.flush()
            except IntegrityError as exc:
                state = _sqlstate(exc)
                if state == UNIQUE_VIOLATION:
                    msg = f"pipeline_environment_map_name {name} with spaceID {space_id} already exists"
                    raise ConflictError(msg) from exc
                if state in (NOT_NULL_VIOLATION, CHECK_VIOLATION):
                    raise BadParameterError("name", name, expected="not empty") from exc
                logger.exception("Unable to create pipeline environment map (space={}, name={})", space_id, name)
                raise InternalError(str(exc.orig)) from exc
            except SQLAlchemyError as exc:
                logger.exception("Unable to create pipeline environment map (space={}, name={})", space_id, name)
                raise InternalError(str(exc)) from exc

        logger.info("Pipeline environment map created: {} (space={}, name={})", row.id, space_id, name)
        return row

    async def load(self, map_id: uuid.UUID) -> PipelineEnvMap:
        """Fetch a map with its environments.  Raises ``NotFoundError`` if missing."""
        stmt = (
            select(PipelineEnvMap)
            .where(PipelineEnvMap.id == map_id, PipelineEnvMap.deleted_at.is_(None))
            .options(selectinload(PipelineEnvMap.environments))
        )
        with store_operation_duration_histogram.labels("load").time():
            try:
                result = await self._db.execute(stmt)
            except SQLAlchemyError as exc:
                logger.exception("Unable to load pipeline environment map {}", map_id)
                raise InternalError(str(exc)) from exc
            row = result.scalar_one_or_none()

        if row is None:
            raise NotFoundError(ENTITY, map_id)
        return row

    async def list(self, space_id: uuid.UUID) -> list[PipelineEnvMap]:
        """All live maps of a space, oldest first.  Empty list if none."""
        stmt = (
            select(PipelineEnvMap)
            .where(PipelineEnvMap.space_id == space_id, PipelineEnvMap.deleted_at.is_(None))
            .options(selectinload(PipelineEnvMap.environments))
            .order_by(PipelineEnvMap.created_at, PipelineEnvMap.id)
        )
        with store_operation_duration_histogram.labels("list").time():
            try:
                result = await self._db.execute(stmt)
            except SQLAlchemyError as exc:
                logger.exception("Unable to list pipeline environment maps of space {}", space_id)
                raise InternalError(str(exc)) from exc
            return list(result.scalars().all())

    async def save(
        self,
        map_id: uuid.UUID,
        *,
        name: str,
        environment_ids: Iterable[uuid.UUID],
    ) -> PipelineEnvMap:
        """Overwrite the name and replace the environment set of an existing map.

        Load and update are one read-modify-write on this session.  Raises
        ``NotFoundError`` if the map does not exist and ``BadParameterError``
        when the new name is empty or already taken in the space.
        """
        with store_operation_duration_histogram.labels("save").time():
            row = await self.load(map_id)

            row.name = name
            # delete-orphan cascade discards the previous rows.
            row.environments = _environment_rows(environment_ids)
            row.updated_at = func.now()
            try:
                await self._db.flush()
                await self._db.refresh(row)
            except IntegrityError as exc:
                state = _sqlstate(exc)
                if state in (NOT_NULL_VIOLATION, CHECK_VIOLATION):
                    raise BadParameterError("name", name, expected="not empty") from exc
                if state == UNIQUE_VIOLATION:
                    raise BadParameterError("name", name, expected="unique") from exc
                logger.exception("Unable to update pipeline environment map {}", map_id)
                raise InternalError(str(exc.orig)) from exc
            except SQLAlchemyError as exc:
                logger.exception("Unable to update pipeline environment map {}", map_id)
                raise InternalError(str(exc)) from exc

        logger.info("Pipeline environment map updated: {} (name={})", map_id, name)
        return row
