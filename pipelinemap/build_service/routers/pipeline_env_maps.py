"""Pipeline environment map endpoints.

Thin HTTP adapter -- delegates to the workflow and translates domain
exceptions into HTTP errors.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, Request, Response, status
from loguru import logger

from pipelinemap.build_service.deps import BearerToken, OptionalToken, Workflow
from pipelinemap.build_service.errors import (
    BadParameterError,
    BuildServiceError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
)
from pipelinemap.build_service.models.api import (
    PipelineEnvMapData,
    PipelineEnvMapList,
    PipelineEnvMapPayload,
    PipelineEnvMapSingle,
)

router = APIRouter(tags=["pipeline-environment-maps"])

_STATUS_BY_ERROR: list[tuple[type[BuildServiceError], int]] = [
    (BadParameterError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
]


def _to_http(exc: BuildServiceError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code, detail=str(exc))
    logger.error("Internal error: {}", exc)
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error.")


@router.post(
    "/spaces/{space_id}/pipeline-environment-maps",
    response_model=PipelineEnvMapSingle,
    status_code=status.HTTP_201_CREATED,
)
async def create_pipeline_env_map(
    space_id: uuid.UUID,
    body: PipelineEnvMapPayload,
    request: Request,
    response: Response,
    workflow: Workflow,
    token: BearerToken,
) -> PipelineEnvMapSingle:
    """Create a pipeline environment map in a space.

    ``data.spaceID`` is required and must name the space in the path.
    """
    try:
        data = body.require_data()
        if data.space_id != space_id:
            raise BadParameterError("data.spaceId", data.space_id, expected=str(space_id))
        row = await workflow.create(space_id, data.name, data.environment_ids(), token=token)
    except BuildServiceError as exc:
        raise _to_http(exc) from None

    response.headers["Location"] = str(request.url_for("show_pipeline_env_map", map_id=row.id))
    return PipelineEnvMapSingle(data=PipelineEnvMapData.from_row(row))


@router.get("/spaces/{space_id}/pipeline-environment-maps", response_model=PipelineEnvMapList)
async def list_pipeline_env_maps(space_id: uuid.UUID, workflow: Workflow, token: OptionalToken) -> PipelineEnvMapList:
    """List the pipeline environment maps of a space."""
    try:
        rows = await workflow.list(space_id, token=token)
    except BuildServiceError as exc:
        raise _to_http(exc) from None
    return PipelineEnvMapList.from_rows(rows)


@router.get("/pipeline-environment-maps/{map_id}", response_model=PipelineEnvMapSingle)
async def show_pipeline_env_map(map_id: uuid.UUID, workflow: Workflow) -> PipelineEnvMapSingle:
    """Get a single pipeline environment map by ID."""
    try:
        row = await workflow.show(map_id)
    except BuildServiceError as exc:
        raise _to_http(exc) from None
    return PipelineEnvMapSingle(data=PipelineEnvMapData.from_row(row))


@router.patch("/pipeline-environment-maps/{map_id}", response_model=PipelineEnvMapSingle)
async def update_pipeline_env_map(
    map_id: uuid.UUID,
    body: PipelineEnvMapPayload,
    workflow: Workflow,
    token: BearerToken,
) -> PipelineEnvMapSingle:
    """Rename a pipeline environment map and replace its environments."""
    try:
        data = body.require_data()
        row = await workflow.update(
            map_id,
            space_id=data.space_id,
            name=data.name,
            environment_ids=data.environment_ids(),
            token=token,
        )
    except BuildServiceError as exc:
        raise _to_http(exc) from None
    return PipelineEnvMapSingle(data=PipelineEnvMapData.from_row(row))
