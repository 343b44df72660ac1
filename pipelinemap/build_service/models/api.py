"""API request / response schemas for the pipeline environment map endpoints.

These thin schemas sit between HTTP and the ORM layer.  Payloads and
responses follow the JSON:API-style envelope the platform's other services
use: a top-level ``data`` member carrying camel-cased attributes.

- **Payload** schemas accept loosely shaped input; emptiness checks are the
  workflow's job so they report ``BadParameterError`` consistently.
- **Response** schemas are built from ORM rows via ``from_row``.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field

from pipelinemap.build_service.db.tables import PipelineEnvMap
from pipelinemap.build_service.errors import BadParameterError


class EnvironmentAttributes(BaseModel):
    """Reference to one environment of the environment service."""

    model_config = ConfigDict(populate_by_name=True)

    env_uuid: uuid.UUID | None = Field(default=None, alias="envUUID", description="UUID of the environment.")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PipelineEnvMapAttributes(BaseModel):
    """Attributes accepted on create and update."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    space_id: uuid.UUID | None = Field(default=None, alias="spaceID")
    environments: list[EnvironmentAttributes] | None = None

    def environment_ids(self) -> list[uuid.UUID] | None:
        """Requested environment UUIDs; ``None`` when the list is absent.

        Raises ``BadParameterError`` if any entry has no ``envUUID``.
        """
        if self.environments is None:
            return None
        ids = []
        for env in self.environments:
            if env.env_uuid is None:
                raise BadParameterError("data.environments.envUUID", None, expected="not nil")
            ids.append(env.env_uuid)
        return ids


class PipelineEnvMapPayload(BaseModel):
    """Request body: ``{"data": {...}}``."""

    data: PipelineEnvMapAttributes | None = None

    def require_data(self) -> PipelineEnvMapAttributes:
        if self.data is None:
            raise BadParameterError("data", None, expected="not nil")
        return self.data


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PipelineEnvMapData(BaseModel):
    """Serialized pipeline environment map."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    name: str
    space_id: uuid.UUID = Field(alias="spaceID")
    environments: list[EnvironmentAttributes]

    @classmethod
    def from_row(cls, row: PipelineEnvMap) -> PipelineEnvMapData:
        return cls(
            id=row.id,
            name=row.name,
            space_id=row.space_id,
            environments=[EnvironmentAttributes(env_uuid=env_id) for env_id in row.environment_ids],
        )


class PipelineEnvMapSingle(BaseModel):
    data: PipelineEnvMapData


class ListMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_count: int = Field(alias="totalCount")


class PipelineEnvMapList(BaseModel):
    data: list[PipelineEnvMapData]
    meta: ListMeta

    @classmethod
    def from_rows(cls, rows: list[PipelineEnvMap]) -> PipelineEnvMapList:
        return cls(
            data=[PipelineEnvMapData.from_row(row) for row in rows],
            meta=ListMeta(total_count=len(rows)),
        )
