"""Data models for the build service."""

from pipelinemap.build_service.models.api import (
    EnvironmentAttributes,
    ListMeta,
    PipelineEnvMapAttributes,
    PipelineEnvMapData,
    PipelineEnvMapList,
    PipelineEnvMapPayload,
    PipelineEnvMapSingle,
)
from pipelinemap.build_service.models.enums import IsolationLevel

__all__ = [
    # API schemas
    "EnvironmentAttributes",
    # Enums
    "IsolationLevel",
    "ListMeta",
    "PipelineEnvMapAttributes",
    "PipelineEnvMapData",
    "PipelineEnvMapList",
    "PipelineEnvMapPayload",
    "PipelineEnvMapSingle",
]
