"""Clients for the remote space and environment services."""

from pipelinemap.build_service.remote.base import Environment, EnvironmentService, Space, SpaceService
from pipelinemap.build_service.remote.env import EnvironmentServiceClient
from pipelinemap.build_service.remote.wit import WITSpaceService

__all__ = [
    "Environment",
    "EnvironmentService",
    "EnvironmentServiceClient",
    "Space",
    "SpaceService",
    "WITSpaceService",
]
