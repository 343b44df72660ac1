"""Remote lookup service interfaces.

The space service (WIT) and the environment service are owned by other
teams; this service only asks them whether a space exists and which
environments it has.  The interfaces are async protocols so the workflow
can be exercised against in-memory doubles.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Space:
    id: uuid.UUID
    owner_id: uuid.UUID | None
    name: str
    description: str = ""


@dataclass(frozen=True)
class Environment:
    id: uuid.UUID
    name: str


@runtime_checkable
class SpaceService(Protocol):
    """Resolves spaces by ID."""

    async def get_space(self, space_id: uuid.UUID, *, token: str | None = None) -> Space:
        """Return the space.

        Raises ``UnauthorizedError`` on 401, ``NotFoundError`` when the space
        does not exist and ``RemoteServiceError`` for any other failure.
        """
        ...


@runtime_checkable
class EnvironmentService(Protocol):
    """Lists the environments defined for a space."""

    async def list_environments(self, space_id: uuid.UUID, *, token: str | None = None) -> list[Environment]:
        """Return every environment of the space (possibly empty).

        Same error contract as :meth:`SpaceService.get_space`.
        """
        ...
