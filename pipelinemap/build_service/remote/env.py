"""Environment lookup against the environment service."""

from __future__ import annotations

import uuid

from pipelinemap.build_service.errors import RemoteServiceError
from pipelinemap.build_service.remote._http import JSONAPIClient
from pipelinemap.build_service.remote.base import Environment


class EnvironmentServiceClient(JSONAPIClient):
    """``GET /api/spaces/{space_id}/environments`` on the environment service."""

    service_name = "ENV Service"

    async def list_environments(self, space_id: uuid.UUID, *, token: str | None = None) -> list[Environment]:
        document = await self._get_document(f"/api/spaces/{space_id}/environments", space_id=space_id, token=token)
        try:
            return [
                Environment(
                    id=uuid.UUID(item["id"]),
                    name=(item.get("attributes") or {}).get("name") or "",
                )
                for item in document.get("data") or []
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RemoteServiceError(self.service_name, f"malformed environment list: {exc!r}") from exc
