"""Space lookup against the WIT service."""

from __future__ import annotations

import uuid

from pipelinemap.build_service.errors import RemoteServiceError
from pipelinemap.build_service.remote._http import JSONAPIClient
from pipelinemap.build_service.remote.base import Space


class WITSpaceService(JSONAPIClient):
    """``GET /api/spaces/{space_id}`` on the WIT service."""

    service_name = "WIT"

    async def get_space(self, space_id: uuid.UUID, *, token: str | None = None) -> Space:
        document = await self._get_document(f"/api/spaces/{space_id}", space_id=space_id, token=token)
        try:
            data = document["data"]
            attributes = data.get("attributes") or {}
            relationships = data.get("relationships") or {}
            owned_by = relationships.get("owned-by") or relationships.get("ownedBy") or {}
            owner = owned_by.get("data") or {}
            return Space(
                id=uuid.UUID(data["id"]),
                owner_id=uuid.UUID(owner["id"]) if owner.get("id") else None,
                name=attributes.get("name") or "",
                description=attributes.get("description") or "",
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RemoteServiceError(self.service_name, f"malformed space document: {exc!r}") from exc
