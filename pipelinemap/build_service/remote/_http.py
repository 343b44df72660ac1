"""Shared request handling for the remote lookup clients."""

from __future__ import annotations

import uuid
from typing import Any

import httpx
from loguru import logger

from pipelinemap.build_service.errors import NotFoundError, RemoteServiceError, UnauthorizedError


class JSONAPIClient:
    """GETs JSON:API documents from one remote service.

    The ``httpx.AsyncClient`` is created once at startup (with ``base_url``
    and timeout) and shared by all requests; the caller's bearer token is
    forwarded per call.
    """

    service_name = "remote service"

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _get_document(self, path: str, *, space_id: uuid.UUID, token: str | None) -> dict[str, Any]:
        headers = {"Accept": "application/vnd.api+json, application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.get(path, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Request to {} failed (space={}): {!r}", self.service_name, space_id, exc)
            raise RemoteServiceError(self.service_name, f"request failed: {exc!r}") from exc

        if response.status_code != httpx.codes.OK:
            body = response.text
            logger.error(
                "Unable to query {} (space={}, response_status={}, response_body={})",
                self.service_name,
                space_id,
                response.status_code,
                body,
            )
            if response.status_code == httpx.codes.UNAUTHORIZED:
                msg = "Not Authorized"
                raise UnauthorizedError(msg)
            if response.status_code == httpx.codes.NOT_FOUND:
                raise NotFoundError("space", space_id)
            raise RemoteServiceError(
                self.service_name,
                "unexpected response",
                status_code=response.status_code,
                body=body,
            )

        try:
            document = response.json()
        except ValueError as exc:
            raise RemoteServiceError(self.service_name, "response body is not JSON") from exc
        if not isinstance(document, dict):
            raise RemoteServiceError(self.service_name, "response body is not a JSON object")
        return document
