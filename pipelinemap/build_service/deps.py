"""FastAPI dependency injection for the workflow and the caller's token.

Usage in route handlers::

    @router.post("/things")
    async def create_thing(workflow: Workflow, token: BearerToken) -> ThingResponse:
        ...

``get_workflow`` raises HTTP 503 if the database was not configured
(F8_DATABASE_URL unset).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from pipelinemap.build_service.workflow import PipelineEnvMapWorkflow


def get_workflow(request: Request) -> PipelineEnvMapWorkflow:
    """Return the shared workflow built during lifespan."""
    workflow: PipelineEnvMapWorkflow | None = request.app.state.workflow
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured (F8_DATABASE_URL is unset).",
        )
    return workflow


def get_bearer_token(request: Request) -> str | None:
    """Extract the bearer token, if any.  It is forwarded to remote services."""
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def require_bearer_token(token: Annotated[str | None, Depends(get_bearer_token)]) -> str:
    """Reject the request with 401 when no bearer token was sent."""
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


# -- Annotated type aliases for concise route signatures ---------------------

Workflow = Annotated[PipelineEnvMapWorkflow, Depends(get_workflow)]
"""Annotated dependency: process-wide pipeline environment map workflow."""

OptionalToken = Annotated[str | None, Depends(get_bearer_token)]
"""Annotated dependency: caller's bearer token, or None."""

BearerToken = Annotated[str, Depends(require_bearer_token)]
"""Annotated dependency: caller's bearer token (401 when missing)."""
