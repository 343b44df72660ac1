"""Domain exceptions shared by the store, the remote clients and the workflow.

Managers and the workflow raise these, never HTTP exceptions -- translating
them to status codes is the router's responsibility.  The base classes
double as builtin exception types (``LookupError``, ``ValueError``) so that
callers that only care about the broad category can catch those.
"""

from __future__ import annotations

from typing import Any


class BuildServiceError(Exception):
    """Base class for every classified failure of the service."""


class BadParameterError(BuildServiceError, ValueError):
    """A required input is missing, empty, or violates a storage constraint."""

    def __init__(self, parameter: str, value: Any = None, *, expected: str | None = None) -> None:
        self.parameter = parameter
        self.value = value
        self.expected = expected
        msg = f"Bad value for parameter '{parameter}': '{value}'"
        if expected is not None:
            msg += f" (expected: '{expected}')"
        super().__init__(msg)


class UnauthorizedError(BuildServiceError):
    """The caller has no valid identity, or a remote service answered 401."""


class NotFoundError(BuildServiceError, LookupError):
    """A referenced space, environment or pipeline environment map does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = str(identifier)
        super().__init__(f"{entity} with id '{self.identifier}' not found")


class ConflictError(BuildServiceError, ValueError):
    """Creating the entity would violate a uniqueness constraint."""


class InternalError(BuildServiceError):
    """Unclassified storage or remote failure."""


class RemoteServiceError(InternalError):
    """A remote lookup service failed or returned an unexpected response."""

    def __init__(self, service: str, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        detail = f"{service}: {message}"
        if status_code is not None:
            detail += f". Response status: {status_code}. Response body: {body}"
        super().__init__(detail)


class TransactionError(InternalError):
    """Beginning or committing a database transaction failed."""
