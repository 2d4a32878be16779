"""
Application exception types.

Expected business failures are returned as failed Result values by handlers.
The exceptions below cover the cases that must abort a request outright; the
API layer translates each one to an HTTP status and the standard envelope.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class AppError(Exception):
    """Base class for application errors surfaced to API clients."""

    status_code: int = 400
    error_type: str = "application_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def errors(self) -> List[str]:
        return [self.message]


class ValidationError(AppError):
    """One or more request validators failed; errors are grouped by field."""

    status_code = 400
    error_type = "validation_error"

    def __init__(self, failures: Dict[str, List[str]]) -> None:
        super().__init__("One or more validation failures have occurred.")
        self.failures = failures

    @property
    def errors(self) -> List[str]:
        return [msg for messages in self.failures.values() for msg in messages]


class NotFoundError(AppError):
    """Entity id does not resolve."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f'Entity "{entity}" ({key}) was not found.')
        self.entity = entity
        self.key = key


class ForbiddenError(AppError):
    """Caller is not allowed to touch the entity, typically a tenant mismatch."""

    status_code = 403
    error_type = "forbidden"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "You do not have permission to access this resource.")


class UnauthenticatedError(AppError):
    """Caller has no resolvable identity or tenant."""

    status_code = 401
    error_type = "unauthenticated"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "Authentication is required.")
