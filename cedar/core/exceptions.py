"""Exception taxonomy shared by every domain module.

Services raise these; `cedar.core.results.to_result` turns them into the
`ActionResult` envelope returned across the HTTP boundary.
"""

from typing import Optional


class DomainException(Exception):
    """Base class for all domain exceptions."""

    error_code = "domain_error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class ValidationError(DomainException):
    """A precondition was not met before a state change. Nothing was modified."""

    error_code = "validation_error"


class InvalidTransitionError(DomainException):
    """The requested status transition is not part of the allowed set."""

    error_code = "invalid_transition"

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move from '{current}' to '{target}'.", field="status")
        self.current = current
        self.target = target


class NotFoundError(DomainException):
    error_code = "not_found"


class AccessDeniedError(DomainException):
    error_code = "forbidden"


class ConcurrencyConflictError(DomainException):
    """Raised when the optimistic version token no longer matches the stored row."""

    error_code = "conflict"

    def __init__(self, entity: str, entity_id: int, expected_version: Optional[int]):
        super().__init__(
            f"{entity} {entity_id} was modified by someone else (expected version {expected_version}). Reload and retry.",
            field="version",
        )
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version


class CollaboratorFailure(DomainException):
    """Storage, identity, order-creation or notification call failed."""

    error_code = "collaborator_failure"

    def __init__(self, collaborator: str, original_exception: Optional[Exception] = None):
        message = f"{collaborator} is unavailable"
        if original_exception:
            message += f" ({original_exception})"
        super().__init__(message)
        self.collaborator = collaborator
        self.original_exception = original_exception
