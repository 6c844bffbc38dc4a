"""Typed domain exceptions raised by the service layer.

Routes catch these and map them to HTTP status codes, keeping services
free of FastAPI imports.

Usage:
    # In service layer
    raise NotFoundError("Agent", agent_id)

    # In route handler
    try:
        agent = service.get(agent_id)
    except NotFoundError as e:
        raise AgentSquareError.from_code("NOT_FOUND", resource=str(e)) from e
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class NotFoundError(DomainError):
    """Resource was not found. Maps to HTTP 404."""

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(f"{resource_type} '{identifier}'")
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(DomainError):
    """Validation failure. Maps to HTTP 400."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
