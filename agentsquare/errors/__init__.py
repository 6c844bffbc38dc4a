"""Error handling framework for AgentSquare.

This package provides:
- Error code registry with client-visible codes and HTTP statuses
- AgentSquareError, raised by routes and rendered by the API handler
- Typed domain errors raised by the service layer
"""

from agentsquare.errors.domain import DomainError, NotFoundError, ValidationError
from agentsquare.errors.formatter import AgentSquareError, format_error
from agentsquare.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    # Formatter
    "AgentSquareError",
    "format_error",
    # Domain
    "DomainError",
    "NotFoundError",
    "ValidationError",
]
