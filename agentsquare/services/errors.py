"""Shared service-layer error types.

Centralised here to avoid circular imports between the adapter modules
and the orchestrator.
"""

from dataclasses import dataclass

from agentsquare.errors import AgentSquareError


@dataclass
class ExternalServiceError(Exception):
    """Failure of an outbound call to an external service.

    Attributes:
        code: Registry error code (AI_SERVICE_ERROR, TIMEOUT, PARSE_ERROR,
            CONFIG_MISSING).
        message: Human-readable error message, already scrubbed of secrets.
        status_code: Upstream HTTP status, when the service answered.
    """

    code: str
    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        """Return formatted error message."""
        return f"[{self.code}] {self.message}"

    def to_app_error(self) -> AgentSquareError:
        """Convert to an AgentSquareError for non-streamed responses."""
        error = AgentSquareError.from_code(self.code, reason=self.message)
        error.message = self.message
        if self.status_code is not None:
            error.details = {"upstream_status": self.status_code}
        return error
