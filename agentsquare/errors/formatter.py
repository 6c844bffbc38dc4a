"""Application error type and its client-facing representation."""

from dataclasses import dataclass, field

from agentsquare.errors.registry import get_error


@dataclass
class AgentSquareError(Exception):
    """Application error with code, message and HTTP status.

    Attributes:
        code: Registry error code.
        message: Human-readable error message.
        http_status: Status for non-streamed responses.
        remediation: Action the user should take to resolve.
        details: Additional context dictionary.
    """

    code: str
    message: str
    http_status: int = 500
    remediation: str = ""
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "AgentSquareError":
        """Create error from registry code with context substitution.

        Args:
            code: Registry error code.
            **kwargs: Values for message template substitution. The special
                key 'details' is stored on the error instead.

        Returns:
            AgentSquareError with formatted message.
        """
        details = kwargs.pop("details", {})
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                details=details,
            )

        message = error_def.message_template
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        return cls(
            code=error_def.code,
            message=message,
            http_status=error_def.http_status,
            remediation=error_def.remediation,
            details=details,
        )

    def to_payload(self) -> dict:
        """Return the `{code, message}` body used by responses and stream events."""
        return {"code": self.code, "message": self.message}


def format_error(error: AgentSquareError, include_remediation: bool = True) -> str:
    """Format an error for display in terminals and logs.

    Args:
        error: The error to format.
        include_remediation: Whether to append the remediation line.

    Returns:
        Formatted error string.
    """
    lines = [f"[{error.code}] {error.message}"]
    if include_remediation and error.remediation:
        lines.append(f"  -> {error.remediation}")
    return "\n".join(lines)
