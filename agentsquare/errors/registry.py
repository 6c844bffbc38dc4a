"""Error code registry for client-visible AgentSquare errors.

Codes are grouped into categories:
- input: rejected before anything is persisted
- policy: keyword or moderation-model block
- config: a required external service is not configured
- upstream: an external service failed, timed out or returned garbage
- system: authentication, lookup and unexpected failures

Each error includes a code, title, message template, HTTP status and
remediation text.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    INPUT = "input"
    POLICY = "policy"
    CONFIG = "config"
    UPSTREAM = "upstream"
    SYSTEM = "system"


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Upper-snake error code surfaced to clients.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        http_status: Status used when the error is returned outside a stream.
        remediation: Action the user should take to resolve.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    http_status: int
    remediation: str


ERROR_REGISTRY: dict[str, ErrorCode] = {
    "VALIDATION_ERROR": ErrorCode(
        code="VALIDATION_ERROR",
        category=ErrorCategory.INPUT,
        title="Invalid Request",
        message_template="{reason}",
        http_status=400,
        remediation="Correct the request and try again.",
    ),
    "CONTENT_TOO_SHORT": ErrorCode(
        code="CONTENT_TOO_SHORT",
        category=ErrorCategory.INPUT,
        title="Content Too Short",
        message_template="Please describe your request in at least {minimum} characters.",
        http_status=400,
        remediation="Add more detail to your message.",
    ),
    "REFERENCE_IMAGE_REQUIRED": ErrorCode(
        code="REFERENCE_IMAGE_REQUIRED",
        category=ErrorCategory.INPUT,
        title="More Reference Images Required",
        message_template="This agent needs at least {minimum} reference images.",
        http_status=400,
        remediation="Attach more reference images or send text only.",
    ),
    "CONTENT_BLOCKED": ErrorCode(
        code="CONTENT_BLOCKED",
        category=ErrorCategory.POLICY,
        title="Content Blocked",
        message_template="{reason}",
        http_status=400,
        remediation="Rephrase your request without restricted content.",
    ),
    "NOT_FOUND": ErrorCode(
        code="NOT_FOUND",
        category=ErrorCategory.SYSTEM,
        title="Not Found",
        message_template="{resource} not found.",
        http_status=404,
        remediation="Check the identifier and try again.",
    ),
    "UNAUTHORIZED": ErrorCode(
        code="UNAUTHORIZED",
        category=ErrorCategory.SYSTEM,
        title="Unauthorized",
        message_template="{reason}",
        http_status=401,
        remediation="Log in to the admin console again.",
    ),
    "CONFIG_MISSING": ErrorCode(
        code="CONFIG_MISSING",
        category=ErrorCategory.CONFIG,
        title="Service Not Configured",
        message_template="The {service} service is not configured.",
        http_status=500,
        remediation="Set the endpoint, key and model in the admin settings.",
    ),
    "AI_SERVICE_ERROR": ErrorCode(
        code="AI_SERVICE_ERROR",
        category=ErrorCategory.UPSTREAM,
        title="AI Service Error",
        message_template="{reason}",
        http_status=502,
        remediation="Try again later or check the service configuration.",
    ),
    "TIMEOUT": ErrorCode(
        code="TIMEOUT",
        category=ErrorCategory.UPSTREAM,
        title="Request Timed Out",
        message_template="{reason}",
        http_status=504,
        remediation="Try again later.",
    ),
    "PARSE_ERROR": ErrorCode(
        code="PARSE_ERROR",
        category=ErrorCategory.UPSTREAM,
        title="Unreadable Service Response",
        message_template="{reason}",
        http_status=502,
        remediation="Check that the configured model returns the expected format.",
    ),
    "INTERNAL_ERROR": ErrorCode(
        code="INTERNAL_ERROR",
        category=ErrorCategory.SYSTEM,
        title="Internal Error",
        message_template="{reason}",
        http_status=500,
        remediation="Try again; contact the administrator if it persists.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up an error code definition.

    Args:
        code: Error code (e.g. 'CONFIG_MISSING').

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)
