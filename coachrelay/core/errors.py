"""Project error hierarchy.

Caller-facing messages are fixed per class; diagnostic detail stays in the
exception args and goes to the logs only.
"""


class RelayError(Exception):
    """Base error."""

    status_code: int = 500
    public_message: str = "AI service is temporarily unavailable."


class AuthenticationError(RelayError):
    """Raised when the bearer credential is missing, malformed or rejected."""

    status_code = 401
    public_message = "Invalid authentication token."


class PayloadValidationError(RelayError):
    """Raised when the request body does not match the relay schema."""

    status_code = 400
    public_message = "Invalid request payload."


class AuthorizationError(RelayError):
    """Raised when the caller may not act for the user or conversation."""

    status_code = 403
    public_message = "Forbidden."


class NotFoundError(RelayError):
    """Raised when the referenced conversation does not exist."""

    status_code = 404
    public_message = "Chat not found."


class CandidateDeliveryError(RelayError):
    """One upstream candidate failed; the relay moves on to the next one."""

    def __init__(self, candidate_id: str, reason: str) -> None:
        super().__init__(f"candidate={candidate_id} reason={reason}")
        self.candidate_id = candidate_id
        self.reason = reason


class DirectoryLoadError(RelayError):
    """The candidate directory could not be read."""


class ExhaustionError(RelayError):
    """Every candidate failed."""

    status_code = 500
    public_message = "AI service is temporarily unavailable."

    def __init__(self, request_id: str, last_error: Exception | None = None) -> None:
        super().__init__(f"request_id={request_id} last_error={last_error}")
        self.request_id = request_id
        self.last_error = last_error
