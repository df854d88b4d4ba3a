"""
Error taxonomy for the translation pipeline.

Every error carries a stable ``status`` classification that survives up to
the caller (CLI exit code, API status) regardless of how much detail is shown.
"""

from typing import Optional


class TranscreatorError(Exception):
    """Base class for all pipeline errors."""

    status = "internal"
    exit_code = 1


class InputError(TranscreatorError):
    """Malformed subtitle text or missing/invalid settings."""

    status = "bad_input"
    exit_code = 2


class SubtitleParseError(InputError):
    """Raw subtitle text could not be parsed."""


class JobNotFoundError(TranscreatorError):
    status = "not_found"
    exit_code = 4

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class ConflictError(TranscreatorError):
    """A status transition was attempted from an unexpected state."""

    status = "conflict"
    exit_code = 5


class ModelUnavailable(TranscreatorError):
    """The model gateway exhausted its retries."""

    status = "service_unavailable"
    exit_code = 3

    def __init__(self, model_name: str, attempts: int, cause: Optional[BaseException] = None):
        super().__init__(f"Model call to {model_name} failed after {attempts} attempts: {cause}")
        self.model_name = model_name
        self.attempts = attempts
        self.cause = cause


class ModelRequestRejected(InputError):
    """The model provider refused the request itself (bad key, bad request)."""

    def __init__(self, model_name: str, cause: BaseException):
        super().__init__(f"Model call to {model_name} was rejected: {cause}")
        self.model_name = model_name
        self.cause = cause


class MalformedAgentResponse(TranscreatorError):
    """A structured agent returned output that is not valid for its schema."""

    status = "bad_gateway"
    exit_code = 6

    def __init__(self, agent_name: str, raw_text: str, cause: Optional[BaseException] = None):
        super().__init__(f"Agent [{agent_name}] returned malformed output: {cause}")
        self.agent_name = agent_name
        self.raw_text = raw_text
        self.cause = cause


class AgentContractViolation(TranscreatorError):
    """A batch agent returned a different number of lines than it was given."""

    status = "bad_gateway"
    exit_code = 6

    def __init__(self, agent_name: str, expected: int, actual: int):
        super().__init__(f"Agent [{agent_name}] returned {actual} lines, expected {expected}")
        self.agent_name = agent_name
        self.expected = expected
        self.actual = actual


class PersistenceError(TranscreatorError):
    """The job repository failed to read or write a job."""

    status = "internal"
    exit_code = 7


GENERIC_MESSAGES = {
    "blueprint": "An internal error occurred while generating the blueprint.",
    "execute": "An internal error occurred during translation execution.",
}


def user_message(exc: BaseException, *, production: bool, operation: str = "") -> str:
    """Render an error for the end user.

    Production hides the underlying reason behind a generic message; the status
    classification is always included.
    """
    status = getattr(exc, "status", TranscreatorError.status)
    if production:
        detail = GENERIC_MESSAGES.get(operation, "An unexpected error occurred.")
    else:
        label = {"blueprint": "Blueprint generation failed", "execute": "Translation execution failed"}
        prefix = label.get(operation)
        detail = f"{prefix}: {exc}" if prefix else str(exc)
    return f"[{status}] {detail}"
