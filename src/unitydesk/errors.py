"""Exception types shared across the service."""

from __future__ import annotations


class UnityDeskError(Exception):
    """Base class for application errors."""

    code = "internal"
    status_code = 500


class ConfigurationError(UnityDeskError):
    """Required configuration is missing or invalid."""

    code = "configuration"
    status_code = 503


class InputError(UnityDeskError):
    """Citizen input rejected before any network call."""

    code = "invalid_input"
    status_code = 400


class ExternalServiceError(UnityDeskError):
    """A hosted service (AI, speech, storage, auth) failed."""

    code = "external_service"


class StructuredOutputError(ExternalServiceError):
    """Model output did not parse as the declared schema."""

    code = "structured_output"


class NotFoundError(UnityDeskError):
    """Requested complaint does not exist."""

    code = "not_found"
    status_code = 404


class PermissionDeniedError(UnityDeskError):
    """Caller may not modify this complaint."""

    code = "forbidden"
    status_code = 403


class StatusTransitionError(UnityDeskError):
    """Officer status change is not allowed from the current status."""

    code = "invalid_transition"
    status_code = 409


class DuplicateReferenceError(UnityDeskError):
    """Reference ID already issued to another complaint."""

    code = "duplicate_reference"
    status_code = 409


class WorkflowError(UnityDeskError):
    """A submission workflow transition was attempted from the wrong state."""

    code = "workflow"
    status_code = 409


def error_code(exc: BaseException) -> str:
    return exc.code if isinstance(exc, UnityDeskError) else UnityDeskError.code


def _subclasses(cls: type[UnityDeskError]) -> list[type[UnityDeskError]]:
    found = [cls]
    for sub in cls.__subclasses__():
        found.extend(_subclasses(sub))
    return found


def status_for_code(code: str) -> int:
    """HTTP status for an error code carried in a response dict."""
    for cls in _subclasses(UnityDeskError):
        if cls.code == code:
            return cls.status_code
    return UnityDeskError.status_code
