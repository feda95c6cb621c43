"""Typed failures raised by the transformation pipeline."""

from __future__ import annotations

from enum import StrEnum


class ErrorCategory(StrEnum):
    INPUT = "input"
    RETRY = "retry"
    CONNECTIVITY = "connectivity"
    CONFIGURATION = "configuration"
    QUOTA = "quota"


class StickifyError(Exception):
    """Base error for all pipeline failures."""

    category: ErrorCategory = ErrorCategory.RETRY


class MalformedAssetError(StickifyError):
    """The byte buffer is not a recognisable container for its declared type."""

    category = ErrorCategory.INPUT


class AssetDecodeError(StickifyError):
    """Pixels could not be decoded from an otherwise recognised asset."""

    category = ErrorCategory.INPUT


class EmptyGenerationError(StickifyError):
    """The backend answered without an inline image candidate."""

    category = ErrorCategory.INPUT


class StageTimeoutError(StickifyError, TimeoutError):
    """A network-bound stage exceeded its time budget."""

    category = ErrorCategory.RETRY

    def __init__(self, stage: str, timeout: float) -> None:
        super().__init__(f"{stage} timed out after {timeout:g}s")
        self.stage = stage
        self.timeout = timeout


class BackendConnectionError(StickifyError):
    """The generative backend could not be reached."""

    category = ErrorCategory.CONNECTIVITY


class GenerationBackendError(StickifyError):
    """The generative backend rejected or failed the request."""

    category = ErrorCategory.RETRY


class InvalidRequestError(StickifyError, ValueError):
    """A transform request violates its own invariants."""

    category = ErrorCategory.INPUT


class LiveModeRequiredError(StickifyError):
    """The operation has no demo equivalent and needs a credential."""

    category = ErrorCategory.CONFIGURATION


class UsageLimitExceededError(StickifyError):
    """The daily generation budget has been spent."""

    category = ErrorCategory.QUOTA


_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.INPUT: (
        "This image could not be processed. Try a different image or a clearer prompt."
    ),
    ErrorCategory.RETRY: "Something went wrong while generating. Please try again.",
    ErrorCategory.CONNECTIVITY: (
        "Could not reach the image service. Check your connection and try again."
    ),
    ErrorCategory.CONFIGURATION: (
        "This feature needs a Gemini API key. Add one in settings to enable it."
    ),
    ErrorCategory.QUOTA: "Today's generation budget is used up. Please come back tomorrow.",
}


def user_message(exc: BaseException) -> str:
    """Return the single human-readable message shown for a failure."""
    if isinstance(exc, StickifyError):
        return _MESSAGES[exc.category]
    if isinstance(exc, TimeoutError):
        return _MESSAGES[ErrorCategory.RETRY]
    if isinstance(exc, ConnectionError):
        return _MESSAGES[ErrorCategory.CONNECTIVITY]
    return _MESSAGES[ErrorCategory.RETRY]
