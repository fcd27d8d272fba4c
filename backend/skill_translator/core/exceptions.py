"""
Exception hierarchy for the translation pipeline.

Every error carries a machine-readable ``kind`` that is surfaced to API
clients next to the human-readable message.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error categories reported to clients."""

    INVALID_INPUT = "invalid_input"
    PROVIDER_TRANSIENT = "provider_transient"
    PROVIDER_FAILURE = "provider_failure"
    TIMEOUT = "timeout"
    CACHE_UNAVAILABLE = "cache_unavailable"
    INTERNAL = "internal_error"


class TranslationServiceError(Exception):
    """Base exception for translation service errors."""

    kind: ErrorKind = ErrorKind.PROVIDER_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(TranslationServiceError):
    """Malformed base64, missing field, bad hash format or undecodable bytes."""

    kind = ErrorKind.INVALID_INPUT


class ProviderTransientError(TranslationServiceError):
    """Rate limiting or a network hiccup; safe to retry."""

    kind = ErrorKind.PROVIDER_TRANSIENT


class ProviderFailureError(TranslationServiceError):
    """Non-transient provider error: authentication, malformed request or response."""

    kind = ErrorKind.PROVIDER_FAILURE


class TranslationTimeoutError(ProviderFailureError):
    """A provider call or a whole document exceeded its time budget."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, timeout_seconds: float):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


class CacheUnavailableError(TranslationServiceError):
    """The cache store could not be read or written."""

    kind = ErrorKind.CACHE_UNAVAILABLE
