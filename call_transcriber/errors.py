"""
Error taxonomy for the transcription client.

Remote failures are mapped to these classes at the client boundary so callers
never see raw transport errors.
"""

from typing import Optional


class TranscriptionError(Exception):
    """Base class for every failure raised by this package."""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        job_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.job_id = job_id
        self.attempts = 0


class ConfigurationError(TranscriptionError):
    """Required configuration is missing or invalid."""


class ValidationError(TranscriptionError):
    """Audio input was rejected before any network call."""


class UploadError(TranscriptionError):
    """The audio upload failed."""


class AuthenticationError(TranscriptionError):
    """The provider rejected the API credential (HTTP 401)."""


class AuthorizationError(TranscriptionError):
    """The credential is valid but lacks access (HTTP 403)."""


class RateLimitError(TranscriptionError):
    """The provider throttled the request (HTTP 429)."""

    retryable = True


class InvalidRequestError(TranscriptionError):
    """The provider rejected the request body (HTTP 400)."""

    retryable = True


class ProviderError(TranscriptionError):
    """The provider failed on its side (HTTP 5xx)."""

    retryable = True


class OperationError(TranscriptionError):
    """Any other remote failure, wrapping the raw message."""

    retryable = True


class ResponseFormatError(TranscriptionError):
    """The provider returned a record that cannot be normalized."""


class TranscriptionTimeoutError(TranscriptionError):
    """Polling exceeded its attempt budget without a terminal status."""


class JobFailedError(TranscriptionError):
    """The provider reported the job itself as failed."""


class TranscriptionCancelledError(Exception):
    """Raised when the caller cancels an in-flight orchestration.

    Not a TranscriptionError subclass, so ``except TranscriptionError``
    never catches a cancellation.
    """
