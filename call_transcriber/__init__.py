"""
Call Transcriber

Uploads sales-call recordings to a speech-analysis provider, polls the
transcription job and normalizes the result (speakers, sentiment, summary,
PII redactions, highlights).
"""

__version__ = "1.0.0"

from .cancellation import CancellationToken
from .client import TranscriptionClient
from .config import ProviderConfig
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    InvalidRequestError,
    JobFailedError,
    OperationError,
    ProviderError,
    RateLimitError,
    ResponseFormatError,
    TranscriptionCancelledError,
    TranscriptionError,
    TranscriptionTimeoutError,
    UploadError,
    ValidationError,
)
from .models import JobStatus, RunState, TranscriptionOptions, TranscriptionResult
from .normalizer import normalize, progress_for_status
from .orchestrator import JobOrchestrator, TranscriptionRun
from .service import TranscriptionHandle, TranscriptionService
from .utils import AudioFile, validate_audio_file

__all__ = [
    "AudioFile",
    "CancellationToken",
    "JobOrchestrator",
    "JobStatus",
    "ProviderConfig",
    "RunState",
    "TranscriptionClient",
    "TranscriptionHandle",
    "TranscriptionOptions",
    "TranscriptionResult",
    "TranscriptionRun",
    "TranscriptionService",
    "normalize",
    "progress_for_status",
    "validate_audio_file",
    "TranscriptionError",
    "ConfigurationError",
    "ValidationError",
    "UploadError",
    "AuthenticationError",
    "AuthorizationError",
    "RateLimitError",
    "InvalidRequestError",
    "ProviderError",
    "OperationError",
    "ResponseFormatError",
    "TranscriptionTimeoutError",
    "JobFailedError",
    "TranscriptionCancelledError",
]
