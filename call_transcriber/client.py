"""
Client for the remote speech-analysis provider.
"""

import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import requests
from requests.adapters import HTTPAdapter
from retrying import Retrying

from . import __version__
from .cancellation import CancellationToken, wait_for
from .config import ProviderConfig
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    InvalidRequestError,
    OperationError,
    ProviderError,
    RateLimitError,
    TranscriptionError,
    UploadError,
)
from .models import TranscriptionOptions
from .utils import validate_audio_bytes

logger = logging.getLogger(__name__)

T = TypeVar('T')

Sleeper = Callable[[float, Optional[CancellationToken]], None]

_STATUS_ERRORS = {
    401: (AuthenticationError, "invalid credentials, check the configured API key"),
    403: (AuthorizationError, "access denied, check the API key permissions"),
    429: (RateLimitError, "rate limit exceeded, retry later"),
    400: (InvalidRequestError, "invalid request, check audio format"),
    500: (ProviderError, "upstream service error, try again later"),
}


def _status_code(exc: BaseException) -> Optional[int]:
    response = getattr(exc, 'response', None)
    return getattr(response, 'status_code', None)


def map_provider_error(exc: BaseException, context: str) -> TranscriptionError:
    """
    Translate a transport failure into the local error taxonomy.

    Args:
        exc: Exception raised by the HTTP layer
        context: Operation being attempted, used as the message prefix

    Returns:
        TranscriptionError subclass instance (not raised)
    """
    if isinstance(exc, TranscriptionError):
        return exc

    status_code = _status_code(exc)
    if status_code in _STATUS_ERRORS:
        error_cls, description = _STATUS_ERRORS[status_code]
    elif status_code is not None and status_code >= 500:
        error_cls, description = ProviderError, "upstream service error, try again later"
    else:
        error_cls, description = OperationError, str(exc) or exc.__class__.__name__

    return error_cls(f"{context}: {description}", status_code=status_code)


def build_job_request(audio_url: str, options: Optional[TranscriptionOptions] = None) -> Dict[str, Any]:
    """
    Build the job-create payload.

    Args:
        audio_url: Reference returned by upload()
        options: Feature overrides; every feature is enabled by default

    Returns:
        Request body for the job-create endpoint
    """
    options = options or TranscriptionOptions()
    return {
        'audio_url': audio_url,
        'speaker_labels': options.speaker_labels,
        'sentiment_analysis': options.sentiment_analysis,
        'summarization': options.summarization,
        'redact_pii': options.redact_pii,
        'redact_pii_policies': list(options.redact_pii_policies),
        'auto_highlights': options.auto_highlights,
        'language_code': options.language_code,
    }


class TranscriptionClient:
    """Client for the provider's upload and transcript endpoints."""

    def __init__(
        self,
        config: ProviderConfig,
        session: Optional[requests.Session] = None,
        sleeper: Sleeper = wait_for
    ):
        """
        Initialize the transcription client.

        Args:
            config: Provider settings; must carry an API key
            session: Optional pre-built requests session (mainly for tests)
            sleeper: Backoff sleep function, called as sleeper(seconds, token)

        Raises:
            ConfigurationError: If no config or no API key is given
        """
        if config is None or not config.api_key:
            raise ConfigurationError("An API key is required to create a TranscriptionClient")

        self.config = config
        self.base_url = config.base_url.rstrip('/')
        self.timeout = config.timeout
        self._sleep = sleeper

        if session is None:
            session = requests.Session()
            # Connection pool sized for concurrent orchestrations; retries are handled by retrying
            adapter = HTTPAdapter(pool_connections=config.pool_size, pool_maxsize=config.pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

        self.session.headers.update({
            'authorization': config.api_key,
            'User-Agent': f'call-transcriber/{__version__}'
        })

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def upload(self, audio: bytes, token: Optional[CancellationToken] = None) -> str:
        """
        Upload raw audio to provider storage.

        Only the size limits are enforced here, since raw bytes carry no
        media type; the type check lives in utils.validate_audio_file, which
        the orchestrator runs before calling upload.

        Args:
            audio: Audio bytes
            token: Optional cancellation token checked before the request

        Returns:
            Opaque URL referencing the uploaded audio

        Raises:
            ValidationError: If the payload is empty or too large
            UploadError: On any transport failure or unexpected response
        """
        validate_audio_bytes(audio)
        if token is not None:
            token.raise_if_cancelled()

        try:
            response = self.session.post(
                self._url('/v2/upload'),
                data=audio,
                headers={'Content-Type': 'application/octet-stream'},
                timeout=self.timeout
            )
            response.raise_for_status()
            upload_url = response.json()['upload_url']
        except requests.RequestException as e:
            mapped = map_provider_error(e, "Failed to upload audio file")
            logger.error(f"Upload failed: {e}")
            raise UploadError(mapped.message, status_code=mapped.status_code) from e
        except (KeyError, TypeError) as e:
            logger.error(f"Upload response missing upload_url: {e}")
            raise UploadError("Failed to upload audio file: provider returned no upload URL") from e

        logger.info(f"Uploaded {len(audio)} bytes of audio")
        return upload_url

    def submit_job(
        self,
        audio_url: str,
        options: Optional[TranscriptionOptions] = None,
        token: Optional[CancellationToken] = None
    ) -> str:
        """
        Create a transcription job.

        Args:
            audio_url: Reference returned by upload()
            options: Optional feature overrides
            token: Optional cancellation token

        Returns:
            Provider-assigned job ID
        """
        payload = build_job_request(audio_url, options)

        def create() -> str:
            response = self.session.post(
                self._url('/v2/transcript'),
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()['id']

        job_id = self._call_with_retry(create, "Failed to submit transcription request", token)
        logger.info(f"Submitted transcription job {job_id}")
        return job_id

    def fetch_job(self, job_id: str, token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """
        Get the provider's current record for a job.

        Args:
            job_id: ID of the job to retrieve
            token: Optional cancellation token

        Returns:
            Raw job record as returned by the provider
        """
        def fetch() -> Dict[str, Any]:
            response = self.session.get(
                self._url(f'/v2/transcript/{job_id}'),
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()

        return self._call_with_retry(fetch, "Failed to get transcription status", token)

    def _call_with_retry(
        self,
        operation: Callable[[], T],
        context: str,
        token: Optional[CancellationToken] = None
    ) -> T:
        """
        Run an operation with exponential backoff.

        Waits retry_delay_ms * 2 ** (attempt - 1) between attempts and gives up
        after max_retries attempts, re-raising the last mapped error.
        """
        attempts = 0

        def attempt() -> T:
            nonlocal attempts
            attempts += 1
            if token is not None:
                token.raise_if_cancelled()
            try:
                return operation()
            except (requests.RequestException, KeyError, TypeError, ValueError) as e:
                raise map_provider_error(e, context) from e

        def should_retry(exc: BaseException) -> bool:
            if token is not None and token.cancelled:
                return False
            return isinstance(exc, TranscriptionError) and exc.retryable

        def backoff(attempt_number: int, delay_since_first_attempt_ms: int) -> int:
            delay_ms = self.config.retry_delay_ms * 2 ** (attempt_number - 1)
            logger.warning(f"{context}: attempt {attempt_number} failed, retrying in {delay_ms}ms")
            self._sleep(delay_ms / 1000.0, token)
            # The wait already happened above, through the cancellation token
            return 0

        retryer = Retrying(
            stop_max_attempt_number=self.config.max_retries,
            retry_on_exception=should_retry,
            wait_func=backoff
        )

        try:
            return retryer.call(attempt)
        except TranscriptionError as e:
            e.attempts = attempts
            logger.error(f"{e.message} (after {attempts} attempt(s))")
            raise
