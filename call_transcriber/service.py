"""
Transcription service: the single entry point used by callers.

Wraps the orchestrator and translates its progress events into plain
callbacks so callers never deal with provider vocabulary or retry mechanics.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from .cancellation import CancellationToken
from .client import TranscriptionClient
from .config import ProviderConfig
from .errors import TranscriptionCancelledError, TranscriptionError
from .models import JobStatus, ProgressEvent, RunState, TranscriptionOptions, TranscriptionResult
from .normalizer import summarize_result
from .orchestrator import STATUS_MESSAGES, JobOrchestrator, TranscriptionRun
from .utils import AudioFile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float, str], None]
CompleteCallback = Callable[[TranscriptionResult], None]
ErrorCallback = Callable[[str], None]
CancelCallback = Callable[[], None]


def _forward_progress(on_progress: ProgressCallback) -> Callable[[ProgressEvent], None]:
    def listener(event: ProgressEvent) -> None:
        if event.state in (RunState.UPLOADING, RunState.PROCESSING, RunState.COMPLETED):
            on_progress(event.state.value, event.percent, event.message)
    return listener


class TranscriptionHandle:
    """A transcription running in the background."""

    def __init__(self, run: TranscriptionRun, future: Future):
        self.run = run
        self.future = future

    @property
    def state(self) -> RunState:
        return self.run.state

    @property
    def job_id(self) -> Optional[str]:
        return self.run.job_id

    def cancel(self) -> None:
        """Stop local observation; the provider-side job keeps running."""
        self.run.cancel()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> Optional[TranscriptionResult]:
        """Wait for the outcome; None when cancelled, raises on failure."""
        return self.future.result(timeout)


class TranscriptionService:
    """Facade over JobOrchestrator."""

    def __init__(self, orchestrator: JobOrchestrator, max_workers: int = 4):
        self.orchestrator = orchestrator
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def from_config(cls, config: ProviderConfig, max_workers: int = 4) -> 'TranscriptionService':
        client = TranscriptionClient(config)
        return cls(JobOrchestrator.from_client(client), max_workers=max_workers)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, max_workers: int = 4) -> 'TranscriptionService':
        """Create a service from environment variables (fails fast without an API key)."""
        return cls.from_config(ProviderConfig.from_env(env_file), max_workers=max_workers)

    def start_transcription(
        self,
        audio: AudioFile,
        options: Optional[TranscriptionOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_cancel: Optional[CancelCallback] = None,
        run: Optional[TranscriptionRun] = None
    ) -> Optional[TranscriptionResult]:
        """
        Transcribe an audio file and wait for the result.

        Args:
            audio: Audio file to transcribe
            options: Optional feature overrides
            on_progress: Called as on_progress(status, percent, message)
            on_complete: Called once with the completed result
            on_error: Called once with a human-readable message before the error is re-raised
            on_cancel: Called once if the run is cancelled
            run: Optional run, so the caller can cancel it from another thread

        Returns:
            The completed result, or None if the run was cancelled
        """
        run = run or TranscriptionRun()
        if on_progress is not None:
            run.subscribe(_forward_progress(on_progress))

        try:
            result = self.orchestrator.start_transcription(audio, options, run=run)
        except TranscriptionCancelledError:
            if on_cancel is not None:
                on_cancel()
            return None
        except TranscriptionError as e:
            logger.error(f"Transcription failed: {e.message}")
            if on_error is not None:
                on_error(e.message)
            raise

        if on_complete is not None:
            on_complete(result)
        return result

    def submit_transcription(self, audio: AudioFile, options: Optional[TranscriptionOptions] = None) -> str:
        """
        Upload and submit without waiting for completion.

        Returns:
            Transcription ID to pass to check_status / poll_transcription_status
        """
        return self.orchestrator.submit(audio, options)

    def check_status(self, transcription_id: str) -> TranscriptionResult:
        """Point-in-time status of a transcription."""
        return self.orchestrator.get_status(transcription_id)

    def poll_transcription_status(
        self,
        transcription_id: str,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None
    ) -> TranscriptionResult:
        """
        Wait for an already submitted transcription.

        Args:
            transcription_id: ID returned by submit_transcription
            on_progress: Called as on_progress(status, percent, message) using
                the fixed per-status percentages
            token: Optional cancellation token
        """
        def forward(status: JobStatus, percent: float) -> None:
            on_progress(status.value, percent, STATUS_MESSAGES[status])

        return self.orchestrator.poll_until_terminal(
            transcription_id,
            on_progress=forward if on_progress is not None else None,
            token=token
        )

    def start_in_background(
        self,
        audio: AudioFile,
        options: Optional[TranscriptionOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_cancel: Optional[CancelCallback] = None
    ) -> TranscriptionHandle:
        """
        Run start_transcription on the service's thread pool.

        Each call owns its own run; many can be in flight at once.
        """
        run = TranscriptionRun()
        future = self._pool().submit(
            self.start_transcription,
            audio,
            options,
            on_progress=on_progress,
            on_complete=on_complete,
            on_error=on_error,
            on_cancel=on_cancel,
            run=run
        )
        return TranscriptionHandle(run, future)

    @staticmethod
    def validate_result(result: TranscriptionResult) -> bool:
        """True when the result carries usable analysis."""
        return bool(result.id) and result.is_usable

    @classmethod
    def format_result(cls, result: TranscriptionResult) -> Dict[str, Any]:
        """
        Shape a result for display.

        Raises:
            ValueError: If the result is not usable (failed job or missing text)
        """
        if not cls.validate_result(result):
            raise ValueError("Invalid transcription result")

        stats = summarize_result(result)
        return {
            'id': result.id,
            'status': result.status.value,
            'text': result.text or '',
            'speakers': [segment.to_dict() for segment in result.speakers],
            'sentiment': result.sentiment.to_dict() if result.sentiment else None,
            'summary': result.summary,
            'word_count': stats['word_count'],
            'duration': stats['duration'],
            'speaker_stats': stats['speaker_stats'],
        }

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix='transcription')
        return self._executor

    def shutdown(self, cancel_pending: bool = False) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=cancel_pending)
            self._executor = None

    def __enter__(self) -> 'TranscriptionService':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
