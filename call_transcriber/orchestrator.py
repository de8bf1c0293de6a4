"""
Job orchestration: upload, submit, then poll a transcription to a terminal state.
"""

import logging
import threading
from typing import Callable, List, Optional, Tuple

from .cancellation import CancellationToken, wait_for
from .client import Sleeper, TranscriptionClient
from .errors import (
    JobFailedError,
    TranscriptionCancelledError,
    TranscriptionTimeoutError,
)
from .models import (
    JobStatus,
    ProgressEvent,
    RunState,
    TranscriptionJob,
    TranscriptionOptions,
    TranscriptionResult,
)
from .normalizer import normalize, progress_for_status
from .utils import AudioFile, validate_audio_file

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]
PollProgress = Callable[[JobStatus, float], None]

UPLOAD_STARTED_PERCENT = 0.0
UPLOAD_DONE_PERCENT = 10.0
SUBMITTED_PERCENT = 20.0
COMPLETED_PERCENT = 100.0

STATUS_MESSAGES = {
    JobStatus.QUEUED: "Transcription queued, waiting to start...",
    JobStatus.PROCESSING: "Transcribing audio with speaker labels and sentiment analysis...",
    JobStatus.COMPLETED: "Transcription completed successfully!",
    JobStatus.ERROR: "Transcription failed",
}

_TRANSITIONS = {
    RunState.IDLE: {RunState.UPLOADING, RunState.PROCESSING, RunState.CANCELLED},
    RunState.UPLOADING: {RunState.PROCESSING, RunState.ERROR, RunState.CANCELLED},
    RunState.PROCESSING: {RunState.COMPLETED, RunState.ERROR, RunState.CANCELLED},
    RunState.COMPLETED: set(),
    RunState.ERROR: set(),
    RunState.CANCELLED: set(),
}


class StateTransitionError(RuntimeError):
    """An orchestration tried to move between states that are not connected."""


class TranscriptionRun:
    """
    State machine and progress stream of a single orchestration.

    The current state is the only record of what the run is doing: progress
    is published while uploading or processing, exactly one terminal event is
    published, and nothing is published after it. Once the token is
    cancelled, the run can only end in ``cancelled``.
    """

    def __init__(self, token: Optional[CancellationToken] = None):
        self.token = token or CancellationToken()
        self.state = RunState.IDLE
        self.job: Optional[TranscriptionJob] = None
        self.percent = 0.0
        self.result: Optional[TranscriptionResult] = None
        self.error: Optional[str] = None
        self._listeners: List[ProgressListener] = []
        self._lock = threading.RLock()

    @property
    def job_id(self) -> Optional[str]:
        return self.job.id if self.job else None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def cancel(self) -> None:
        """Stop observing the job. Has no effect once the run has settled."""
        with self._lock:
            self.token.cancel()

    def transition(self, new_state: RunState, percent: Optional[float] = None, message: str = "", **extra) -> None:
        with self._lock:
            if new_state not in _TRANSITIONS[self.state]:
                raise StateTransitionError(f"Cannot move from {self.state.value} to {new_state.value}")
            logger.debug(f"Run {self.job_id or '-'}: {self.state.value} -> {new_state.value}")
            self.state = new_state
            self._publish(percent, message, **extra)

    def report(self, percent: float, message: str, status: Optional[JobStatus] = None) -> None:
        """Publish in-flight progress; ignored once cancelled or settled."""
        with self._lock:
            if self.state not in (RunState.UPLOADING, RunState.PROCESSING) or self.token.cancelled:
                return
            self._publish(percent, message, status=status)

    def complete(self, result: TranscriptionResult) -> None:
        with self._lock:
            self.token.raise_if_cancelled()
            self.result = result
            self.transition(RunState.COMPLETED, COMPLETED_PERCENT, STATUS_MESSAGES[JobStatus.COMPLETED],
                            status=result.status, result=result)

    def fail(self, message: str) -> None:
        with self._lock:
            if self.state.is_terminal:
                return
            if self.token.cancelled:
                self.mark_cancelled()
                return
            self.error = message
            self.transition(RunState.ERROR, None, message, error=message)

    def mark_cancelled(self) -> None:
        with self._lock:
            if self.state.is_terminal:
                return
            self.transition(RunState.CANCELLED, None, "Transcription cancelled")

    def _publish(self, percent: Optional[float], message: str, **extra) -> None:
        # Percentages never go backwards within a run
        if percent is not None:
            self.percent = max(self.percent, percent)
        event = ProgressEvent(state=self.state, percent=self.percent, message=message, job_id=self.job_id, **extra)
        for listener in list(self._listeners):
            listener(event)


class JobOrchestrator:
    """Drives audio through upload, submission and polling."""

    def __init__(
        self,
        client: TranscriptionClient,
        poll_interval_ms: int = 5000,
        max_poll_attempts: int = 60,
        sleeper: Sleeper = wait_for
    ):
        """
        Args:
            client: Provider client used for every remote call
            poll_interval_ms: Wait between status fetches
            max_poll_attempts: Number of fetches before giving up
            sleeper: Sleep function, called as sleeper(seconds, token)
        """
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        self.client = client
        self.poll_interval_ms = poll_interval_ms
        self.max_poll_attempts = max_poll_attempts
        self._sleep = sleeper

    @classmethod
    def from_client(cls, client: TranscriptionClient, sleeper: Sleeper = wait_for) -> 'JobOrchestrator':
        """Build an orchestrator using the polling settings of the client's config."""
        return cls(
            client,
            poll_interval_ms=client.config.poll_interval_ms,
            max_poll_attempts=client.config.max_poll_attempts,
            sleeper=sleeper
        )

    def start_transcription(
        self,
        audio: AudioFile,
        options: Optional[TranscriptionOptions] = None,
        on_progress: Optional[ProgressListener] = None,
        run: Optional[TranscriptionRun] = None
    ) -> TranscriptionResult:
        """
        Transcribe an audio file from start to finish.

        Args:
            audio: Audio file to transcribe
            options: Optional feature overrides
            on_progress: Listener for the run's progress events
            run: Run to drive; a new one is created when omitted

        Returns:
            Completed TranscriptionResult

        Raises:
            ValidationError: If the file is rejected (no network call is made)
            TranscriptionError: If upload, submission or polling fails
            TranscriptionCancelledError: If the run's token is cancelled
        """
        run = run or TranscriptionRun()
        if on_progress is not None:
            run.subscribe(on_progress)

        job_id = self.submit(audio, options, run)
        return self._observe(job_id, run)

    def submit(
        self,
        audio: AudioFile,
        options: Optional[TranscriptionOptions] = None,
        run: Optional[TranscriptionRun] = None
    ) -> str:
        """
        Upload the audio and create the job, leaving the run in ``processing``.

        Returns:
            Provider-assigned job ID
        """
        run = run or TranscriptionRun()
        validate_audio_file(audio)

        try:
            run.token.raise_if_cancelled()
            run.transition(RunState.UPLOADING, UPLOAD_STARTED_PERCENT, "Uploading audio file...")

            audio_url = self.client.upload(audio.content, token=run.token)
            run.report(UPLOAD_DONE_PERCENT, "Audio uploaded, submitting transcription job...")

            run.token.raise_if_cancelled()
            job_id = self.client.submit_job(audio_url, options, token=run.token)
            run.job = TranscriptionJob(id=job_id, status=JobStatus.QUEUED, audio_url=audio_url)

            run.token.raise_if_cancelled()
            run.transition(RunState.PROCESSING, SUBMITTED_PERCENT, "Transcription started, processing audio...")
        except TranscriptionCancelledError:
            logger.info("Transcription cancelled before the job was submitted")
            run.mark_cancelled()
            raise
        except Exception as e:
            run.fail(str(e))
            if run.state is RunState.CANCELLED:
                raise TranscriptionCancelledError("Transcription cancelled") from e
            raise

        return job_id

    def resume(
        self,
        job_id: str,
        on_progress: Optional[ProgressListener] = None,
        run: Optional[TranscriptionRun] = None
    ) -> TranscriptionResult:
        """Observe an already submitted job through a fresh run."""
        run = run or TranscriptionRun()
        if on_progress is not None:
            run.subscribe(on_progress)
        run.job = TranscriptionJob(id=job_id, status=JobStatus.QUEUED)
        run.transition(RunState.PROCESSING, SUBMITTED_PERCENT, "Checking transcription status...")
        return self._observe(job_id, run)

    def _observe(self, job_id: str, run: TranscriptionRun) -> TranscriptionResult:
        def on_poll(status: JobStatus, percent: float) -> None:
            run.report(percent, STATUS_MESSAGES[status], status=status)

        try:
            result = self.poll_until_terminal(
                job_id,
                on_progress=on_poll,
                token=run.token,
                progress_band=(SUBMITTED_PERCENT, COMPLETED_PERCENT)
            )
            if not result.text:
                raise JobFailedError("Transcription completed but no text was generated", job_id=job_id)
            run.complete(result)
        except TranscriptionCancelledError:
            logger.info(f"Stopped observing transcription {job_id}")
            run.mark_cancelled()
            raise
        except Exception as e:
            run.fail(str(e))
            if run.state is RunState.CANCELLED:
                raise TranscriptionCancelledError("Transcription cancelled") from e
            raise

        logger.info(f"Transcription {job_id} completed")
        return result

    def poll_until_terminal(
        self,
        job_id: str,
        on_progress: Optional[PollProgress] = None,
        token: Optional[CancellationToken] = None,
        progress_band: Optional[Tuple[float, float]] = None
    ) -> TranscriptionResult:
        """
        Poll a job until it completes, fails or the attempt budget runs out.

        Args:
            job_id: Job to poll
            on_progress: Called as on_progress(status, percent) for non-terminal snapshots
            token: Cancellation token checked at every suspension point
            progress_band: (low, high) range to interpolate percentages into by
                iteration; the fixed per-status percentage is used when omitted

        Returns:
            The completed TranscriptionResult

        Raises:
            JobFailedError: If the provider reports the job as failed
            TranscriptionTimeoutError: After max_poll_attempts non-terminal snapshots
            TranscriptionCancelledError: If the token is cancelled
        """
        token = token or CancellationToken()

        for attempt in range(self.max_poll_attempts):
            token.raise_if_cancelled()
            # Errors escaping fetch_job have already used the client's retry budget
            result = normalize(self.client.fetch_job(job_id, token=token))

            if result.status is JobStatus.COMPLETED:
                return result
            if result.status is JobStatus.ERROR:
                raise JobFailedError(result.error or "Transcription failed", job_id=job_id)

            if on_progress is not None:
                if progress_band is None:
                    percent = float(progress_for_status(result.status))
                else:
                    low, high = progress_band
                    percent = low + (high - low) * attempt / self.max_poll_attempts
                on_progress(result.status, percent)

            if attempt + 1 < self.max_poll_attempts:
                self._sleep(self.poll_interval_ms / 1000.0, token)

        raise TranscriptionTimeoutError(
            f"Transcription timeout - exceeded maximum polling attempts ({self.max_poll_attempts})",
            job_id=job_id
        )

    def get_status(self, job_id: str, token: Optional[CancellationToken] = None) -> TranscriptionResult:
        """Single fetch and normalize, without polling."""
        return normalize(self.client.fetch_job(job_id, token=token))
