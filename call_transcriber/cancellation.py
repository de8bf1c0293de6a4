"""
Cancellation token shared by every suspension point of an orchestration.
"""

import threading
from typing import Optional

from .errors import TranscriptionCancelledError


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call any number of times."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True as soon as the token is cancelled."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TranscriptionCancelledError("Transcription cancelled")


def wait_for(seconds: float, token: Optional[CancellationToken] = None) -> None:
    """
    Default sleeper: interruptible wait that raises once cancelled.

    Args:
        seconds: How long to wait
        token: Token to observe; a fresh one is used when omitted

    Raises:
        TranscriptionCancelledError: If the token is cancelled before or during the wait
    """
    if token is None:
        token = CancellationToken()
    token.raise_if_cancelled()
    if token.wait(seconds):
        token.raise_if_cancelled()
