import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from call_transcriber.config import ProviderConfig  # noqa: E402
from call_transcriber.utils import AudioFile  # noqa: E402


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}

    def _next(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)


class RecordingSleeper:
    """Sleeper that records requested delays instead of waiting."""

    def __init__(self, on_sleep=None):
        self.delays: List[float] = []
        self.on_sleep = on_sleep

    def __call__(self, seconds, token=None):
        self.delays.append(seconds)
        if self.on_sleep is not None:
            self.on_sleep(len(self.delays))
        if token is not None:
            token.raise_if_cancelled()


class FakeProviderClient:
    """Provider client double with scripted job records and call counters."""

    def __init__(self, records: Optional[List[Any]] = None, upload_error=None, submit_error=None):
        self.records = list(records or [])
        self.upload_error = upload_error
        self.submit_error = submit_error
        self.upload_calls = 0
        self.submit_calls = 0
        self.fetch_calls = 0
        self.order: List[str] = []

    def upload(self, audio, token=None):
        self.upload_calls += 1
        self.order.append("upload")
        if self.upload_error is not None:
            raise self.upload_error
        return "https://cdn.example.test/upload/abc"

    def submit_job(self, audio_url, options=None, token=None):
        self.submit_calls += 1
        self.order.append("submit")
        if self.submit_error is not None:
            raise self.submit_error
        return "job-1"

    def fetch_job(self, job_id, token=None):
        self.fetch_calls += 1
        self.order.append("fetch")
        if len(self.records) > 1:
            item = self.records.pop(0)
        else:
            item = self.records[0]
        if isinstance(item, Exception):
            raise item
        return item


def job_record(status: str, **fields) -> Dict[str, Any]:
    record = {"id": "job-1", "status": status}
    record.update(fields)
    return record


COMPLETED_RECORD = job_record(
    "completed",
    text="hello world",
    utterances=[{"speaker": "A", "text": "hello world", "start": 0, "end": 1000, "confidence": 0.9}],
)


@pytest.fixture
def config() -> ProviderConfig:
    return ProviderConfig(api_key="test-key-123456", base_url="https://api.example.test", retry_delay_ms=1000)


@pytest.fixture
def audio() -> AudioFile:
    return AudioFile(content=b"ID3" + b"\x00" * 64, content_type="audio/mpeg", filename="call.mp3")


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()
