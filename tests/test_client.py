import pytest
import requests

from call_transcriber.cancellation import CancellationToken
from call_transcriber.client import TranscriptionClient, build_job_request, map_provider_error
from call_transcriber.config import ProviderConfig
from call_transcriber.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    InvalidRequestError,
    OperationError,
    ProviderError,
    RateLimitError,
    TranscriptionCancelledError,
    UploadError,
    ValidationError,
)
from call_transcriber.models import DEFAULT_PII_POLICIES, TranscriptionOptions
from call_transcriber.utils import MAX_FILE_SIZE

from conftest import FakeResponse, FakeSession


def _client(config, responses, sleeper=None):
    session = FakeSession(responses)
    kwargs = {"session": session}
    if sleeper is not None:
        kwargs["sleeper"] = sleeper
    return TranscriptionClient(config, **kwargs), session


def test_client_requires_api_key():
    with pytest.raises(ConfigurationError):
        TranscriptionClient(None)
    with pytest.raises(ConfigurationError):
        ProviderConfig(api_key="")


def test_client_sets_authorization_header(config):
    client, session = _client(config, [])
    assert session.headers["authorization"] == "test-key-123456"
    assert client.base_url == "https://api.example.test"


def test_build_job_request_defaults():
    payload = build_job_request("https://cdn/audio")
    assert payload == {
        "audio_url": "https://cdn/audio",
        "speaker_labels": True,
        "sentiment_analysis": True,
        "summarization": True,
        "redact_pii": True,
        "redact_pii_policies": list(DEFAULT_PII_POLICIES),
        "auto_highlights": True,
        "language_code": "en",
    }
    assert "us_social_security_number" in payload["redact_pii_policies"]
    assert "date_of_birth" in payload["redact_pii_policies"]


def test_build_job_request_overrides():
    payload = build_job_request("u", TranscriptionOptions(sentiment_analysis=False, language_code="es"))
    assert payload["sentiment_analysis"] is False
    assert payload["language_code"] == "es"
    assert payload["speaker_labels"] is True


def test_upload_returns_reference(config):
    client, session = _client(config, [FakeResponse(200, {"upload_url": "https://cdn/u1"})])
    assert client.upload(b"abc") == "https://cdn/u1"
    call = session.calls[0]
    assert call["url"] == "https://api.example.test/v2/upload"
    assert call["data"] == b"abc"


def test_upload_failure_is_upload_error_and_not_retried(config, sleeper):
    client, session = _client(config, [FakeResponse(401, {"error": "bad key"})], sleeper)
    with pytest.raises(UploadError) as excinfo:
        client.upload(b"abc")
    assert "invalid credentials" in str(excinfo.value)
    assert excinfo.value.status_code == 401
    assert len(session.calls) == 1
    assert sleeper.delays == []


def test_upload_transport_error(config):
    client, _ = _client(config, [requests.ConnectionError("connection refused")])
    with pytest.raises(UploadError, match="connection refused"):
        client.upload(b"abc")


def test_upload_rejects_empty_and_oversized_payloads(config):
    client, session = _client(config, [])
    with pytest.raises(ValidationError):
        client.upload(b"")
    with pytest.raises(ValidationError):
        client.upload(b"\x00" * (MAX_FILE_SIZE + 1))
    assert session.calls == []


def test_submit_job_posts_fixed_request(config):
    client, session = _client(config, [FakeResponse(200, {"id": "job-9", "status": "queued"})])
    assert client.submit_job("https://cdn/u1") == "job-9"
    call = session.calls[0]
    assert call["url"] == "https://api.example.test/v2/transcript"
    assert call["json"]["audio_url"] == "https://cdn/u1"
    assert call["json"]["redact_pii"] is True


def test_submit_job_retries_with_exponential_backoff(config, sleeper):
    responses = [
        FakeResponse(500),
        FakeResponse(429),
        FakeResponse(200, {"id": "job-2"}),
    ]
    client, session = _client(config, responses, sleeper)
    assert client.submit_job("u") == "job-2"
    assert len(session.calls) == 3
    assert sleeper.delays == [1.0, 2.0]


def test_fetch_job_exhausts_retries(config, sleeper):
    failures = [requests.ConnectionError("network down") for _ in range(5)]
    client, session = _client(config, failures, sleeper)

    with pytest.raises(OperationError) as excinfo:
        client.fetch_job("job-1")

    assert len(session.calls) == config.max_retries == 3
    assert sleeper.delays == [1.0, 2.0]
    assert excinfo.value.attempts == 3
    message = str(excinfo.value)
    assert message.startswith("Failed to get transcription status")
    assert "network down" in message


def test_backoff_scales_with_retry_delay(sleeper):
    config = ProviderConfig(api_key="k" * 12, max_retries=4, retry_delay_ms=250)
    client, _ = _client(config, [FakeResponse(503)] * 4, sleeper)
    with pytest.raises(ProviderError):
        client.fetch_job("job-1")
    assert sleeper.delays == [0.25, 0.5, 1.0]


def test_authentication_errors_are_not_retried(config, sleeper):
    client, session = _client(config, [FakeResponse(401), FakeResponse(200, {"id": "x"})], sleeper)
    with pytest.raises(AuthenticationError, match="invalid credentials"):
        client.submit_job("u")
    assert len(session.calls) == 1
    assert sleeper.delays == []


def test_cancelled_token_stops_before_request(config):
    client, session = _client(config, [FakeResponse(200, {"id": "x"})])
    token = CancellationToken()
    token.cancel()
    with pytest.raises(TranscriptionCancelledError):
        client.fetch_job("job-1", token=token)
    assert session.calls == []


def test_cancellation_during_backoff_stops_retries(config):
    token = CancellationToken()

    def cancelling_sleeper(seconds, tok=None):
        token.cancel()
        tok.raise_if_cancelled()

    client, session = _client(config, [FakeResponse(500)] * 3, cancelling_sleeper)
    with pytest.raises(TranscriptionCancelledError):
        client.fetch_job("job-1", token=token)
    assert len(session.calls) == 1


@pytest.mark.parametrize("status_code, error_cls, text", [
    (401, AuthenticationError, "invalid credentials"),
    (403, AuthorizationError, "access denied"),
    (429, RateLimitError, "rate limit exceeded"),
    (400, InvalidRequestError, "check audio format"),
    (500, ProviderError, "upstream service error"),
    (502, ProviderError, "upstream service error"),
    (404, OperationError, "404 Error"),
])
def test_map_provider_error(status_code, error_cls, text):
    exc = requests.HTTPError(f"{status_code} Error", response=FakeResponse(status_code))
    mapped = map_provider_error(exc, "Doing things")
    assert type(mapped) is error_cls
    assert mapped.status_code == status_code
    assert mapped.message.startswith("Doing things: ")
    assert text in mapped.message


def test_map_provider_error_without_status():
    mapped = map_provider_error(requests.Timeout("read timed out"), "Fetching")
    assert isinstance(mapped, OperationError)
    assert mapped.message == "Fetching: read timed out"
    assert mapped.status_code is None
