"""
Data models for the transcription client.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class JobStatus(Enum):
    """Status of a transcription job on the provider side."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


class OverallSentiment(Enum):
    """Call-level sentiment label."""
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class RunState(Enum):
    """State of a single local orchestration."""
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.ERROR, RunState.CANCELLED)


DEFAULT_PII_POLICIES: Tuple[str, ...] = (
    "person_name",
    "email_address",
    "phone_number",
    "credit_card_number",
    "date",
    "location",
    "us_social_security_number",
    "account_number",
    "date_of_birth",
)


@dataclass(frozen=True)
class TranscriptionOptions:
    """Feature switches sent with every job; all analysis is on by default."""
    speaker_labels: bool = True
    sentiment_analysis: bool = True
    summarization: bool = True
    redact_pii: bool = True
    auto_highlights: bool = True
    language_code: str = "en"
    redact_pii_policies: Tuple[str, ...] = DEFAULT_PII_POLICIES


@dataclass(frozen=True)
class TranscriptionJob:
    """A submitted job, identified by the provider-assigned id."""
    id: str
    status: JobStatus
    audio_url: Optional[str] = None


@dataclass(frozen=True)
class SpeakerSegment:
    """One diarized utterance; start/end are millisecond offsets."""
    speaker: str
    text: str
    start: int
    end: int
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence
        }


@dataclass(frozen=True)
class SentimentSegment:
    text: str
    sentiment: str
    confidence: Optional[float] = None
    start: Optional[int] = None
    end: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "sentiment": self.sentiment,
            "confidence": self.confidence,
            "start": self.start,
            "end": self.end
        }


@dataclass(frozen=True)
class SentimentScores:
    """Number of segments carrying each sentiment label."""
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    @property
    def overall(self) -> OverallSentiment:
        """Strict majority between positive and negative; anything else is neutral."""
        if self.positive > self.negative:
            return OverallSentiment.POSITIVE
        if self.negative > self.positive:
            return OverallSentiment.NEGATIVE
        return OverallSentiment.NEUTRAL

    def to_dict(self) -> Dict[str, int]:
        return {
            "positive": self.positive,
            "negative": self.negative,
            "neutral": self.neutral
        }


@dataclass(frozen=True)
class SentimentAnalysis:
    """Sentiment of the whole call.

    ``overall`` is always derived from ``scores`` and cannot be set directly.
    """
    scores: SentimentScores
    segments: Tuple[SentimentSegment, ...] = ()

    @property
    def overall(self) -> OverallSentiment:
        return self.scores.overall

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.value,
            "scores": self.scores.to_dict(),
            "segments": [segment.to_dict() for segment in self.segments]
        }


@dataclass(frozen=True)
class Redaction:
    text: str
    type: str
    confidence: Optional[float] = None
    start: Optional[int] = None
    end: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "type": self.type,
            "confidence": self.confidence,
            "start": self.start,
            "end": self.end
        }


@dataclass(frozen=True)
class HighlightTimestamp:
    start: int
    end: int


@dataclass(frozen=True)
class Highlight:
    """A provider-ranked key phrase."""
    text: str
    count: int
    rank: float
    timestamps: Tuple[HighlightTimestamp, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "count": self.count,
            "rank": self.rank,
            "timestamps": [{"start": ts.start, "end": ts.end} for ts in self.timestamps]
        }


@dataclass(frozen=True)
class TranscriptionResult:
    """Normalized snapshot of a job, rebuilt on every status fetch."""
    id: str
    status: JobStatus
    text: Optional[str] = None
    speakers: Tuple[SpeakerSegment, ...] = ()
    sentiment: Optional[SentimentAnalysis] = None
    summary: Optional[str] = None
    pii_redactions: Tuple[Redaction, ...] = ()
    auto_highlights: Tuple[Highlight, ...] = ()
    error: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        """False for failed jobs and for completed jobs without text."""
        if self.status is JobStatus.ERROR:
            return False
        if self.status is JobStatus.COMPLETED and not self.text:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "text": self.text,
            "speakers": [segment.to_dict() for segment in self.speakers],
            "sentiment": self.sentiment.to_dict() if self.sentiment else None,
            "summary": self.summary,
            "pii_redactions": [redaction.to_dict() for redaction in self.pii_redactions],
            "auto_highlights": [highlight.to_dict() for highlight in self.auto_highlights],
            "error": self.error
        }


@dataclass(frozen=True)
class ProgressEvent:
    """One entry of the progress stream emitted by an orchestration."""
    state: RunState
    percent: float
    message: str
    job_id: Optional[str] = None
    status: Optional[JobStatus] = None
    result: Optional[TranscriptionResult] = field(default=None, repr=False)
    error: Optional[str] = None
