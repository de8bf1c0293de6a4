"""
Normalization of raw provider job records into TranscriptionResult.

Every function here is pure: the same record always gives an equal result.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ResponseFormatError
from .models import (
    Highlight,
    HighlightTimestamp,
    JobStatus,
    Redaction,
    SentimentAnalysis,
    SentimentScores,
    SentimentSegment,
    SpeakerSegment,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)

STATUS_PROGRESS = {
    JobStatus.QUEUED: 10,
    JobStatus.PROCESSING: 50,
    JobStatus.COMPLETED: 100,
    JobStatus.ERROR: 0,
}


def progress_for_status(status: JobStatus) -> int:
    """Fixed progress percentage for a provider status."""
    return STATUS_PROGRESS[status]


def parse_status(value: Any) -> JobStatus:
    try:
        return JobStatus(str(value).lower())
    except ValueError:
        logger.warning(f"Unknown provider status {value!r}, treating as processing")
        return JobStatus.PROCESSING


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _list_or_none(value: Any) -> Optional[List[Any]]:
    return value if isinstance(value, list) else None


# Speaker data arrives in one of several shapes. Each detector returns the raw
# segment list when its shape is present and None otherwise; the first hit wins.

def _utterances(raw: Mapping[str, Any]) -> Optional[List[Any]]:
    return _list_or_none(raw.get('utterances'))


def _flat_speaker_labels(raw: Mapping[str, Any]) -> Optional[List[Any]]:
    return _list_or_none(raw.get('speaker_labels'))


def _nested_speaker_segments(raw: Mapping[str, Any]) -> Optional[List[Any]]:
    labels = raw.get('speaker_labels')
    if isinstance(labels, Mapping):
        return _list_or_none(labels.get('segments'))
    return None


SPEAKER_SHAPES: Sequence[Tuple[str, Callable[[Mapping[str, Any]], Optional[List[Any]]]]] = (
    ('utterances', _utterances),
    ('speaker_labels', _flat_speaker_labels),
    ('speaker_labels.segments', _nested_speaker_segments),
)


def _speaker_segment(entry: Mapping[str, Any]) -> SpeakerSegment:
    start = _int_or_none(entry.get('start')) or 0
    end = _int_or_none(entry.get('end'))
    if end is None or end < start:
        end = start
    return SpeakerSegment(
        speaker=_text(entry.get('speaker')),
        text=_text(entry.get('text')),
        start=start,
        end=end,
        confidence=_float_or_none(entry.get('confidence')),
    )


def normalize_speakers(raw: Mapping[str, Any]) -> Tuple[SpeakerSegment, ...]:
    for shape, detect in SPEAKER_SHAPES:
        entries = detect(raw)
        if entries is not None:
            logger.debug(f"Speaker data found under '{shape}' ({len(entries)} segments)")
            return tuple(_speaker_segment(e) for e in entries if isinstance(e, Mapping))
    return ()


def normalize_sentiment(raw: Mapping[str, Any]) -> Optional[SentimentAnalysis]:
    """
    Build the sentiment block.

    Returns None (not an empty analysis) when the record has no sentiment array.
    """
    entries = _list_or_none(raw.get('sentiment_analysis_results'))
    if entries is None:
        return None

    segments = tuple(
        SentimentSegment(
            text=_text(entry.get('text')),
            sentiment=_text(entry.get('sentiment')),
            confidence=_float_or_none(entry.get('confidence')),
            start=_int_or_none(entry.get('start')),
            end=_int_or_none(entry.get('end')),
        )
        for entry in entries
        if isinstance(entry, Mapping)
    )

    counts: Dict[str, int] = {}
    for segment in segments:
        if segment.sentiment:
            label = segment.sentiment.lower()
            counts[label] = counts.get(label, 0) + 1

    scores = SentimentScores(
        positive=counts.get('positive', 0),
        negative=counts.get('negative', 0),
        neutral=counts.get('neutral', 0),
    )
    return SentimentAnalysis(scores=scores, segments=segments)


def normalize_redactions(raw: Mapping[str, Any]) -> Tuple[Redaction, ...]:
    entries = _list_or_none(raw.get('pii_redaction_results')) or []
    return tuple(
        Redaction(
            text=_text(entry.get('text')),
            type=_text(entry.get('type')),
            confidence=_float_or_none(entry.get('confidence')),
            start=_int_or_none(entry.get('start')),
            end=_int_or_none(entry.get('end')),
        )
        for entry in entries
        if isinstance(entry, Mapping)
    )


def normalize_highlights(raw: Mapping[str, Any]) -> Tuple[Highlight, ...]:
    container = raw.get('auto_highlights_result')
    entries = _list_or_none(container.get('results')) if isinstance(container, Mapping) else None
    highlights = []
    for entry in entries or []:
        if not isinstance(entry, Mapping):
            continue
        timestamps = tuple(
            HighlightTimestamp(start=_int_or_none(ts.get('start')) or 0, end=_int_or_none(ts.get('end')) or 0)
            for ts in (_list_or_none(entry.get('timestamps')) or [])
            if isinstance(ts, Mapping)
        )
        highlights.append(
            Highlight(
                text=_text(entry.get('text')),
                count=_int_or_none(entry.get('count')) or 0,
                rank=_float_or_none(entry.get('rank')) or 0.0,
                timestamps=timestamps,
            )
        )
    return tuple(highlights)


def normalize(raw: Mapping[str, Any]) -> TranscriptionResult:
    """
    Convert a provider job record into a TranscriptionResult.

    Args:
        raw: Job record as returned by the job-fetch endpoint

    Returns:
        Normalized TranscriptionResult

    Raises:
        ResponseFormatError: If the record is not a mapping or has no job id
    """
    if not isinstance(raw, Mapping):
        raise ResponseFormatError(f"Expected a job record mapping, got {type(raw).__name__}")
    if not raw.get('id'):
        raise ResponseFormatError("Job record has no id")

    status = parse_status(raw.get('status'))
    summary = raw.get('summary')

    return TranscriptionResult(
        id=str(raw['id']),
        status=status,
        text=raw.get('text') or None,
        speakers=normalize_speakers(raw),
        sentiment=normalize_sentiment(raw),
        summary=str(summary) if summary else None,
        pii_redactions=normalize_redactions(raw),
        auto_highlights=normalize_highlights(raw),
        error=(raw.get('error') or None) if status is JobStatus.ERROR else None,
    )


def summarize_result(result: TranscriptionResult) -> Dict[str, Any]:
    """
    Derive display statistics from a result.

    Args:
        result: Normalized transcription result

    Returns:
        Dictionary with word_count, duration (seconds) and per-speaker stats
    """
    speaker_stats: Dict[str, Dict[str, float]] = {}
    for segment in result.speakers:
        stats = speaker_stats.setdefault(segment.speaker, {'segments': 0, 'words': 0, 'duration': 0.0})
        stats['segments'] += 1
        stats['words'] += len(segment.text.split())
        stats['duration'] += (segment.end - segment.start) / 1000.0

    duration = result.speakers[-1].end / 1000.0 if result.speakers else 0.0

    return {
        'word_count': len(result.text.split()) if result.text else 0,
        'duration': duration,
        'speaker_stats': speaker_stats,
    }
