"""
Utility functions for the transcription client.
"""

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .errors import ValidationError

logger = logging.getLogger(__name__)


SUPPORTED_AUDIO_TYPES = (
    'audio/mp3',
    'audio/wav',
    'audio/m4a',
    'audio/mpeg',
    'audio/mp4',
)

SUPPORTED_AUDIO_EXTENSIONS = (
    '.mp3',
    '.wav',
    '.m4a',
    '.mpeg',
    '.mp4',
)

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MiB

# mimetypes disagrees across platforms for these
_EXTENSION_TYPES = {
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.m4a': 'audio/m4a',
    '.mpeg': 'audio/mpeg',
    '.mp4': 'audio/mp4',
}


@dataclass(frozen=True)
class AudioFile:
    """Audio payload plus the metadata needed to validate it."""
    content: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> 'AudioFile':
        """
        Load an audio file from disk.

        Args:
            path: Path to the audio file
            content_type: Media type override (guessed from the extension otherwise)

        Returns:
            AudioFile instance
        """
        path = Path(path)
        if content_type is None:
            content_type = _EXTENSION_TYPES.get(get_file_extension(path.name))
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
        return cls(content=path.read_bytes(), content_type=content_type, filename=path.name)


@dataclass
class FileValidationResult:
    is_valid: bool
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def check_audio_file(audio: Optional[AudioFile]) -> FileValidationResult:
    """
    Validate an audio file without raising.

    Args:
        audio: Audio file to check

    Returns:
        FileValidationResult describing the first problem found, if any
    """
    if audio is None:
        return FileValidationResult(is_valid=False, error="No file provided")

    if audio.content_type not in SUPPORTED_AUDIO_TYPES:
        return FileValidationResult(
            is_valid=False,
            error=(
                f"Unsupported file type: {audio.content_type}. "
                f"Supported types: {', '.join(SUPPORTED_AUDIO_TYPES)}"
            )
        )

    if audio.size > MAX_FILE_SIZE:
        return FileValidationResult(
            is_valid=False,
            error=f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)}MB"
        )

    warnings = []
    if not audio.filename:
        warnings.append("File has no name")

    if audio.size == 0:
        return FileValidationResult(is_valid=False, error="File is empty")

    return FileValidationResult(is_valid=True, warnings=warnings)


def validate_audio_file(audio: Optional[AudioFile]) -> AudioFile:
    """
    Validate an audio file, raising on the first problem.

    Args:
        audio: Audio file to validate

    Returns:
        The same audio file

    Raises:
        ValidationError: If the file is missing, of an unsupported type, too large or empty
    """
    result = check_audio_file(audio)
    if not result.is_valid:
        raise ValidationError(result.error)
    for warning in result.warnings:
        logger.warning(f"Audio file warning: {warning}")
    return audio


def validate_audio_bytes(content: Optional[bytes]) -> None:
    """Size checks for raw bytes, where no media type is known."""
    if content is None:
        raise ValidationError("No file provided")
    if len(content) > MAX_FILE_SIZE:
        raise ValidationError(f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)}MB")
    if len(content) == 0:
        raise ValidationError("File is empty")


def get_file_extension(filename: str) -> str:
    """Return the lowercased extension including the dot, or '' if none."""
    suffix = Path(filename).suffix
    return suffix.lower()


def is_supported_extension(extension: str) -> bool:
    return extension.lower() in SUPPORTED_AUDIO_EXTENSIONS


def format_file_size(size: int) -> str:
    """
    Format a byte count for display.

    Args:
        size: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB")
    """
    if size == 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1

    return f"{round(value, 2):g} {units[index]}"


def format_duration(milliseconds: float) -> str:
    """
    Format a provider offset or length as a clock reading.

    Args:
        milliseconds: Duration in milliseconds, as carried by speaker segments

    Returns:
        "M:SS" below one hour, "H:MM:SS" otherwise (e.g., "1:23:45")
    """
    total_seconds = max(0, int(milliseconds)) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"

