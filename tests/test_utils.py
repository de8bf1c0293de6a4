import pytest

from call_transcriber.errors import ValidationError
from call_transcriber.utils import (
    MAX_FILE_SIZE,
    AudioFile,
    check_audio_file,
    format_duration,
    format_file_size,
    get_file_extension,
    is_supported_extension,
    validate_audio_bytes,
    validate_audio_file,
)


@pytest.mark.parametrize("content_type", ["audio/mp3", "audio/wav", "audio/m4a", "audio/mpeg", "audio/mp4"])
def test_supported_types_pass(content_type):
    result = check_audio_file(AudioFile(content=b"abc", content_type=content_type, filename="a"))
    assert result.is_valid
    assert result.error is None


def test_missing_file():
    result = check_audio_file(None)
    assert not result.is_valid
    assert result.error == "No file provided"


def test_type_is_checked_before_size():
    oversized_text = AudioFile(content=b"\x00" * (MAX_FILE_SIZE + 1), content_type="text/plain", filename="a.txt")
    result = check_audio_file(oversized_text)
    assert result.error.startswith("Unsupported file type: text/plain")
    assert "audio/wav" in result.error


def test_size_limit_is_inclusive():
    at_limit = AudioFile(content=b"\x00" * MAX_FILE_SIZE, content_type="audio/wav", filename="a.wav")
    over = AudioFile(content=b"\x00" * (MAX_FILE_SIZE + 1), content_type="audio/wav", filename="a.wav")
    assert check_audio_file(at_limit).is_valid
    assert check_audio_file(over).error == "File too large. Maximum size is 100MB"


def test_empty_file_is_rejected():
    result = check_audio_file(AudioFile(content=b"", content_type="audio/wav", filename="a.wav"))
    assert result.error == "File is empty"


def test_missing_name_is_only_a_warning():
    result = check_audio_file(AudioFile(content=b"abc", content_type="audio/wav"))
    assert result.is_valid
    assert result.warnings == ["File has no name"]


def test_validate_audio_file_raises():
    with pytest.raises(ValidationError, match="File is empty"):
        validate_audio_file(AudioFile(content=b"", content_type="audio/mpeg", filename="a.mp3"))
    audio = AudioFile(content=b"abc", content_type="audio/mpeg", filename="a.mp3")
    assert validate_audio_file(audio) is audio


def test_validate_audio_bytes():
    validate_audio_bytes(b"abc")
    with pytest.raises(ValidationError):
        validate_audio_bytes(None)
    with pytest.raises(ValidationError):
        validate_audio_bytes(b"")


def test_from_path_guesses_type(tmp_path):
    path = tmp_path / "Call.MP3"
    path.write_bytes(b"ID3data")
    audio = AudioFile.from_path(path)
    assert audio.content_type == "audio/mpeg"
    assert audio.filename == "Call.MP3"
    assert audio.size == 7


def test_from_path_unknown_extension(tmp_path):
    path = tmp_path / "notes.unknownext"
    path.write_bytes(b"x")
    assert AudioFile.from_path(path).content_type == "application/octet-stream"
    assert AudioFile.from_path(path, content_type="audio/wav").content_type == "audio/wav"


@pytest.mark.parametrize("size, expected", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1536, "1.5 KB"),
    (5 * 1024 * 1024, "5 MB"),
    (3 * 1024 ** 3, "3 GB"),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


@pytest.mark.parametrize("milliseconds, expected", [
    (0, "0:00"),
    (999, "0:00"),
    (59_900, "0:59"),
    (61_000, "1:01"),
    (3_600_000, "1:00:00"),
    (5_025_000, "1:23:45"),
    (-500, "0:00"),
])
def test_format_duration(milliseconds, expected):
    assert format_duration(milliseconds) == expected


def test_extensions():
    assert get_file_extension("call.WAV") == ".wav"
    assert get_file_extension("README") == ""
    assert is_supported_extension(".M4A")
    assert not is_supported_extension(".ogg")

