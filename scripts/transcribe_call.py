#!/usr/bin/env python3
"""
Command-line utility for transcribing sales-call recordings.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from tqdm import tqdm

# Add the parent directory to Python path to import call_transcriber
sys.path.insert(0, str(Path(__file__).parent.parent))

from call_transcriber import (
    AudioFile,
    TranscriptionError,
    TranscriptionOptions,
    TranscriptionRun,
    TranscriptionService,
)
from call_transcriber.config import health_report
from call_transcriber.utils import (
    check_audio_file,
    format_duration,
    format_file_size,
    get_file_extension,
    is_supported_extension,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def options_from_args(args) -> TranscriptionOptions:
    """Build TranscriptionOptions from the feature toggles."""
    return TranscriptionOptions(
        speaker_labels=args.speaker_labels,
        sentiment_analysis=args.sentiment,
        summarization=args.summary,
        redact_pii=args.pii,
        auto_highlights=args.highlights,
        language_code=args.language,
    )


def load_audio(path: str) -> AudioFile:
    """Load and pre-check an audio file, exiting with a message if it is rejected."""
    extension = get_file_extension(path)
    if not is_supported_extension(extension):
        print(f"❌ Unsupported audio extension: {extension or '(none)'}")
        sys.exit(1)

    audio = AudioFile.from_path(path)
    check = check_audio_file(audio)
    if not check.is_valid:
        print(f"❌ {check.error}")
        sys.exit(1)
    print(f"🎧 {audio.filename} ({format_file_size(audio.size)}, {audio.content_type})")
    return audio


def write_output(data: dict, output: Optional[str]):
    if not output:
        return
    with open(output, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    print(f"✅ Saved result to {output}")


def print_result(result):
    formatted = TranscriptionService.format_result(result)
    print(f"📋 Transcription ID: {formatted['id']}")
    print(f"⏱️  Duration: {format_duration(formatted['duration'] * 1000)}")
    print(f"📝 Words: {formatted['word_count']}")
    if formatted['sentiment']:
        print(f"🙂 Sentiment: {formatted['sentiment']['overall']}")
    for speaker, stats in formatted['speaker_stats'].items():
        spoken = format_duration(stats['duration'] * 1000)
        print(f"   Speaker {speaker}: {stats['segments']} segments, {stats['words']} words, {spoken}")
    if formatted['summary']:
        print(f"\n📄 Summary:\n{formatted['summary']}")


def transcribe(args, service: TranscriptionService):
    """Upload a file and wait for the finished transcription."""
    audio = load_audio(args.audio_file)
    run = TranscriptionRun()

    with tqdm(total=100, desc="Transcribing", unit="%") as bar:
        def on_progress(status: str, percent: float, message: str):
            bar.update(max(0.0, percent - bar.n))
            bar.set_postfix_str(status)

        try:
            result = service.start_transcription(
                audio,
                options_from_args(args),
                on_progress=on_progress,
                on_cancel=lambda: print("\n⏹️  Transcription cancelled"),
                run=run
            )
        except KeyboardInterrupt:
            run.cancel()
            raise

    if result is None:
        return
    print_result(result)
    write_output(result.to_dict(), args.output)


def submit(args, service: TranscriptionService):
    """Upload a file and print the transcription ID without waiting."""
    audio = load_audio(args.audio_file)
    transcription_id = service.submit_transcription(audio, options_from_args(args))
    print("✅ Transcription submitted")
    print(f"📋 Transcription ID: {transcription_id}")


def status(args, service: TranscriptionService):
    """Check the status of a transcription."""
    result = service.check_status(args.transcription_id)
    print(f"📋 Transcription ID: {result.id}")
    print(f"📊 Status: {result.status.value.upper()}")
    if result.error:
        print(f"❌ Error: {result.error}")
    write_output(result.to_dict(), args.output)


def wait(args, service: TranscriptionService):
    """Poll an existing transcription until it finishes."""
    with tqdm(total=100, desc="Waiting", unit="%") as bar:
        def on_progress(status: str, percent: float, message: str):
            bar.update(max(0.0, percent - bar.n))
            bar.set_postfix_str(status)

        result = service.poll_transcription_status(args.transcription_id, on_progress=on_progress)
        bar.update(100 - bar.n)

    print_result(result)
    write_output(result.to_dict(), args.output)


def health(args):
    """Report whether the provider credential is configured."""
    report = health_report()
    print(f"🩺 Status: {report['status'].upper()}")
    for service_name, service_status in report['services'].items():
        print(f"   {service_name}: {service_status}")
    return report['status'] == 'healthy'


def add_feature_flags(parser: argparse.ArgumentParser):
    parser.add_argument('--no-speaker-labels', dest='speaker_labels', action='store_false',
                        help='Disable speaker diarization')
    parser.add_argument('--no-sentiment', dest='sentiment', action='store_false',
                        help='Disable sentiment analysis')
    parser.add_argument('--no-summary', dest='summary', action='store_false',
                        help='Disable summarization')
    parser.add_argument('--no-pii', dest='pii', action='store_false',
                        help='Disable PII redaction')
    parser.add_argument('--no-highlights', dest='highlights', action='store_false',
                        help='Disable auto highlights')
    parser.add_argument('--language', default='en', help='Language code (default: en)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Transcribe and analyze sales-call recordings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Setup: put ASSEMBLYAI_API_KEY in .env
  python -m scripts.transcribe_call health

  # Transcribe a call and save the analysis
  python -m scripts.transcribe_call transcribe call.mp3 --output call.json

  # Submit now, collect later
  python -m scripts.transcribe_call submit call.wav --no-pii
  python -m scripts.transcribe_call status abc-123
  python -m scripts.transcribe_call wait abc-123 --output call.json
        """
    )

    parser.add_argument('--env-file', default='.env', help='Environment file to load (default: .env)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    transcribe_parser = subparsers.add_parser('transcribe', help='Transcribe an audio file and wait')
    transcribe_parser.add_argument('audio_file', help='Path to the audio file')
    transcribe_parser.add_argument('--output', help='Write the result JSON to this file')
    add_feature_flags(transcribe_parser)

    submit_parser = subparsers.add_parser('submit', help='Submit an audio file without waiting')
    submit_parser.add_argument('audio_file', help='Path to the audio file')
    add_feature_flags(submit_parser)

    status_parser = subparsers.add_parser('status', help='Check transcription status')
    status_parser.add_argument('transcription_id', help='Transcription ID to check')
    status_parser.add_argument('--output', help='Write the result JSON to this file')

    wait_parser = subparsers.add_parser('wait', help='Wait for a submitted transcription')
    wait_parser.add_argument('transcription_id', help='Transcription ID to wait for')
    wait_parser.add_argument('--output', help='Write the result JSON to this file')

    subparsers.add_parser('health', help='Check configuration health')

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    load_dotenv(args.env_file, override=False)

    if args.command == 'health':
        sys.exit(0 if health(args) else 1)

    commands = {
        'transcribe': transcribe,
        'submit': submit,
        'status': status,
        'wait': wait,
    }

    try:
        with TranscriptionService.from_env() as service:
            commands[args.command](args, service)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except TranscriptionError as e:
        logger.error(f"Command failed: {e.message}")
        sys.exit(1)


if __name__ == '__main__':
    main()
