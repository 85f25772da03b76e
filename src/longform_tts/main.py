"""Longform TTS main entrypoint.

``serve`` runs the HTTP API, ``synthesize`` renders one text file into
a WAV file, ``voices`` lists the voice catalog.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from longform_tts.adapters.tts.gemini_http import GeminiHTTPSynthesizer
from longform_tts.config import Settings, get_settings
from longform_tts.errors import GenerationFailed, ValidationError
from longform_tts.logging import get_logger, setup_logging
from longform_tts.pipeline.instructions import EMOTIONS, VoiceParams
from longform_tts.pipeline.orchestrator import GenerationOrchestrator, GenerationStatus
from longform_tts.pipeline.wav_container import encode_wav
from longform_tts.playback import format_time
from longform_tts.voices import VOICE_OPTIONS, VoiceLibrary

logger = get_logger("main")


def _emotion_arg(value: str) -> tuple[str, int]:
    name, sep, raw = value.partition("=")
    name = name.strip().capitalize()
    if not sep or name not in EMOTIONS:
        raise argparse.ArgumentTypeError(
            f"expected Name=N with Name one of {', '.join(EMOTIONS)}, got {value!r}"
        )
    try:
        intensity = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"intensity must be an integer, got {raw!r}") from None
    if not 0 <= intensity <= 100:
        raise argparse.ArgumentTypeError(f"intensity must be between 0 and 100, got {intensity}")
    return name, intensity


def _speed_arg(value: str) -> int:
    try:
        speed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"speed must be an integer, got {value!r}") from None
    if not 0 <= speed <= 100:
        raise argparse.ArgumentTypeError(f"speed must be between 0 and 100, got {speed}")
    return speed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="longform-tts",
        description="Turn long text into one continuous speech recording.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: SERVER_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: SERVER_PORT)")

    synth = sub.add_parser("synthesize", help="Render a text file to WAV")
    synth.add_argument("input", type=Path, help="UTF-8 text file, or - for stdin")
    synth.add_argument("-o", "--output", type=Path, required=True, help="Output WAV path")
    synth.add_argument("--voice", default=None, help="Voice id (default: DEFAULT_VOICE_ID)")
    synth.add_argument("--speed", type=_speed_arg, default=50, help="Speaking speed 0-100")
    synth.add_argument("--description", default="", help="Free-form delivery description")
    synth.add_argument(
        "--emotion",
        type=_emotion_arg,
        action="append",
        default=[],
        metavar="NAME=N",
        help="Emotion intensity, repeatable (e.g. Happy=40)",
    )

    voices = sub.add_parser("voices", help="List available voices")
    voices.add_argument("--filter", default="", help="Case-insensitive match on name or style")

    return parser.parse_args(argv)


def _read_text(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    return path.read_text(encoding="utf-8")


def _print_status(status: GenerationStatus) -> None:
    if status.message:
        print(status.message, file=sys.stderr)


async def synthesize(args: argparse.Namespace, settings: Settings) -> int:
    """Run one generation to completion and write the WAV file."""
    library = VoiceLibrary()
    voice_id = args.voice or settings.default_voice_id
    voice = library.get(voice_id)
    if voice is None:
        print(f"Unknown voice '{voice_id}'. Run `longform-tts voices` to list them.", file=sys.stderr)
        return 2

    synthesizer = GeminiHTTPSynthesizer(settings)
    orchestrator = GenerationOrchestrator.from_settings(
        settings, synthesizer, on_status=_print_status
    )
    try:
        params = VoiceParams(
            voice=voice,
            emotions=dict(args.emotion),
            speed=args.speed,
            description=args.description,
        )
        recording = await orchestrator.start(_read_text(args.input), params)
    except ValidationError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except GenerationFailed as exc:
        print(exc.user_message, file=sys.stderr)
        return 1
    finally:
        await synthesizer.close()

    if recording is None:
        return 1
    args.output.write_bytes(encode_wav(recording))
    print(f"Wrote {args.output} ({format_time(recording.duration_s)})", file=sys.stderr)
    return 0


def list_voices(args: argparse.Namespace) -> int:
    needle = args.filter.lower()
    library = VoiceLibrary()
    for cloned in library.custom_voices:
        if needle in f"{cloned.display_name} {cloned.style_text}".lower():
            print(f"{cloned.id:<20} {cloned.display_name:<12} {'Custom':<7} {cloned.style_text}")
    for option in VOICE_OPTIONS:
        if needle in f"{option.name} {option.style}".lower():
            print(f"{option.id:<20} {option.name:<12} {option.gender:<7} {option.style}")
    return 0


def serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "longform_tts.server.main:app",
        host=args.host or settings.server_host,
        port=args.port or settings.server_port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        return serve(args, settings)
    if args.command == "voices":
        return list_voices(args)

    try:
        return asyncio.run(synthesize(args, settings))
    except KeyboardInterrupt:
        logger.info("Shutting down (keyboard interrupt)")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
