"""Thin CLI entry point — builds Settings and launches the web UI."""

import argparse
import logging
import sys
import threading
import webbrowser
from pathlib import Path

from pronounce import devices, ffutil
from pronounce.errors import PronounceError
from pronounce.logging_config import setup_logging
from pronounce.platforms import detect_platform
from pronounce.settings import Settings, load_settings
from pronounce.timecode import format_time

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pronounce",
        description="Pronounce — practice pronunciation against a reference clip.",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Console log level")
    # also accepted after the subcommand; unset there unless given
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-level", type=str, default=argparse.SUPPRESS, help="Console log level")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", parents=[common], help="Launch the practice UI (default)")
    serve.add_argument("--settings", "-s", type=Path, help="Path to a JSON settings file")
    serve.add_argument("--port", type=int, default=None, help="Port to listen on")
    serve.add_argument("--host", type=str, default=None, help="Host to bind to")
    serve.add_argument("--device", type=str, default=None, help="Capture device (default: system default)")
    serve.add_argument("--recording", type=Path, default=None, help="Where to write the recording")
    serve.add_argument("--no-browser", action="store_true", help="Do not open a browser window")

    sub.add_parser("devices", parents=[common], help="List capture devices")

    probe = sub.add_parser("probe", parents=[common], help="Print the duration of an audio file")
    probe.add_argument("audio", type=Path, help="Audio file")

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings_path = getattr(args, "settings", None)
    settings = load_settings(settings_path) if settings_path else Settings()

    if getattr(args, "port", None) is not None:
        settings.server.port = args.port
    if getattr(args, "host", None) is not None:
        settings.server.host = args.host
    if getattr(args, "device", None) is not None:
        settings.recorder.device = args.device
    if getattr(args, "recording", None) is not None:
        settings.recorder.recording_path = args.recording
    if getattr(args, "no_browser", False):
        settings.server.open_browser = False
    if args.log_level:
        settings.log_level = args.log_level.upper()
    return settings


def serve(settings: Settings) -> None:
    from pronounce.web import create_app

    try:
        ffutil.check_ffmpeg()
    except ffutil.FFmpegNotFoundError as e:
        logger.warning("%s; probing and playback will fail", e)

    app = create_app(settings=settings)
    session = app.config["SESSION"]
    url = f"http://{settings.server.host}:{settings.server.port}"
    print(f"Pronounce UI: {url}")
    if settings.server.open_browser:
        threading.Timer(1.0, webbrowser.open, args=(url,)).start()

    try:
        app.run(host=settings.server.host, port=settings.server.port, debug=False, threaded=True)
    except KeyboardInterrupt:
        pass
    finally:
        session.loop.call(session.shutdown)
        session.loop.stop()


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _settings_from_args(args)
    setup_logging(settings.log_level)

    try:
        platform = detect_platform()
    except PronounceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command in (None, "serve"):
        serve(settings)
        return

    if args.command == "devices":
        try:
            found = devices.list_input_devices(platform)
        except PronounceError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if not found:
            print("No capture devices found")
        for d in found:
            print(d.name)
        return

    if args.command == "probe":
        if not args.audio.is_file():
            print(f"Error: file not found: {args.audio}", file=sys.stderr)
            sys.exit(1)
        try:
            duration = ffutil.probe_duration(args.audio, cmd=platform.build_probe_command(args.audio))
        except PronounceError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"{format_time(duration)} ({duration:.2f}s)")


if __name__ == "__main__":
    main()
