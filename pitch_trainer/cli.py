"""
Terminal pitch game.

Usage:
    pitch-trainer [--device D] [--buffer-size N] [--min-clarity P] ...
    python -m pitch_trainer --list-devices
"""

import argparse
import logging
import sys
import time

from .audio_input import AudioInput, list_input_devices
from .constants import (
    BUFFER_SIZE,
    DEFAULT_MIN_VOLUME_DECIBELS,
    MATCH_TOLERANCE_HZ,
    MIN_CLARITY_PERCENT,
    SAMPLE_RATE,
    TARGET_FPS,
)
from .pitch_detector import InvalidLength, PitchDetector
from .pitch_game import GameUpdate, PitchGame

logger = logging.getLogger(__name__)


def _device(value: str) -> int | str:
    """Device index when numeric, otherwise a (partial) device name."""
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pitch-trainer",
        description="Match random target pitches with your voice or instrument.",
    )
    parser.add_argument("--device", type=_device, help="Input device (index or name)")
    parser.add_argument("--samplerate", type=int, default=SAMPLE_RATE, help="Sample rate in Hz")
    parser.add_argument(
        "--buffer-size", type=int, default=BUFFER_SIZE, help="Samples per analysis buffer"
    )
    parser.add_argument(
        "--min-clarity",
        type=float,
        default=MIN_CLARITY_PERCENT,
        help="Minimum clarity in percent for a pitch to count",
    )
    parser.add_argument(
        "--min-volume-db",
        type=float,
        default=DEFAULT_MIN_VOLUME_DECIBELS,
        help="Ignore buffers quieter than this level (dBFS)",
    )
    parser.add_argument(
        "--tolerance", type=float, default=MATCH_TOLERANCE_HZ, help="Match tolerance in Hz"
    )
    parser.add_argument("--fps", type=float, default=TARGET_FPS, help="Analysis ticks per second")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def format_status(update: GameUpdate) -> str:
    target = f"{update.target:.1f} Hz" if update.target is not None else "--"
    marker = " *" if update.matched else ""
    return (
        f"Pitch: {update.display_text:>10}  "
        f"Target: {target:>10}  "
        f"Score: {update.score}{marker}"
    )


def run_game(
    game: PitchGame,
    audio: AudioInput,
    fps: float = TARGET_FPS,
    duration: float | None = None,
) -> int:
    """Run analysis ticks until interrupted or duration elapses. Returns the score."""
    interval = 1.0 / fps
    started = time.monotonic()
    game.start()

    try:
        while game.is_playing:
            if duration is not None and time.monotonic() - started >= duration:
                break
            update = game.update(audio.read(), audio.sample_rate)
            print(f"\r{format_status(update)}", end="", flush=True)
            time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        print()
        game.stop()

    return game.score


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Arguments: %s", args)

    if args.list_devices:
        for index, name in list_input_devices():
            print(f"{index:3d}  {name}")
        return 0

    if args.fps <= 0:
        parser.error("--fps must be positive")
    if args.samplerate <= 0:
        parser.error("--samplerate must be positive")

    try:
        detector = PitchDetector(args.buffer_size)
    except InvalidLength as e:
        parser.error(str(e))

    game = PitchGame(
        detector,
        min_clarity_percent=args.min_clarity,
        min_volume_decibels=args.min_volume_db,
        tolerance_hz=args.tolerance,
    )
    audio = AudioInput(
        buffer_size=args.buffer_size,
        sample_rate=args.samplerate,
        device=args.device,
    )

    import sounddevice as sd

    try:
        audio.start()
    except sd.PortAudioError as e:
        print(f"Audio error: {e}", file=sys.stderr)
        return 1

    try:
        score = run_game(game, audio, fps=args.fps, duration=args.duration)
    finally:
        audio.stop()

    print(f"Final score: {score}")
    return 0
