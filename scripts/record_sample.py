"""
Record a short sample from the microphone for offline pitch analysis.

Prints the input level of the take so a recording that the game's volume gate
would ignore is noticed before it is analyzed.

Usage:
    python scripts/record_sample.py [--seconds 5] [--name sample] [--device D]
    python scripts/record_sample.py --list-devices

Output file (in current directory):
    <name>_<timestamp>.npy   - Mono float64 recording at SAMPLE_RATE
"""

import argparse
import time
from datetime import datetime
from pathlib import Path

import numpy as np

from pitch_trainer.audio_input import list_input_devices
from pitch_trainer.constants import DEFAULT_MIN_VOLUME_DECIBELS, SAMPLE_RATE
from pitch_trainer.levels import level_db, peak, to_decibels


def record_audio(
    duration: float,
    sample_rate: int = SAMPLE_RATE,
    device: int | str | None = None,
    lead_in: int = 3,
) -> np.ndarray:
    """Count down, then capture `duration` seconds from the input device.

    Returns:
        Mono float64 samples
    """
    import sounddevice as sd

    for remaining in range(lead_in, 0, -1):
        print(f"\rRecording starts in {remaining}s", end="", flush=True)
        time.sleep(1)
    print(f"\rRecording {duration:.1f}s at {sample_rate} Hz...   ")

    frames = int(round(duration * sample_rate))
    take = sd.rec(frames, samplerate=sample_rate, channels=1, dtype='float64',
                  device=device, blocking=True)
    return take[:, 0].copy()


def report_level(audio: np.ndarray, min_level_db: float = DEFAULT_MIN_VOLUME_DECIBELS) -> bool:
    """Print RMS and peak levels of a take. Returns False when it is too quiet."""
    rms_db = level_db(audio)
    peak_db = to_decibels(peak(audio))
    print(f"Level: {rms_db:.1f} dBFS RMS, {peak_db:.1f} dBFS peak")

    if peak_db >= -0.1:
        print("  Warning: the take clips, move away from the microphone")
    if rms_db < min_level_db:
        print(f"  Warning: below the {min_level_db:.0f} dBFS volume gate, "
              "the game would skip this input")
        return False
    return True


def save_recording(audio: np.ndarray, filename: str, sample_rate: int = SAMPLE_RATE) -> Path:
    """Save a take as .npy."""
    filepath = Path(filename)
    np.save(filepath, audio)
    print(f"Saved: {filepath} ({len(audio)} samples, {len(audio)/sample_rate:.1f}s)")
    return filepath


def main():
    parser = argparse.ArgumentParser(description="Record a sample for pitch analysis.")
    parser.add_argument("--seconds", type=float, default=5.0, help="Recording length")
    parser.add_argument("--name", default="sample", help="Output file prefix")
    parser.add_argument("--samplerate", type=int, default=SAMPLE_RATE, help="Sample rate")
    parser.add_argument("--device", help="Input device (index or name)")
    parser.add_argument("--min-volume-db", type=float, default=DEFAULT_MIN_VOLUME_DECIBELS,
                        help="Warn when the take is quieter than this (dBFS)")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    args = parser.parse_args()

    if args.list_devices:
        for index, name in list_input_devices():
            print(f"{index:3d}  {name}")
        return

    device = int(args.device) if args.device and args.device.isdigit() else args.device

    input("\nPress Enter when ready to record...")
    audio = record_audio(args.seconds, args.samplerate, device)
    report_level(audio, args.min_volume_db)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    save_recording(audio, f"{args.name}_{timestamp}.npy", args.samplerate)

    print("\nDone! Analyze it with: python scripts/analyze_recording.py <file>")


if __name__ == "__main__":
    main()
