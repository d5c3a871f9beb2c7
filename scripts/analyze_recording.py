"""
Analyze a recording frame by frame with the NSDF pitch detector.

Runs the detector over consecutive buffers of a .npy recording (as the live
game would see them), then writes a JSON report and a pitch track plot next
to the recording.

Usage:
    python scripts/analyze_recording.py sample_20250101_120000.npy [--buffer-size 2048]

Output files:
    <recording>_pitch.json   - Per-frame estimates and summary statistics
    <recording>_pitch.png    - Pitch and confidence over time
"""

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from pitch_trainer.constants import BUFFER_SIZE, MIN_CLARITY_PERCENT, SAMPLE_RATE
from pitch_trainer.levels import level_db
from pitch_trainer.pitch_detector import PitchDetector


def load_recording(path: Path) -> np.ndarray:
    """Load a mono recording saved with np.save."""
    if not path.exists():
        raise FileNotFoundError(f"Recording not found: {path}")
    audio = np.load(path)
    return np.asarray(audio, dtype=np.float64).flatten()


def analyze_frames(
    audio: np.ndarray,
    buffer_size: int = BUFFER_SIZE,
    sample_rate: int = SAMPLE_RATE,
    min_clarity_percent: float = MIN_CLARITY_PERCENT,
    method: str = "direct",
) -> list[dict[str, Any]]:
    """Estimate pitch for each non-overlapping frame of the recording.

    Args:
        audio: Recording samples
        buffer_size: Samples per analysis frame
        sample_rate: Recording sample rate
        min_clarity_percent: Confidence threshold for a frame to count as voiced
        method: NSDF computation strategy ("direct" or "fft")

    Returns:
        One dict per frame with time, frequency, confidence, level and voicing
    """
    detector = PitchDetector(buffer_size, method=method)
    threshold = min_clarity_percent / 100.0

    frames = []
    for start in range(0, len(audio) - buffer_size + 1, buffer_size):
        chunk = audio[start:start + buffer_size]
        frequency, confidence = detector.estimate(chunk, sample_rate)
        frames.append({
            "time_s": start / sample_rate,
            "frequency_hz": frequency,
            "confidence": confidence,
            "level_db": level_db(chunk),
            "voiced": confidence >= threshold,
        })

    return frames


def summarize(frames: list[dict[str, Any]]) -> dict[str, Any]:
    """Summary statistics over voiced frames."""
    voiced = [f["frequency_hz"] for f in frames if f["voiced"]]
    summary: dict[str, Any] = {
        "frame_count": len(frames),
        "voiced_count": len(voiced),
        "voiced_ratio": len(voiced) / len(frames) if frames else 0.0,
    }
    if voiced:
        summary["median_frequency_hz"] = float(np.median(voiced))
        summary["min_frequency_hz"] = float(np.min(voiced))
        summary["max_frequency_hz"] = float(np.max(voiced))
    return summary


def plot_pitch_track(frames: list[dict[str, Any]], title: str, filename: Path) -> None:
    """Plot voiced frequencies and per-frame confidence."""
    times = np.array([f["time_s"] for f in frames])
    freqs = np.array([f["frequency_hz"] if f["voiced"] else np.nan for f in frames])
    confidences = np.array([f["confidence"] for f in frames])

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

    ax1.plot(times, freqs, 'b.-', linewidth=0.8)
    ax1.set_ylabel('Frequency (Hz)')
    ax1.set_title(f'{title}: Pitch Track (voiced frames)')
    ax1.grid(True, alpha=0.3)

    ax2.plot(times, confidences, 'g-', linewidth=0.8)
    ax2.axhline(MIN_CLARITY_PERCENT / 100.0, color='red', linestyle='--', linewidth=1, label='Clarity threshold')
    ax2.set_xlabel('Time (s)')
    ax2.set_ylabel('Confidence')
    ax2.set_ylim(-1.05, 1.05)
    ax2.legend()
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(filename, dpi=100)
    plt.close()
    print(f"  Saved: {filename}")


def main():
    parser = argparse.ArgumentParser(description="Frame-by-frame pitch analysis of a recording.")
    parser.add_argument("recording", type=Path, help=".npy recording")
    parser.add_argument("--buffer-size", type=int, default=BUFFER_SIZE, help="Samples per frame")
    parser.add_argument("--samplerate", type=int, default=SAMPLE_RATE, help="Recording sample rate")
    parser.add_argument("--method", choices=("direct", "fft"), default="direct", help="NSDF strategy")
    args = parser.parse_args()

    print("=" * 60)
    print(f"ANALYZING {args.recording.name}")
    print("=" * 60)

    audio = load_recording(args.recording)
    frames = analyze_frames(audio, args.buffer_size, args.samplerate, method=args.method)
    summary = summarize(frames)

    print(f"\nFrames: {summary['frame_count']}  Voiced: {summary['voiced_count']} "
          f"({summary['voiced_ratio']:.0%})")
    if "median_frequency_hz" in summary:
        print(f"Median voiced frequency: {summary['median_frequency_hz']:.2f} Hz")
    else:
        print("No clear pitch detected.")

    report = {
        "timestamp": datetime.now().isoformat(),
        "recording": str(args.recording),
        "sample_rate": args.samplerate,
        "buffer_size": args.buffer_size,
        "method": args.method,
        "summary": summary,
        "frames": frames,
    }

    stem = args.recording.with_suffix("")
    report_file = Path(f"{stem}_pitch.json")
    with open(report_file, 'w') as f:
        json.dump(report, f, indent=2)
    print(f"  Saved: {report_file}")

    if frames:
        plot_pitch_track(frames, args.recording.stem, Path(f"{stem}_pitch.png"))

    print("\nDone!")


if __name__ == "__main__":
    main()
