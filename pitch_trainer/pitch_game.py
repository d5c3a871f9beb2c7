"""
Pitch matching game.

The player sings or plays toward a randomly chosen target frequency. Every
analysis tick the latest audio buffer is run through the pitch detector; a
clear pitch close enough to the target scores a point and picks a new target.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from .constants import (
    DEFAULT_MIN_VOLUME_DECIBELS,
    MATCH_TOLERANCE_HZ,
    MIN_CLARITY_PERCENT,
    TARGET_MAX_HZ,
    TARGET_MIN_HZ,
)
from .levels import level_db
from .pitch_detector import PitchDetector

logger = logging.getLogger(__name__)


@dataclass
class GameUpdate:
    """Outcome of one analysis tick."""

    frequency: float = 0.0  # Estimated pitch in Hz (0 when not analyzed)
    confidence: float = 0.0  # NSDF value at the estimated lag
    level_db: float = -math.inf  # RMS level of the buffer in dBFS
    voiced: bool = False  # Confidence reached the clarity threshold
    matched: bool = False  # Voiced pitch hit the target, score incremented
    score: int = 0
    target: float | None = None

    @property
    def display_text(self) -> str:
        """Pitch as shown to the player, '--' when no clear pitch."""
        if not self.voiced:
            return "--"
        return f"{self.frequency:.1f} Hz"


class PitchGame:
    """
    Game state around a PitchDetector.

    The detector applies no thresholds; this class decides whether a buffer is
    loud enough to analyze (min_volume_decibels) and whether an estimate is
    clear enough to count (min_clarity_percent).
    """

    def __init__(
        self,
        detector: PitchDetector,
        min_clarity_percent: float = MIN_CLARITY_PERCENT,
        min_volume_decibels: float = DEFAULT_MIN_VOLUME_DECIBELS,
        target_range: tuple[int, int] = (TARGET_MIN_HZ, TARGET_MAX_HZ),
        tolerance_hz: float = MATCH_TOLERANCE_HZ,
        rng: np.random.Generator | None = None,
    ):
        """
        Initialize game.

        Args:
            detector: Pitch detector sized for the capture buffer
            min_clarity_percent: Minimum confidence (0-100) for a pitch to count
            min_volume_decibels: Buffers quieter than this (dBFS) are skipped
            target_range: (low, high) bounds for random targets in Hz
            tolerance_hz: Maximum distance from the target for a match
            rng: Random generator for targets (seeded in tests)
        """
        low, high = target_range
        if high <= low:
            raise ValueError(f"Invalid target range: {target_range}")

        self.detector = detector
        self.min_clarity_percent = min_clarity_percent
        self.min_volume_decibels = min_volume_decibels
        self.target_range = (low, high)
        self.tolerance_hz = tolerance_hz
        self._rng = rng if rng is not None else np.random.default_rng()

        self.score = 0
        self.target: float | None = None
        self.is_playing = False

        detector.set_min_volume_decibels(min_volume_decibels)

    def set_min_clarity_percent(self, percent: float):
        self.min_clarity_percent = max(0.0, min(100.0, percent))

    def set_min_volume_decibels(self, decibels: float):
        self.min_volume_decibels = decibels
        self.detector.set_min_volume_decibels(decibels)

    def set_tolerance(self, tolerance_hz: float):
        self.tolerance_hz = tolerance_hz

    def start(self):
        """Start a new round: reset the score and draw a target."""
        self.score = 0
        self.generate_new_target()
        self.is_playing = True
        logger.info("Game started, target %.1f Hz", self.target)

    def stop(self):
        self.is_playing = False
        logger.info("Game stopped, final score %d", self.score)

    def toggle(self):
        """Start when stopped, stop when playing (the start/stop button)."""
        if self.is_playing:
            self.stop()
        else:
            self.start()

    def generate_new_target(self) -> float:
        """Draw a whole-number target frequency in [low, high)."""
        low, high = self.target_range
        self.target = float(math.floor(self._rng.random() * (high - low) + low))
        return self.target

    def update(self, samples, sample_rate: float) -> GameUpdate:
        """
        Analyze the latest buffer and advance the game.

        Args:
            samples: Most recent detector.input_length samples
            sample_rate: Sample rate in Hz

        Returns:
            GameUpdate describing this tick
        """
        if not self.is_playing:
            return GameUpdate(score=self.score, target=self.target)

        level = level_db(samples)
        if level < self.min_volume_decibels:
            return GameUpdate(level_db=level, score=self.score, target=self.target)

        frequency, confidence = self.detector.estimate(samples, sample_rate)
        voiced = confidence >= self.min_clarity_percent / 100.0

        matched = False
        if voiced and abs(frequency - self.target) < self.tolerance_hz:
            matched = True
            self.score += 1
            logger.info(
                "Matched %.1f Hz (target %.1f Hz), score %d",
                frequency,
                self.target,
                self.score,
            )
            self.generate_new_target()
        elif voiced:
            logger.debug("Pitch %.1f Hz, confidence %.3f", frequency, confidence)

        return GameUpdate(
            frequency=frequency,
            confidence=confidence,
            level_db=level,
            voiced=voiced,
            matched=matched,
            score=self.score,
            target=self.target,
        )
