"""
pitch_trainer - Real-time pitch detection (NSDF) and a pitch matching game
"""

from .constants import BUFFER_SIZE, DEFAULT_MIN_VOLUME_DECIBELS, MAX_INPUT_LENGTH, SAMPLE_RATE
from .levels import level_db
from .pitch_detector import (
    InvalidInput,
    InvalidLength,
    PitchDetectionError,
    PitchDetector,
    PitchEstimate,
)
from .pitch_game import GameUpdate, PitchGame

__version__ = "0.1.0"
__all__ = [
    "PitchDetector",
    "PitchEstimate",
    "PitchDetectionError",
    "InvalidLength",
    "InvalidInput",
    "PitchGame",
    "GameUpdate",
    "level_db",
    "SAMPLE_RATE",
    "BUFFER_SIZE",
    "DEFAULT_MIN_VOLUME_DECIBELS",
    "MAX_INPUT_LENGTH",
]
