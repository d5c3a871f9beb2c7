"""
Signal level measurements used for volume gating.
"""

import numpy as np

from .constants import SILENCE_FLOOR_DB


def rms(samples) -> float:
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples**2)))


def peak(samples) -> float:
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.max(np.abs(samples)))


def to_decibels(amplitude: float, floor_db: float = SILENCE_FLOOR_DB) -> float:
    """Convert a linear amplitude (1.0 = full scale) to dBFS, clamped at floor_db."""
    if amplitude <= 0:
        return floor_db
    return max(floor_db, 20.0 * float(np.log10(amplitude)))


def level_db(samples) -> float:
    """RMS level of a buffer in dBFS."""
    return to_decibels(rms(samples))


def is_loud_enough(samples, min_volume_decibels: float) -> bool:
    return level_db(samples) >= min_volume_decibels
