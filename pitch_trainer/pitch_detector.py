"""
Time-domain pitch detection using the normalized square difference function.

The detector compares a buffer with delayed copies of itself. The lag at which
the buffer is most self-similar is taken as the period of the fundamental.
"""

from typing import NamedTuple

import numpy as np
from scipy.signal import fftconvolve

from .constants import DEFAULT_MIN_VOLUME_DECIBELS, MAX_INPUT_LENGTH

METHODS = ("direct", "fft")

# Largest |nsdf| - 1 treated as rounding error
ROUNDING_TOLERANCE = 1e-12

# FFT lags whose overlap energy is below this fraction of the buffer energy
# are set to 0, as their autocorrelation is below the FFT rounding noise
FFT_DIVISOR_FLOOR = 1e-9


class PitchDetectionError(ValueError):
    """Base class for caller errors raised by the pitch detector."""


class InvalidLength(PitchDetectionError):
    """Detector constructed with an unusable buffer length."""


class InvalidInput(PitchDetectionError):
    """Buffer or sample rate passed to estimate() violates its preconditions."""


class PitchEstimate(NamedTuple):
    """Estimated pitch of one buffer. (0.0, 0.0) means no pitch was found."""
    frequency: float
    confidence: float


class PitchDetector:
    """
    Pitch detector for fixed-length buffers of monophonic audio.

    Each call to estimate() is independent: the detector keeps only its
    configuration, all working arrays are allocated per call. One instance can
    therefore be shared between threads.

    Algorithm:
    1. Normalized square difference function (NSDF) over every lag
    2. Peak picking, one candidate lag per positive run of the NSDF
    3. Selection of the candidate with the highest NSDF value
    4. Turning point refinement by symmetric comparison around the candidate
    5. Conversion of the refined lag into a frequency
    """

    def __init__(
        self,
        input_length: int,
        min_volume_decibels: float = DEFAULT_MIN_VOLUME_DECIBELS,
        method: str = "direct",
    ):
        """
        Initialize detector.

        Args:
            input_length: Number of samples in every analyzed buffer
            min_volume_decibels: Loudness gate for callers (not applied here)
            method: "direct" for the brute-force sum, "fft" for FFT convolution

        Raises:
            InvalidLength: If input_length is not an int in [1, MAX_INPUT_LENGTH]
            ValueError: If method is unknown
        """
        if isinstance(input_length, bool) or not isinstance(input_length, (int, np.integer)):
            raise InvalidLength(f"Input length must be an integer, got {input_length!r}")
        if input_length <= 0:
            raise InvalidLength(f"Input length must be positive, got {input_length}")
        if input_length > MAX_INPUT_LENGTH:
            raise InvalidLength(
                f"Input length {input_length} exceeds maximum of {MAX_INPUT_LENGTH}"
            )
        if method not in METHODS:
            raise ValueError(f"Unknown NSDF method {method!r}, expected one of {METHODS}")

        self._input_length = int(input_length)
        self.min_volume_decibels = min_volume_decibels
        self.method = method

    @classmethod
    def for_length(cls, length: int) -> "PitchDetector":
        """Create a detector for buffers of the given length."""
        return cls(length)

    @property
    def input_length(self) -> int:
        """Buffer length this detector was built for."""
        return self._input_length

    def set_min_volume_decibels(self, decibels: float):
        self.min_volume_decibels = decibels

    def set_method(self, method: str):
        if method not in METHODS:
            raise ValueError(f"Unknown NSDF method {method!r}, expected one of {METHODS}")
        self.method = method

    def estimate(self, samples, sample_rate: float) -> PitchEstimate:
        """
        Estimate the pitch of a buffer.

        Args:
            samples: Exactly input_length audio samples
            sample_rate: Sample rate in Hz

        Returns:
            PitchEstimate with frequency in Hz and NSDF confidence.
            (0.0, 0.0) when the buffer has no positive NSDF peak.

        Raises:
            InvalidInput: On a length mismatch or a non-positive sample rate
        """
        signal = self._validate(samples, sample_rate)

        nsdf = self.normalized_square_difference(signal)
        max_positions = self.peak_picking(nsdf)
        max_position = self.find_best_peak(max_positions, nsdf)
        if max_position is None:
            return PitchEstimate(0.0, 0.0)

        turning_point = self.find_turning_point(max_position, nsdf)
        frequency = sample_rate / turning_point
        confidence = nsdf[int(round(turning_point))]
        return PitchEstimate(float(frequency), float(confidence))

    def _validate(self, samples, sample_rate: float) -> np.ndarray:
        signal = np.asarray(samples, dtype=np.float64)
        if signal.ndim != 1 or signal.shape[0] != self._input_length:
            raise InvalidInput(
                f"Expected {self._input_length} samples, got array of shape {signal.shape}"
            )
        # `not >` also rejects NaN
        if not sample_rate > 0:
            raise InvalidInput(f"Sample rate must be positive, got {sample_rate}")
        return signal

    def normalized_square_difference(self, samples) -> np.ndarray:
        """
        Compute the NSDF of a buffer for every lag in [0, N).

        nsdf[tau] = 2 * acf(tau) / divisor(tau), where acf is the
        autocorrelation over the overlapping part and divisor the summed
        energy of both overlapping parts. Lags with a zero divisor get 0, and
        with the "fft" method so do lags below FFT_DIVISOR_FLOOR.

        Args:
            samples: Audio samples (any length)

        Returns:
            NSDF values in [-1, 1] for finite input, nsdf[0] == 1 (to rounding)
            for a non-silent buffer
        """
        signal = np.asarray(samples, dtype=np.float64)
        n = len(signal)
        if n == 0:
            return np.zeros(0, dtype=np.float64)

        if self.method == "fft":
            acf = fftconvolve(signal, signal[::-1], mode="full")[n - 1 :]
        else:
            acf = np.correlate(signal, signal, mode="full")[n - 1 :]

        # divisor(tau) = energy of x[0:n-tau] + energy of x[tau:n]
        # Both terms are running sums, never differences of them
        squares = signal * signal
        head = np.concatenate(([0.0], np.cumsum(squares)))
        tail = np.cumsum(squares[::-1])[::-1]
        tau = np.arange(n)
        divisor = head[n - tau] + tail

        valid = divisor != 0
        if self.method == "fft":
            # FFT rounding error is absolute (about eps times the buffer energy)
            valid &= divisor > FFT_DIVISOR_FLOOR * divisor[0]

        nsdf = np.divide(
            2.0 * acf,
            divisor,
            out=np.zeros(n, dtype=np.float64),
            where=valid,
        )
        # Snap rounding overshoot only; larger excursions are left visible
        overshoot = np.abs(nsdf) - 1.0
        return np.where(overshoot <= ROUNDING_TOLERANCE, np.clip(nsdf, -1.0, 1.0), nsdf)

    @staticmethod
    def peak_picking(nsdf: np.ndarray) -> list[int]:
        """
        Find one candidate lag per positive run of the NSDF.

        A run starts at the first positive value and ends at the next value
        <= 0. The lag of the run maximum (first occurrence on ties) is kept
        when it is above 0. A run still open at the end of the buffer is
        dropped.
        """
        max_positions = []
        cur_max_pos = 0
        is_positive = False

        for pos in range(len(nsdf)):
            value = nsdf[pos]
            if value > 0 and not is_positive:
                is_positive = True
                cur_max_pos = pos
            elif value <= 0 and is_positive:
                is_positive = False
                if cur_max_pos > 0:
                    max_positions.append(cur_max_pos)
            elif is_positive and value > nsdf[cur_max_pos]:
                cur_max_pos = pos

        return max_positions

    @staticmethod
    def find_best_peak(max_positions: list[int], nsdf: np.ndarray) -> int | None:
        """Return the candidate with the highest NSDF value, None if there is none."""
        highest_amplitude = -np.inf
        best_position = None

        for position in max_positions:
            if nsdf[position] > highest_amplitude:
                highest_amplitude = nsdf[position]
                best_position = position

        return best_position

    @staticmethod
    def find_turning_point(max_position: int, nsdf: np.ndarray) -> int:
        """
        Refine a peak lag by comparing NSDF values symmetrically around it.

        Walks outward with delta = 0, 1, 2, ... and returns the side that is
        strictly larger at the first delta where both sides differ. Lag 0 is
        never compared. Returns max_position when the bounds are reached first.
        """
        delta = 0
        while max_position + delta < len(nsdf) and max_position - delta > 0:
            left = nsdf[max_position - delta]
            right = nsdf[max_position + delta]
            if left > right:
                return max_position - delta
            elif left < right:
                return max_position + delta
            delta += 1
        return max_position
