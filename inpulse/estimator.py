"""
Pulse estimator.

Algorithm
---------
1. Smooth the raw red-channel samples with a centred moving average
   (half-window 5 → up to 11 samples, shrinking at the edges).
2. Remove the slow baseline (ambient light drift, finger pressure) with a
   first-order high-pass filter ``y[i] = α·(y[i-1] + x[i] - x[i-1])``.
3. Z-score the result.  A flat signal has no spread and is left as is.
4. Find local maxima that beat their two neighbours on each side and rise
   above one standard deviation of the normalised signal.
5. Keep peak-to-peak intervals that are plausible for a heartbeat at the
   assumed frame rate (10 – 60 samples ≈ 30 – 180 BPM at 30 fps).
6. Convert the mean interval into BPM.  The confidence rewards many intervals
   (saturating at 8) and penalises their relative spread.

Buffer position is treated as a linear time axis; the frame rate is assumed,
never measured.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Tuple

import numpy as np
from scipy.signal import convolve, lfilter

logger = logging.getLogger(__name__)


class PulseReading(NamedTuple):
    """Heart-rate estimate with a heuristic 0 – 1 confidence."""

    bpm: float
    confidence: float


# ----------------------------------------------------------------------
# Filtering steps
# ----------------------------------------------------------------------

def smooth(signal: np.ndarray, half_window: int = 5) -> np.ndarray:
    """
    Centred moving average.  Each output is the mean of the samples within
    *half_window* positions of it that actually exist.
    """
    signal = np.asarray(signal, dtype=np.float64)
    if half_window <= 0 or signal.size == 0:
        return signal.copy()
    kernel = np.ones(2 * half_window + 1)
    sums = convolve(signal, kernel, mode="same", method="direct")
    counts = convolve(np.ones_like(signal), kernel, mode="same", method="direct")
    return sums / counts


def remove_baseline(signal: np.ndarray, alpha: float = 0.95) -> np.ndarray:
    """
    First-order high-pass filter.  The filter state starts at rest on the
    first sample, so the first output is always 0.
    """
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size == 0:
        return signal.copy()
    return lfilter([alpha, -alpha], [1.0, -alpha], signal - signal[0])


def normalize(signal: np.ndarray) -> np.ndarray:
    """Z-score *signal*; returns an unmodified copy when its std is zero."""
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size == 0:
        return signal.copy()
    std = float(np.std(signal))
    if std == 0.0:
        return signal.copy()
    return (signal - np.mean(signal)) / std


def detect_peaks(signal: np.ndarray, threshold: float) -> np.ndarray:
    """
    Indices of strict local maxima over a ±2 sample neighbourhood that
    exceed *threshold*.  The first and last two samples are never peaks.
    """
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    if n < 5:
        return np.array([], dtype=np.int64)
    core = x[2:n - 2]
    mask = (
        (core > x[1:n - 3]) & (core > x[3:n - 1])
        & (core > x[0:n - 4]) & (core > x[4:n])
        & (core > threshold)
    )
    return np.flatnonzero(mask) + 2


def plausible_intervals(
    peaks: np.ndarray, min_interval: int = 10, max_interval: int = 60
) -> np.ndarray:
    """Peak-to-peak distances inside ``[min_interval, max_interval]``; the rest are dropped."""
    intervals = np.diff(np.asarray(peaks, dtype=np.int64))
    return intervals[(intervals >= min_interval) & (intervals <= max_interval)]


def variation_coefficient(values: np.ndarray) -> float:
    """Population std / mean, or 0 when the mean is 0."""
    values = np.asarray(values, dtype=np.float64)
    mean = float(np.mean(values))
    if mean == 0.0:
        return 0.0
    return float(np.std(values)) / mean


# ----------------------------------------------------------------------
# Estimator
# ----------------------------------------------------------------------

class PulseEstimator:
    """
    Turns a window of red-channel samples into a :class:`PulseReading`.

    Parameters
    ----------
    sample_rate:
        Assumed samples per second (default 30).  Used only to convert a
        mean interval into BPM.
    smoothing_half_window:
        Half-width of the moving-average filter (default 5).
    highpass_alpha:
        Coefficient of the baseline-removal filter, in ``(0, 1]``.
    min_interval, max_interval:
        Plausible peak-to-peak distance in samples (default 10 – 60).
    bpm_range:
        ``(low, high)`` clamp applied to every estimate (default 50 – 180).
    fallback_bpm:
        Rate reported when no usable rhythm is found (default 70).
    saturation_count:
        Number of valid intervals at which the count factor of the
        confidence reaches 1 (default 8).
    max_variation:
        Coefficient of variation at which the confidence drops to zero
        (default 0.5).
    """

    # Confidence reported by the two fallback branches.
    NO_VALID_INTERVALS_CONFIDENCE = 0.2
    TOO_FEW_PEAKS_CONFIDENCE = 0.1

    def __init__(
        self,
        sample_rate: float = 30.0,
        smoothing_half_window: int = 5,
        highpass_alpha: float = 0.95,
        min_interval: int = 10,
        max_interval: int = 60,
        bpm_range: Tuple[float, float] = (50.0, 180.0),
        fallback_bpm: float = 70.0,
        saturation_count: int = 8,
        max_variation: float = 0.5,
    ) -> None:
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if smoothing_half_window < 0:
            raise ValueError("smoothing_half_window must be >= 0")
        if not 0.0 < highpass_alpha <= 1.0:
            raise ValueError(f"highpass_alpha must be in (0, 1], got {highpass_alpha}")
        if not 0 < min_interval <= max_interval:
            raise ValueError(
                f"Invalid interval band [{min_interval}, {max_interval}]"
            )
        if bpm_range[0] > bpm_range[1]:
            raise ValueError(f"Invalid bpm_range {bpm_range}")
        if saturation_count < 1 or max_variation <= 0:
            raise ValueError("saturation_count and max_variation must be positive")

        self.sample_rate = float(sample_rate)
        self.smoothing_half_window = int(smoothing_half_window)
        self.highpass_alpha = float(highpass_alpha)
        self.min_interval = int(min_interval)
        self.max_interval = int(max_interval)
        self.bpm_low, self.bpm_high = float(bpm_range[0]), float(bpm_range[1])
        self.fallback_bpm = float(fallback_bpm)
        self.saturation_count = int(saturation_count)
        self.max_variation = float(max_variation)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def filter(self, samples: np.ndarray) -> np.ndarray:
        """
        Smoothed, baseline-free and normalised version of *samples*
        (steps 1 – 3).  Handy for plotting the pulse waveform.
        """
        samples = np.asarray(samples, dtype=np.float64)
        if samples.size == 0:
            raise ValueError("Cannot filter an empty signal")
        if not np.all(np.isfinite(samples)):
            raise ValueError("Signal contains NaN or infinite samples")

        # Offsetting by the first sample keeps flat input exactly flat.
        shifted = samples - samples[0]
        smoothed = smooth(shifted, self.smoothing_half_window)
        return normalize(remove_baseline(smoothed, self.highpass_alpha))

    def find_peaks(self, samples: np.ndarray) -> np.ndarray:
        """Peak indices of the filtered *samples* (step 4)."""
        normalized = self.filter(samples)
        threshold = float(np.sqrt(np.var(normalized)))
        return detect_peaks(normalized, threshold)

    def estimate(self, samples: np.ndarray) -> PulseReading:
        """
        Run the full pipeline over *samples* (oldest first).

        Raises
        ------
        ValueError
            If *samples* is empty or holds non-finite values.
        """
        return self.rate_from_peaks(self.find_peaks(samples))

    def rate_from_peaks(self, peaks: np.ndarray) -> PulseReading:
        """Steps 5 – 7: interval filtering, rate, confidence and clamping."""
        peaks = np.asarray(peaks, dtype=np.int64)

        if peaks.size > 2:
            intervals = plausible_intervals(peaks, self.min_interval, self.max_interval)
            if intervals.size > 0:
                beats_per_second = self.sample_rate / float(np.mean(intervals))
                bpm = beats_per_second * 60.0
                count_factor = min(1.0, intervals.size / self.saturation_count)
                cv = min(max(variation_coefficient(intervals), 0.0), self.max_variation)
                confidence = count_factor * (1.0 - cv / self.max_variation)
            else:
                bpm, confidence = self.fallback_bpm, self.NO_VALID_INTERVALS_CONFIDENCE
        else:
            bpm, confidence = self.fallback_bpm, self.TOO_FEW_PEAKS_CONFIDENCE

        bpm = min(max(bpm, self.bpm_low), self.bpm_high)
        logger.debug("peaks=%d bpm=%.1f confidence=%.2f", peaks.size, bpm, confidence)
        return PulseReading(float(bpm), float(confidence))
