"""Energy envelopes and the combined onset function."""

import numpy as np


def frame_interval_samples(sr: int, interval: float = 0.01) -> int:
    """Samples per onset frame (rounded half up, never below one)."""
    return max(1, int(np.floor(sr * interval + 0.5)))


def compute_envelope(audio: np.ndarray, interval_size: int) -> np.ndarray:
    """RMS of each non-overlapping window; the trailing partial window is dropped."""
    n_frames = len(audio) // interval_size
    if n_frames == 0:
        return np.zeros(0)
    windows = np.asarray(audio[:n_frames * interval_size], dtype=np.float64)
    windows = windows.reshape(n_frames, interval_size)
    return np.sqrt(np.mean(windows ** 2, axis=1))


def positive_derivative(envelope: np.ndarray) -> np.ndarray:
    """Keep only rises in energy. The first frame has no predecessor and is 0."""
    out = np.zeros(len(envelope))
    if len(envelope) > 1:
        out[1:] = np.maximum(np.diff(envelope), 0.0)
    return out


def combine_onsets(
    low_onset: np.ndarray,
    mid_onset: np.ndarray,
    low_weight: float = 0.7,
    mid_weight: float = 0.3,
) -> np.ndarray:
    """Blend two band onsets, truncated to the shorter one.

    The low band dominates since the kick carries the beat most reliably.
    """
    n = min(len(low_onset), len(mid_onset))
    return low_onset[:n] * low_weight + mid_onset[:n] * mid_weight


def normalize_onsets(onset: np.ndarray) -> np.ndarray:
    """Scale so the peak is 1.0; an all-zero signal is returned as is."""
    max_val = float(onset.max()) if len(onset) else 0.0
    if max_val > 0:
        return onset / max_val
    return onset


def onset_function(
    low_band: np.ndarray,
    mid_band: np.ndarray,
    interval_size: int,
    low_weight: float = 0.7,
    mid_weight: float = 0.3,
) -> np.ndarray:
    """Build the normalized onset function from two filtered bands.

    Returns
    -------
    np.ndarray
        One non-negative value per frame, peak-normalized to 1.0.
    """
    low_onset = positive_derivative(compute_envelope(low_band, interval_size))
    mid_onset = positive_derivative(compute_envelope(mid_band, interval_size))
    combined = combine_onsets(low_onset, mid_onset, low_weight, mid_weight)
    return normalize_onsets(combined)
