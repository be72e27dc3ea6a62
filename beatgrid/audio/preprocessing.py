"""Audio preprocessing: mono downmix and the one-pole band filter bank."""

from __future__ import annotations

import numpy as np
from scipy.signal import lfilter

from beatgrid.analysis.models import SampleBuffer


def downmix_to_mono(buffer: SampleBuffer) -> np.ndarray:
    """Collapse a buffer to a single channel.

    With two or more channels the first two are averaged sample for sample;
    a mono buffer is passed through unchanged.
    """
    if buffer.num_channels >= 2:
        return (buffer.get_channel_data(0) + buffer.get_channel_data(1)) * 0.5
    return buffer.get_channel_data(0)


def _time_constants(sr: int, cutoff: float) -> tuple[float, float]:
    rc = 1.0 / (2.0 * np.pi * cutoff)
    dt = 1.0 / sr
    return rc, dt


def low_pass_onepole(audio: np.ndarray, sr: int, cutoff: float) -> np.ndarray:
    """One-pole RC low-pass.

    ``y[i] = y[i-1] + alpha * (x[i] - y[i-1])`` with ``y[0] = alpha * x[0]``.
    """
    audio = np.asarray(audio, dtype=np.float64)
    if len(audio) == 0:
        return np.zeros(0)
    rc, dt = _time_constants(sr, cutoff)
    alpha = dt / (rc + dt)
    return lfilter([alpha], [1.0, alpha - 1.0], audio)


def high_pass_onepole(audio: np.ndarray, sr: int, cutoff: float) -> np.ndarray:
    """One-pole RC high-pass.

    ``y[i] = alpha * (y[i-1] + x[i] - x[i-1])`` with ``y[0] = x[0]``.
    """
    audio = np.asarray(audio, dtype=np.float64)
    if len(audio) == 0:
        return np.zeros(0)
    rc, dt = _time_constants(sr, cutoff)
    alpha = rc / (rc + dt)
    # Initial state makes the first output equal the first input
    zi = np.array([(1.0 - alpha) * audio[0]])
    out, _ = lfilter([alpha, -alpha], [1.0, -alpha], audio, zi=zi)
    return out


def band_pass_filter(
    audio: np.ndarray,
    sr: int,
    low_cut: float,
    high_cut: float,
) -> np.ndarray:
    """High-pass at ``low_cut`` then low-pass at ``high_cut``.

    Parameters
    ----------
    audio:
        Mono input signal.
    sr:
        Sample rate in Hz.
    low_cut, high_cut:
        Cutoff frequencies in Hz.
    """
    return low_pass_onepole(high_pass_onepole(audio, sr, low_cut), sr, high_cut)


def split_bands(
    audio: np.ndarray,
    sr: int,
    low_band: tuple[float, float] = (40.0, 160.0),
    mid_band: tuple[float, float] = (300.0, 3000.0),
) -> tuple[np.ndarray, np.ndarray]:
    """Return the (low, mid) filtered copies of a mono signal."""
    low = band_pass_filter(audio, sr, *low_band)
    mid = band_pass_filter(audio, sr, *mid_band)
    return low, mid
