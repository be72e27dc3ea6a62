"""Tempo estimation by onset autocorrelation with octave correction."""

from __future__ import annotations

import logging

import numpy as np

from beatgrid.analysis.models import AutocorrelationResult
from beatgrid.config import MAX_BPM, MIN_BPM

logger = logging.getLogger(__name__)

OCTAVE_MULTIPLIERS = (1 / 3, 1 / 2, 1, 2, 3)


def _round(x: float) -> int:
    """Round half up, so 20.5 -> 21 regardless of parity."""
    return int(np.floor(x + 0.5))


def lag_to_bpm(lag: float, frame_rate: float) -> int:
    return _round(frame_rate * 60.0 / lag)


def clamp_bpm(bpm: float, min_bpm: int = MIN_BPM, max_bpm: int = MAX_BPM) -> int:
    return int(max(min_bpm, min(max_bpm, bpm)))


def lag_range(frame_rate: float, min_bpm: float = 60, max_bpm: float = 300) -> tuple[int, int]:
    """Frame lags equivalent to the fastest and slowest allowed tempo."""
    min_lag = max(1, _round(frame_rate * 60.0 / max_bpm))
    max_lag = max(min_lag, _round(frame_rate * 60.0 / min_bpm))
    return min_lag, max_lag


def refine_lag(scores: np.ndarray, best_lag: int, min_lag: int, max_lag: int) -> float:
    """Parabolic interpolation around an interior peak.

    The shift is ``(y0 - y2) / denom``, clamped to half a frame.
    Returns the integer lag unchanged at the range edges or when the three
    scores are collinear.
    """
    if not (min_lag < best_lag < max_lag):
        return float(best_lag)
    y0, y1, y2 = (float(v) for v in scores[best_lag - 1:best_lag + 2])
    denom = 2.0 * (2.0 * y1 - y0 - y2)
    if denom == 0:
        return float(best_lag)
    shift = (y0 - y2) / denom
    return best_lag + max(-0.5, min(0.5, shift))


def autocorrelate(onset: np.ndarray, min_lag: int, max_lag: int) -> AutocorrelationResult:
    """Mean lagged product of the onset function for every lag in range.

    Lags longer than the signal have no valid pairs and score 0.
    """
    n = len(onset)
    scores = np.zeros(max_lag + 1)
    for lag in range(min_lag, max_lag + 1):
        count = n - lag
        if count <= 0:
            continue
        scores[lag] = float(np.dot(onset[:count], onset[lag:])) / count

    # argmax keeps the first of equal maxima
    best_lag = min_lag + int(np.argmax(scores[min_lag:max_lag + 1]))
    refined = refine_lag(scores, best_lag, min_lag, max_lag)
    logger.debug(f"Autocorrelation lags {min_lag}-{max_lag}: best {best_lag}, refined {refined:.3f}")

    return AutocorrelationResult(
        min_lag=min_lag,
        max_lag=max_lag,
        scores=scores,
        best_lag=best_lag,
        refined_lag=refined,
    )


def tempo_weight(bpm: float, target_bpm: float = 120.0, sigma: float = 50.0) -> float:
    """Gaussian plausibility of a tempo, 1.0 at ``target_bpm``."""
    diff = bpm - target_bpm
    return float(np.exp(-(diff * diff) / (2.0 * sigma * sigma)))


def resolve_octave(
    bpm: int,
    ac: AutocorrelationResult,
    frame_rate: float,
    multipliers: tuple[float, ...] = OCTAVE_MULTIPLIERS,
    min_bpm: int = 60,
    max_bpm: int = 300,
    target_bpm: float = 120.0,
    sigma: float = 50.0,
) -> int:
    """Pick among harmonically related lags.

    Autocorrelation peaks at 1/3, 1/2, 2 and 3 times the true period as well,
    so strength alone can't choose. Each candidate is scored by its
    autocorrelation relative to the best lag times a tempo prior centred on
    ``target_bpm``. Returns ``bpm`` unchanged if no candidate qualifies.
    """
    reference = ac.score_at(ac.refined_lag)
    if reference <= 0:
        return bpm

    best_score = -np.inf
    best_bpm = bpm
    for mul in multipliers:
        candidate_lag = _round(ac.refined_lag * mul)
        if candidate_lag < ac.min_lag or candidate_lag > ac.max_lag:
            continue

        ac_val = ac.score_at(candidate_lag)
        if ac_val <= 0:
            continue

        candidate_bpm = lag_to_bpm(candidate_lag, frame_rate)
        if candidate_bpm < min_bpm or candidate_bpm > max_bpm:
            continue

        score = (ac_val / reference) * tempo_weight(candidate_bpm, target_bpm, sigma)
        logger.debug(f"  octave candidate x{mul:.2f}: lag {candidate_lag}, {candidate_bpm} BPM, score {score:.4f}")
        if score > best_score:
            best_score = score
            best_bpm = candidate_bpm

    return best_bpm


def estimate_bpm(
    onset: np.ndarray,
    frame_rate: float,
    min_bpm: int = 60,
    max_bpm: int = 300,
    multipliers: tuple[float, ...] = OCTAVE_MULTIPLIERS,
    target_bpm: float = 120.0,
    sigma: float = 50.0,
) -> tuple[int, AutocorrelationResult]:
    """Autocorrelate, resolve octave errors and clamp.

    Returns (bpm, autocorrelation result).
    """
    min_lag, max_lag = lag_range(frame_rate, min_bpm, max_bpm)
    ac = autocorrelate(onset, min_lag, max_lag)

    raw_bpm = lag_to_bpm(ac.refined_lag, frame_rate)
    bpm = resolve_octave(
        raw_bpm, ac, frame_rate,
        multipliers=multipliers,
        min_bpm=min_bpm,
        max_bpm=max_bpm,
        target_bpm=target_bpm,
        sigma=sigma,
    )
    if bpm != raw_bpm:
        logger.debug(f"Octave correction: {raw_bpm} -> {bpm} BPM")
    # Configured range first, then the hard [60, 300] limit
    bpm = clamp_bpm(bpm, min_bpm, max_bpm)
    return clamp_bpm(bpm), ac
