"""Beat phase alignment and leading-silence skipping."""

from __future__ import annotations

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)


def _grid_score(onset: np.ndarray, phase: float, period: float) -> float:
    """Mean onset value sampled on a grid starting at ``phase``."""
    n = len(onset)
    if n == 0:
        return 0.0
    positions = phase + period * np.arange(int(np.ceil((n - phase) / period)))
    idx = np.floor(positions + 0.5).astype(int)
    idx = idx[(idx >= 0) & (idx < n)]
    if len(idx) == 0:
        return 0.0
    return float(onset[idx].mean())


def scan_phase(onset: np.ndarray, period: float, max_steps: int = 200) -> float:
    """Find the grid phase (in frames, within one period) best matching the onsets.

    Up to ``min(ceil(period), max_steps)`` evenly spaced phases are tried;
    the earliest one wins ties.
    """
    steps = max(1, min(math.ceil(period), max_steps))
    best_phase = 0.0
    best_score = -np.inf
    for p in range(steps):
        phase = p * period / steps
        score = _grid_score(onset, phase, period)
        if score > best_score:
            best_score = score
            best_phase = phase
    return best_phase


def find_content_start(onset: np.ndarray, threshold: float = 0.05) -> int:
    """First frame whose onset exceeds ``threshold`` times the peak; 0 when flat."""
    if len(onset) == 0:
        return 0
    above = np.flatnonzero(onset > onset.max() * threshold)
    if len(above) == 0:
        return 0
    return int(above[0])


def find_beat_offset(
    onset: np.ndarray,
    period: float,
    frame_rate: float,
    max_steps: int = 200,
    threshold: float = 0.05,
) -> float:
    """Time in seconds of the first beat that falls inside the music.

    The best grid phase is pushed forward by whole periods until it is no
    earlier than half a period before the content start.
    """
    phase = scan_phase(onset, period, max_steps)
    content_start = find_content_start(onset, threshold)

    first_beat = phase
    while first_beat < content_start - period * 0.5:
        first_beat += period

    logger.debug(f"Phase {phase:.2f} frames, content starts at frame {content_start}, first beat {first_beat:.2f}")
    return max(0.0, first_beat / frame_rate)
