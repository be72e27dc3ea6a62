"""Core data models for tempo detection."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from beatgrid.errors import InvalidBufferError


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=np.float64, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """A fully decoded recording: one float array per channel."""
    channels: tuple[np.ndarray, ...]
    sample_rate: int

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise InvalidBufferError(f"Sample rate must be positive, got {self.sample_rate}")
        if len(self.channels) == 0:
            raise InvalidBufferError("Sample buffer has no channels")
        channels = tuple(_readonly(np.ravel(ch)) for ch in self.channels)
        lengths = {len(ch) for ch in channels}
        if len(lengths) != 1:
            raise InvalidBufferError(f"Channel lengths differ: {sorted(lengths)}")
        object.__setattr__(self, "channels", channels)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @classmethod
    def from_array(cls, audio: np.ndarray, sr: int) -> SampleBuffer:
        """Build a buffer from a 1-D (mono) or 2-D (channels x samples) array."""
        audio = np.asarray(audio)
        if audio.ndim == 1:
            return cls(channels=(audio,), sample_rate=sr)
        if audio.ndim == 2:
            return cls(channels=tuple(audio), sample_rate=sr)
        raise InvalidBufferError(f"Expected 1-D or 2-D audio, got {audio.ndim} dimensions")

    @property
    def num_channels(self) -> int:
        return len(self.channels)

    @property
    def num_samples(self) -> int:
        return len(self.channels[0])

    @property
    def duration(self) -> float:
        return self.num_samples / self.sample_rate

    def get_channel_data(self, channel: int) -> np.ndarray:
        return self.channels[channel]


@dataclass(frozen=True, eq=False)
class AutocorrelationResult:
    """Self-correlation scores of an onset function over a bounded lag range.

    ``scores`` is indexed directly by lag; entries below ``min_lag`` are
    unused and stay at zero.
    """
    min_lag: int
    max_lag: int
    scores: np.ndarray
    best_lag: int
    refined_lag: float

    def score_at(self, lag: float) -> float:
        """Score at the nearest integer lag, 0.0 outside the searched range."""
        r = int(np.floor(lag + 0.5))
        if r < self.min_lag or r > self.max_lag:
            return 0.0
        return float(self.scores[r])

    def as_dict(self) -> dict[int, float]:
        return {lag: float(self.scores[lag]) for lag in range(self.min_lag, self.max_lag + 1)}


@dataclass(frozen=True)
class BPMEstimate:
    """Final tempo estimate plus the onset signal it was derived from."""
    bpm: int  # always within [60, 300]
    offset: float  # seconds to the first beat, >= 0
    onset: np.ndarray = field(default_factory=lambda: np.zeros(0), repr=False, compare=False)
    frame_rate: float = 100.0  # onset frames per second
    beat_period_frames: float = 0.0

    @property
    def first_beat_frame(self) -> float:
        return self.offset * self.frame_rate

    def to_dict(self, include_onset: bool = False) -> dict:
        data = {
            "bpm": self.bpm,
            "offset": self.offset,
            "frame_rate": self.frame_rate,
            "beat_period_frames": self.beat_period_frames,
        }
        if include_onset:
            data["onset"] = [float(v) for v in self.onset]
        return data
