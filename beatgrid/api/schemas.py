"""Pydantic response models for API."""

from pydantic import BaseModel


class BPMResponse(BaseModel):
    bpm: int
    offset: float
    frame_rate: float
    beat_period_frames: float
    duration: float = 0.0
    name: str | None = None
    onset: list[float] | None = None
