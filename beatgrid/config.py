"""Application configuration."""

from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings

# Hard tempo limits; configured ranges must sit inside them
MIN_BPM = 60
MAX_BPM = 300


class Settings(BaseSettings):
    """App settings with env var overrides."""

    # Audio decoding (None keeps the file's native rate)
    sample_rate: int | None = None
    mono: bool = False

    # Analysis
    min_bpm: int = Field(MIN_BPM, ge=MIN_BPM, le=MAX_BPM)
    max_bpm: int = Field(MAX_BPM, ge=MIN_BPM, le=MAX_BPM)
    frame_interval: float = 0.01  # seconds per onset frame
    target_bpm: float = 120.0
    tempo_sigma: float = 50.0
    low_band_weight: float = 0.7
    silence_threshold: float = 0.05
    max_phase_steps: int = 200
    analysis_workers: int = 2

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    max_upload_mb: int = 50

    model_config = {"env_prefix": "BEATGRID_"}


settings = Settings()


@dataclass(frozen=True)
class DetectorConfig:
    """Per-call parameters of the tempo detector.

    The defaults reproduce the reference behaviour; tweak a copy with
    ``dataclasses.replace`` rather than mutating shared state.
    """

    # Band filter cutoffs in Hz: (high-pass, low-pass)
    low_band: tuple[float, float] = (40.0, 160.0)  # kick
    mid_band: tuple[float, float] = (300.0, 3000.0)  # snare / hats
    low_band_weight: float = 0.7
    mid_band_weight: float = 0.3

    frame_interval: float = 0.01
    min_bpm: int = 60
    max_bpm: int = 300

    # Octave resolution
    octave_multipliers: tuple[float, ...] = (1 / 3, 1 / 2, 1, 2, 3)
    target_bpm: float = 120.0
    tempo_sigma: float = 50.0

    # Phase scan
    silence_threshold: float = 0.05
    max_phase_steps: int = 200

    def __post_init__(self):
        if not (MIN_BPM <= self.min_bpm <= self.max_bpm <= MAX_BPM):
            raise ValueError(
                f"BPM range [{self.min_bpm}, {self.max_bpm}] must lie within [{MIN_BPM}, {MAX_BPM}]"
            )

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> "DetectorConfig":
        s = s or settings
        return cls(
            low_band_weight=s.low_band_weight,
            mid_band_weight=round(1.0 - s.low_band_weight, 6),
            frame_interval=s.frame_interval,
            min_bpm=s.min_bpm,
            max_bpm=s.max_bpm,
            target_bpm=s.target_bpm,
            tempo_sigma=s.tempo_sigma,
            silence_threshold=s.silence_threshold,
            max_phase_steps=s.max_phase_steps,
        )
