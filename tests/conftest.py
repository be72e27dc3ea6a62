"""Shared test fixtures for tempo detector tests."""

import numpy as np
import pytest
from fastapi.testclient import TestClient

from beatgrid.analysis.models import SampleBuffer
from beatgrid.main import app

SR = 44100


@pytest.fixture
def client():
    """FastAPI test client with an empty music session."""
    from beatgrid.api.upload import session

    session.clear()
    yield TestClient(app)
    session.clear()


def generate_click_track(
    bpm: float,
    duration_seconds: float = 10.0,
    sr: int = SR,
    leading_silence: float = 0.0,
    frequency: float = 100.0,
) -> np.ndarray:
    """Generate a synthetic kick-like click track.

    Each click is a low sine burst with a 10ms linear attack and a fast
    exponential decay, so the energy peaks just after the click starts.
    Clicks begin at ``leading_silence`` seconds and repeat every beat for
    ``duration_seconds``.
    """
    n_samples = int((leading_silence + duration_seconds) * sr)
    audio = np.zeros(n_samples, dtype=np.float32)

    click_duration = 0.15
    click_samples = int(click_duration * sr)
    t_click = np.arange(click_samples) / sr
    attack = 0.01
    envelope = np.where(
        t_click < attack,
        t_click / attack,
        np.exp(-(t_click - attack) / 0.02),
    )
    click = np.sin(2 * np.pi * frequency * t_click) * envelope

    beat_interval = 60.0 / bpm
    beat = 0
    while True:
        time = leading_silence + beat * beat_interval
        if time >= leading_silence + duration_seconds:
            break
        sample_pos = int(round(time * sr))
        end = min(sample_pos + click_samples, n_samples)
        length = end - sample_pos
        if length > 0:
            audio[sample_pos:end] += click[:length]
        beat += 1

    return audio * 0.8


@pytest.fixture
def click_120():
    """Mono buffer: 120 BPM clicks from t=0 for 10 seconds."""
    return SampleBuffer.from_array(generate_click_track(bpm=120), SR)


@pytest.fixture
def click_90_delayed():
    """Mono buffer: 90 BPM clicks after 2 seconds of silence."""
    return SampleBuffer.from_array(
        generate_click_track(bpm=90, leading_silence=2.0), SR,
    )


@pytest.fixture
def silent_buffer():
    return SampleBuffer.from_array(np.zeros(SR * 5, dtype=np.float32), SR)
