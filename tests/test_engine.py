"""Integration tests for the tempo detector."""

import dataclasses

import numpy as np
import soundfile as sf

from beatgrid.analysis.engine import TempoDetector, analyze_buffer
from beatgrid.analysis.models import BPMEstimate, SampleBuffer
from beatgrid.audio.session import MusicSession
from beatgrid.config import DetectorConfig
from tests.conftest import SR, generate_click_track


def test_analyze_returns_estimate(click_120):
    result = TempoDetector().analyze(click_120)

    assert isinstance(result, BPMEstimate)
    assert 60 <= result.bpm <= 300
    assert result.offset >= 0
    assert result.frame_rate == SR / 441
    assert len(result.onset) == click_120.num_samples // 441
    assert result.onset.max() == 1.0
    assert result.beat_period_frames == result.frame_rate * 60 / result.bpm
    assert result.first_beat_frame == result.offset * result.frame_rate

    data = result.to_dict()
    assert set(data) == {"bpm", "offset", "frame_rate", "beat_period_frames"}
    assert len(result.to_dict(include_onset=True)["onset"]) == len(result.onset)


def test_click_track_120_from_zero(click_120):
    result = TempoDetector().analyze(click_120)
    assert abs(result.bpm - 120) <= 1, f"BPM {result.bpm} not within 1 of 120"
    assert abs(result.offset - 0.0) <= 1.0 / result.frame_rate + 1e-9


def test_leading_silence_moves_first_beat(click_90_delayed):
    result = TempoDetector().analyze(click_90_delayed)
    assert abs(result.bpm - 90) <= 1, f"BPM {result.bpm} not within 1 of 90"
    assert abs(result.offset - 2.0) <= 0.02, f"offset {result.offset}"


def test_silence_is_well_defined(silent_buffer):
    result = TempoDetector().analyze(silent_buffer)
    assert 60 <= result.bpm <= 300
    assert result.offset == 0.0
    assert np.all(np.isfinite(result.onset))
    assert np.all(result.onset == 0)


def test_silent_stereo_and_odd_rates():
    for sr in (8000, 22050, 48000):
        buffer = SampleBuffer(channels=(np.zeros(sr), np.zeros(sr)), sample_rate=sr)
        result = analyze_buffer(buffer)
        assert 60 <= result.bpm <= 300
        assert result.offset == 0.0


def test_buffer_shorter_than_one_beat():
    # 0.3s is less than one beat at 60 BPM
    audio = generate_click_track(bpm=120, duration_seconds=0.3)
    result = analyze_buffer(SampleBuffer.from_array(audio, SR))
    assert 60 <= result.bpm <= 300
    assert result.offset >= 0.0
    assert np.isfinite(result.offset)


def test_empty_and_tiny_buffers():
    for n in (0, 1, 100):
        result = analyze_buffer(SampleBuffer.from_array(np.zeros(n), SR))
        assert 60 <= result.bpm <= 300
        assert result.offset == 0.0


def test_analysis_is_deterministic(click_120):
    detector = TempoDetector()
    first = detector.analyze(click_120)
    second = detector.analyze(click_120)
    assert first == second
    np.testing.assert_array_equal(first.onset, second.onset)


def test_stereo_with_identical_channels_matches_mono():
    audio = generate_click_track(bpm=100, duration_seconds=8)
    mono = analyze_buffer(SampleBuffer.from_array(audio, SR))
    stereo = analyze_buffer(SampleBuffer.from_array(np.stack([audio, audio]), SR))
    assert stereo.bpm == mono.bpm
    assert stereo.offset == mono.offset


def test_result_is_immutable(click_120):
    result = TempoDetector().analyze(click_120)
    try:
        result.bpm = 10
    except dataclasses.FrozenInstanceError:
        pass
    else:
        raise AssertionError("BPMEstimate should be frozen")
    assert not result.onset.flags.writeable


def test_custom_config_range_is_respected(click_120):
    config = DetectorConfig(min_bpm=70, max_bpm=100)
    result = TempoDetector(config).analyze(click_120)
    assert 70 <= result.bpm <= 100


def test_reanalyze_uses_resident_buffer(click_120):
    session = MusicSession()
    detector = TempoDetector()
    assert detector.reanalyze(session) is None

    session.set_music(click_120, "clicks.wav")
    assert detector.reanalyze(session) == detector.analyze(click_120)


def test_submit_runs_in_background(click_120):
    detector = TempoDetector(max_workers=2)
    try:
        futures = [detector.submit(click_120) for _ in range(3)]
        results = [f.result(timeout=60) for f in futures]
    finally:
        detector.close()
    assert all(r == results[0] for r in results)


def test_detect_file_updates_session(tmp_path):
    audio = generate_click_track(bpm=120, duration_seconds=6)
    wav_path = tmp_path / "song.wav"
    sf.write(str(wav_path), np.stack([audio, audio], axis=1), SR)

    session = MusicSession()
    result = TempoDetector().detect(wav_path, session=session)

    assert abs(result.bpm - 120) <= 1
    assert session.name == "song.wav"
    assert session.offset == result.offset
    buffer = session.get_music_buffer()
    assert buffer.num_channels == 2
    assert buffer.sample_rate == SR
