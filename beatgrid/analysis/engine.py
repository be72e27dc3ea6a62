"""Detection orchestrator - runs the full tempo/offset pipeline."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from beatgrid.analysis.models import BPMEstimate, SampleBuffer
from beatgrid.analysis.onset import frame_interval_samples, onset_function
from beatgrid.analysis.phase import find_beat_offset
from beatgrid.analysis.tempo import estimate_bpm
from beatgrid.audio.loader import load_audio
from beatgrid.audio.preprocessing import downmix_to_mono, split_bands
from beatgrid.audio.session import MusicSession, MusicSource
from beatgrid.config import DetectorConfig, settings

logger = logging.getLogger(__name__)


class TempoDetector:
    """Estimates BPM and first-beat offset of a decoded recording.

    The detector keeps no per-analysis state, so one instance can serve
    many threads. ``submit`` runs analysis on a small worker pool for
    callers that must not block.
    """

    def __init__(self, config: DetectorConfig | None = None, max_workers: int | None = None):
        self.config = config or DetectorConfig.from_settings()
        self._max_workers = max_workers or settings.analysis_workers
        self._pool: ThreadPoolExecutor | None = None
        self._pool_lock = threading.Lock()

    def analyze(self, buffer: SampleBuffer) -> BPMEstimate:
        """Run the full pipeline on one buffer."""
        cfg = self.config
        sr = buffer.sample_rate
        logger.info(f"Analyzing {buffer.duration:.1f}s of audio at {sr}Hz ({buffer.num_channels} ch)")

        # Step 1: mono + band split
        mono = downmix_to_mono(buffer)
        low_band, mid_band = split_bands(mono, sr, cfg.low_band, cfg.mid_band)

        # Step 2: envelopes -> onset function
        interval_size = frame_interval_samples(sr, cfg.frame_interval)
        onset = onset_function(
            low_band, mid_band, interval_size,
            low_weight=cfg.low_band_weight,
            mid_weight=cfg.mid_band_weight,
        )
        frame_rate = sr / interval_size

        # Step 3: periodicity + octave correction
        bpm, _ = estimate_bpm(
            onset, frame_rate,
            min_bpm=cfg.min_bpm,
            max_bpm=cfg.max_bpm,
            multipliers=cfg.octave_multipliers,
            target_bpm=cfg.target_bpm,
            sigma=cfg.tempo_sigma,
        )

        # Step 4: phase scan for the first beat
        beat_period_frames = frame_rate * 60.0 / bpm
        offset = find_beat_offset(
            onset, beat_period_frames, frame_rate,
            max_steps=cfg.max_phase_steps,
            threshold=cfg.silence_threshold,
        )

        onset.setflags(write=False)
        logger.info(f"  {bpm} BPM, first beat at {offset:.3f}s")
        return BPMEstimate(
            bpm=bpm,
            offset=offset,
            onset=onset,
            frame_rate=frame_rate,
            beat_period_frames=beat_period_frames,
        )

    def reanalyze(self, source: MusicSource) -> BPMEstimate | None:
        """Re-run analysis on the buffer already held by ``source``.

        Returns None when nothing is loaded.
        """
        buffer = source.get_music_buffer()
        if buffer is None:
            return None
        return self.analyze(buffer)

    def detect(
        self,
        file_path: str | Path,
        session: MusicSession | None = None,
        name: str | None = None,
    ) -> BPMEstimate:
        """Decode a file, analyze it and hand the result to ``session``."""
        buffer = load_audio(file_path, sr=settings.sample_rate, mono=settings.mono)
        result = self.analyze(buffer)
        if session is not None:
            session.set_music(buffer, name or Path(file_path).name, result.offset)
        return result

    def submit(self, buffer: SampleBuffer) -> Future:
        """Analyze on a worker thread. The returned future yields a BPMEstimate."""
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="beatgrid",
                )
            pool = self._pool
        return pool.submit(self.analyze, buffer)

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None:
                self._pool.shutdown(wait=True)
                self._pool = None


def analyze_buffer(buffer: SampleBuffer, config: DetectorConfig | None = None) -> BPMEstimate:
    """One-shot analysis with a throwaway detector."""
    return TempoDetector(config).analyze(buffer)
