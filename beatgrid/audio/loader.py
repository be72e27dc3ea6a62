"""Audio decoding adapter producing SampleBuffers."""

from __future__ import annotations

import logging
import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Union

import librosa
import numpy as np
import soundfile as sf

from beatgrid.analysis.models import SampleBuffer
from beatgrid.errors import AudioDecodeError

logger = logging.getLogger(__name__)


def load_audio(
    file_path_or_buffer: Union[str, Path, BytesIO],
    sr: int | None = None,
    mono: bool = False,
) -> SampleBuffer:
    """Decode an audio file or buffer, keeping its channels.

    Parameters
    ----------
    file_path_or_buffer:
        Path to an audio file or a BytesIO buffer containing audio data.
    sr:
        Target sample rate. ``None`` keeps the native rate.
    mono:
        Let the decoder downmix. Off by default; the detector does its own
        downmix.
    """
    try:
        audio, sample_rate = librosa.load(file_path_or_buffer, sr=sr, mono=mono)
    except Exception as e:
        raise AudioDecodeError(f"Could not decode audio: {e}") from e
    return SampleBuffer.from_array(audio, int(sample_rate))


def load_audio_bytes(content: bytes, suffix: str = "", sr: int | None = None) -> SampleBuffer:
    """Decode an in-memory upload.

    soundfile reads WAV/FLAC/OGG straight from memory; anything else (mp3,
    m4a, ...) goes through a temporary file so librosa can pick a backend.
    """
    try:
        data, sample_rate = sf.read(BytesIO(content), dtype="float32", always_2d=True)
    except Exception:
        data = None

    if data is not None:
        buffer = SampleBuffer.from_array(np.ascontiguousarray(data.T), int(sample_rate))
        if sr is not None and sr != buffer.sample_rate:
            resampled = librosa.resample(
                np.stack(buffer.channels), orig_sr=buffer.sample_rate, target_sr=sr,
            )
            buffer = SampleBuffer.from_array(resampled, sr)
        return buffer

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
            tmp.write(content)
            tmp_path = tmp.name
        return load_audio(tmp_path, sr=sr)
    finally:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_path)
