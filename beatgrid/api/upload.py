"""File upload and re-analysis endpoints."""

import asyncio
import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from beatgrid.analysis.engine import TempoDetector
from beatgrid.analysis.models import BPMEstimate, SampleBuffer
from beatgrid.api.schemas import BPMResponse
from beatgrid.audio.loader import load_audio_bytes
from beatgrid.audio.session import MusicSession
from beatgrid.config import settings
from beatgrid.errors import AudioDecodeError, InvalidBufferError

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_EXTENSIONS = {".wav", ".mp3", ".flac", ".ogg", ".m4a", ".aac"}

detector = TempoDetector()
session = MusicSession()


def to_response(
    result: BPMEstimate,
    buffer: SampleBuffer,
    name: str | None = None,
    include_onset: bool = False,
) -> BPMResponse:
    return BPMResponse(
        bpm=result.bpm,
        offset=result.offset,
        frame_rate=result.frame_rate,
        beat_period_frames=result.beat_period_frames,
        duration=buffer.duration,
        name=name,
        onset=[float(v) for v in result.onset] if include_onset else None,
    )


def _decode_and_analyze(content: bytes, suffix: str) -> tuple[SampleBuffer, BPMEstimate]:
    buffer = load_audio_bytes(content, suffix=suffix, sr=settings.sample_rate)
    return buffer, detector.analyze(buffer)


@router.post("/analyze", response_model=BPMResponse)
async def analyze_file(file: UploadFile = File(...), include_onset: bool = False):
    """Detect tempo and first-beat offset of an uploaded track."""
    suffix = ""
    if file.filename and "." in file.filename:
        suffix = "." + file.filename.rsplit(".", 1)[-1].lower()
        if suffix not in ALLOWED_EXTENSIONS:
            raise HTTPException(400, f"Unsupported format. Use: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

    content = await file.read()
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(400, f"File too large (max {settings.max_upload_mb} MB)")

    # Run analysis in thread pool to avoid blocking
    loop = asyncio.get_running_loop()
    try:
        buffer, result = await loop.run_in_executor(None, _decode_and_analyze, content, suffix)
    except (AudioDecodeError, InvalidBufferError) as e:
        logger.warning("Rejected upload %s: %s", file.filename, e)
        raise HTTPException(400, "Could not decode audio file")
    except Exception:
        logger.exception("Analysis failed for %s", file.filename)
        raise HTTPException(500, "Analysis failed")

    session.set_music(buffer, file.filename, result.offset)
    return to_response(result, buffer, file.filename, include_onset)


@router.post("/reanalyze", response_model=BPMResponse)
async def reanalyze(include_onset: bool = False):
    """Analyze the resident track again without decoding it."""
    buffer, name = session.snapshot()
    if buffer is None:
        raise HTTPException(404, "No music loaded")

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, detector.analyze, buffer)

    # A newer upload may have replaced the track meanwhile
    session.set_offset(result.offset, buffer)
    return to_response(result, buffer, name, include_onset)
