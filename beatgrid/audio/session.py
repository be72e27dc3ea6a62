"""Holder for the currently loaded music track."""

from __future__ import annotations

import threading
from typing import Protocol

from beatgrid.analysis.models import SampleBuffer


class MusicSource(Protocol):
    """Anything that can hand over an already decoded buffer."""

    def get_music_buffer(self) -> SampleBuffer | None: ...


class MusicSession:
    """Keeps the decoded track resident so it can be re-analyzed without decoding.

    Thread-safe; the HTTP layer updates it from executor threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buffer: SampleBuffer | None = None
        self._name: str | None = None
        self._offset: float = 0.0

    def set_music(self, buffer: SampleBuffer, name: str | None = None, offset: float = 0.0) -> None:
        with self._lock:
            self._buffer = buffer
            self._name = name
            self._offset = offset

    def set_offset(self, offset: float, buffer: SampleBuffer | None = None) -> bool:
        """Store the first-beat offset.

        When ``buffer`` is given the offset is only stored if that buffer is
        still the resident one; returns whether it was stored.
        """
        with self._lock:
            if buffer is not None and buffer is not self._buffer:
                return False
            self._offset = offset
            return True

    def get_music_buffer(self) -> SampleBuffer | None:
        with self._lock:
            return self._buffer

    def snapshot(self) -> tuple[SampleBuffer | None, str | None]:
        """Buffer and name of the resident track, read together."""
        with self._lock:
            return self._buffer, self._name

    @property
    def name(self) -> str | None:
        with self._lock:
            return self._name

    @property
    def offset(self) -> float:
        with self._lock:
            return self._offset

    @property
    def has_music(self) -> bool:
        return self.get_music_buffer() is not None

    def clear(self) -> None:
        with self._lock:
            self._buffer = None
            self._name = None
            self._offset = 0.0
