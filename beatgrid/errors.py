"""Custom exceptions for beatgrid."""


class BeatgridError(Exception):
    """Base class for errors raised by beatgrid."""


class InvalidBufferError(BeatgridError, ValueError):
    """Raised when a sample buffer has an unusable shape or sample rate."""


class AudioDecodeError(BeatgridError):
    """Raised when the decoding collaborator cannot produce a sample buffer."""
