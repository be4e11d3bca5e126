"""
Error taxonomy shared by the streaming services and the API layer.

- InvalidRequest: caller input rejected before any backend call (HTTP 400)
- BackendUnavailable: backend credentials or configuration missing
- ConversionError: audio could not be transcoded to PCM
- ConversionTooShort: audio is present but too short to transcribe
- StreamError: backend fault while a stream was in flight
"""

from typing import Optional


class NexusError(Exception):
    """Base class for all service errors."""


class InvalidRequest(NexusError):
    """Caller supplied an empty or malformed request."""


class BackendUnavailable(NexusError):
    """An external backend is not configured (missing credentials or region)."""


class ConversionError(NexusError):
    """The external transcoder failed to produce PCM output."""

    def __init__(self, message: str, *, stderr_tail: Optional[str] = None):
        super().__init__(message)
        self.stderr_tail = stderr_tail

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr_tail:
            base += f": {self.stderr_tail}"
        return base


class ConversionTooShort(NexusError):
    """Audio is below the minimum size needed for recognition."""

    def __init__(self, size: int, minimum: int, stage: str = "pcm"):
        super().__init__(f"{stage} audio too short: {size} bytes (minimum {minimum})")
        self.size = size
        self.minimum = minimum
        self.stage = stage


class StreamError(NexusError):
    """A generation or recognition stream failed mid-flight."""
