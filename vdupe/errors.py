"""Exception types shared across the pipeline."""


class VdupeError(Exception):
    """Base class for all errors raised by vdupe."""


class StoreError(VdupeError):
    """A store operation failed."""


class StoreBusyError(StoreError):
    """The embedded store reported transient lock contention."""


class StoreUnavailableError(StoreError):
    """The store could not be opened or initialised."""


class MediaError(VdupeError):
    """The external media tool failed."""


class CorruptVideoError(MediaError):
    """The file is unreadable or not a valid video."""


class MediaToolError(MediaError):
    """ffprobe/ffmpeg could not be run (missing binary, timeout, ...)."""


class FingerprintError(VdupeError):
    """A fingerprint could not be produced."""


class FrameExtractionError(FingerprintError):
    """Frames could not be extracted or decoded."""


class DegenerateFingerprintError(FingerprintError):
    """The fingerprint was computed but carries no information (solid colour)."""

    def __init__(self, path: str, value: str):
        super().__init__(f"Degenerate fingerprint {value!r} for {path}")
        self.path = path
        self.value = value


class HashLengthMismatchError(VdupeError, ValueError):
    """Two hash strings of different length were compared."""


class NoVideosFoundError(VdupeError):
    """Discovery found nothing to work on."""


class ScanCancelled(VdupeError):
    """The run was cancelled."""
