"""
Exception taxonomy.

Every failure surfaces to the immediate caller. The only defined
non-errors are segmenting with zero clicks (returns None) and undoing
a click on an empty history (no-op).
"""


class SegmentationError(Exception):
    """Base class for all tinysam errors."""


class PreconditionError(SegmentationError):
    """An operation was invoked before the backends it needs were loaded."""


class NotFoundError(SegmentationError, KeyError):
    """A session identifier is unknown or was disposed."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class BackendLoadError(SegmentationError):
    """An inference backend failed to load. Safe to retry initialize()."""

    def __init__(self, model: str, source: str, cause: BaseException):
        self.model = model
        self.source = source
        self.cause = cause
        super().__init__(f"Failed to load {model} model from {source[:40]}: {cause}")


class PlatformError(SegmentationError):
    """The pixel raster of an image could not be obtained."""
