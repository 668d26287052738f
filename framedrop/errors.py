"""Exception hierarchy for the deduplication pipeline."""

from __future__ import annotations

from typing import Optional, Sequence


class FramedropError(Exception):
    """Base class for all pipeline errors."""


class MediaToolError(FramedropError):
    """Raised when an external media tool invocation fails.

    Covers nonzero exit status and timeouts.  The failure is specific to
    one operation; callers decide whether it is fatal.
    """

    def __init__(
        self,
        message: str,
        args: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(args or [])
        self.returncode = returncode
        self.stderr = stderr


class ToolNotFoundError(MediaToolError):
    """Raised when the media tool executable cannot be located or launched."""


class SimilarityError(FramedropError):
    """Raised when two frames cannot be compared."""


class ImageDecodeError(SimilarityError):
    """Raised when a frame image cannot be decoded."""


class DimensionMismatchError(SimilarityError):
    """Raised when two frames have different resolutions."""


class DedupError(FramedropError):
    """Raised when a pipeline stage produces no usable output.

    Parameters
    ----------
    message : str
        Human-readable description.
    stage : str
        Name of the pipeline state that aborted.
    """

    def __init__(self, message: str, stage: str = "") -> None:
        super().__init__(message)
        self.stage = stage
