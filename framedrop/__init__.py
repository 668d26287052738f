"""framedrop -- remove near-duplicate frames from a video.

Typical usage::

    from framedrop import DeduplicationController, PipelineContext, load_dedup_config

    context = PipelineContext.from_config(load_dedup_config())
    output = DeduplicationController(context).process_video("in.mp4", "out/")
"""

from framedrop.config import DedupConfig, load_dedup_config
from framedrop.context import PipelineContext
from framedrop.errors import (
    DedupError,
    FramedropError,
    MediaToolError,
    SimilarityError,
    ToolNotFoundError,
)
from framedrop.orchestrator import DeduplicationController, DedupReport, PipelineState

__version__ = "0.1.0"

__all__ = [
    "DedupConfig",
    "load_dedup_config",
    "PipelineContext",
    "DeduplicationController",
    "DedupReport",
    "PipelineState",
    "FramedropError",
    "MediaToolError",
    "ToolNotFoundError",
    "SimilarityError",
    "DedupError",
]
