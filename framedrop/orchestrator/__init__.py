"""Pipeline orchestration: scratch workspace and the controller."""

from framedrop.orchestrator.controller import (
    DedupReport,
    DeduplicationController,
    PipelineState,
)
from framedrop.orchestrator.workspace import ScratchWorkspace

__all__ = [
    "DedupReport",
    "DeduplicationController",
    "PipelineState",
    "ScratchWorkspace",
]
