"""Long-lived collaborators shared by one or more pipeline runs.

A :class:`PipelineContext` owns the cached tool path, the cached
hardware profile, the gateway and the similarity scorer.  It is built
once and passed explicitly into the controller, so tests can swap any
collaborator for a fake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from framedrop.config import DedupConfig
from framedrop.hardware import HardwareProfileResolver
from framedrop.media_tool.base import ProcessGateway
from framedrop.media_tool.ffmpeg import FfmpegGateway
from framedrop.media_tool.locator import ToolLocator
from framedrop.similarity.base import SimilarityScorer
from framedrop.similarity.factory import create_scorer

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Bundle of configured collaborators.

    Attributes
    ----------
    config : DedupConfig
        Run configuration.
    gateway : ProcessGateway
        Media tool gateway.
    hardware : HardwareProfileResolver
        Memoised hardware backend lookup.
    scorer : SimilarityScorer
        Frame similarity strategy.
    locator : ToolLocator, optional
        Tool path cache; ``None`` when the gateway does not need one.
    """

    config: DedupConfig
    gateway: ProcessGateway
    hardware: HardwareProfileResolver
    scorer: SimilarityScorer
    locator: Optional[ToolLocator] = None

    @classmethod
    def from_config(cls, config: DedupConfig) -> "PipelineContext":
        """Wire the default FFmpeg-backed collaborators for ``config``."""
        locator = ToolLocator(config.tool_name, config.tool_path)
        gateway = FfmpegGateway(locator, config)
        hardware = HardwareProfileResolver(gateway, enabled=config.hardware_acceleration)
        scorer = create_scorer(config, gateway)
        return cls(
            config=config,
            gateway=gateway,
            hardware=hardware,
            scorer=scorer,
            locator=locator,
        )
