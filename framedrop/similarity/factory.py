"""Create a :class:`SimilarityScorer` from configuration.

Strategies are registered by name; ``DedupConfig.strategy`` selects
one.  Built-in names are ``"pixel"`` and ``"ffmpeg"``.
"""

from __future__ import annotations

import logging
from typing import Callable

from framedrop.config import DedupConfig
from framedrop.errors import FramedropError
from framedrop.media_tool.base import ProcessGateway
from framedrop.similarity.base import SimilarityScorer
from framedrop.similarity.external import ExternalMetricScorer
from framedrop.similarity.pixel import PixelSimilarityScorer

logger = logging.getLogger(__name__)

ScorerBuilder = Callable[[DedupConfig, ProcessGateway], SimilarityScorer]

_SCORER_REGISTRY: dict[str, ScorerBuilder] = {
    "pixel": lambda config, gateway: PixelSimilarityScorer(row_workers=config.row_workers),
    "ffmpeg": lambda config, gateway: ExternalMetricScorer(
        gateway, retries=config.similarity_retries
    ),
}


def create_scorer(config: DedupConfig, gateway: ProcessGateway) -> SimilarityScorer:
    """Instantiate the scorer named by ``config.strategy``.

    Raises
    ------
    FramedropError
        If the strategy is not registered.
    """
    builder = _SCORER_REGISTRY.get(config.strategy)
    if builder is None:
        raise FramedropError(
            f"Unknown similarity strategy {config.strategy!r}. "
            f"Available: {sorted(_SCORER_REGISTRY)}"
        )
    scorer = builder(config, gateway)
    logger.info("Using %r similarity (threshold %.2f)", scorer.name, scorer.duplicate_threshold)
    return scorer


def register_scorer(name: str, builder: ScorerBuilder) -> None:
    """Register a custom strategy under ``name``."""
    _SCORER_REGISTRY[name] = builder
    logger.info("Registered similarity strategy %r", name)
