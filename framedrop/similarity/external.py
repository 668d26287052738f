"""Similarity scoring through the media tool's own SSIM filter."""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Optional

from framedrop.errors import MediaToolError, ToolNotFoundError
from framedrop.media_tool.base import ProcessGateway
from framedrop.similarity.base import SimilarityScorer

logger = logging.getLogger(__name__)

# Aggregate score marker, e.g. "SSIM Y:0.99 ... All: 0.978 (16.6)".
_ALL_RE = re.compile(r"All:\s*([^\s(]+)")


def parse_ssim_score(text: str) -> Optional[float]:
    """Extract the aggregate score from the tool's diagnostic output.

    Returns ``None`` when the marker is missing or the token after it is
    not a finite number.
    """
    match = _ALL_RE.search(text)
    if match is None:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


class ExternalMetricScorer(SimilarityScorer):
    """Delegate scoring to the media tool's ``ssim`` filter.

    Parameters
    ----------
    gateway : ProcessGateway
        Gateway used for the similarity probe.
    retries : int
        Extra attempts after a failed probe before giving up.
    """

    DUPLICATE_THRESHOLD = 0.98

    def __init__(self, gateway: ProcessGateway, retries: int = 1) -> None:
        super().__init__("ffmpeg", self.DUPLICATE_THRESHOLD)
        self._gateway = gateway
        self._retries = max(0, retries)

    def score(self, image_a: str | Path, image_b: str | Path) -> float:
        attempts = self._retries + 1
        for attempt in range(1, attempts + 1):
            try:
                text = self._gateway.compute_similarity(image_a, image_b)
            except ToolNotFoundError:
                raise
            except MediaToolError as exc:
                if attempt == attempts:
                    raise
                logger.debug(
                    "ssim probe %s vs %s failed (attempt %d/%d): %s",
                    Path(image_a).name,
                    Path(image_b).name,
                    attempt,
                    attempts,
                    exc,
                )
                continue

            value = parse_ssim_score(text)
            if value is None:
                logger.warning(
                    "No ssim score in tool output for %s vs %s",
                    Path(image_a).name,
                    Path(image_b).name,
                )
                return 0.0
            return value
        return 0.0
