"""Frame similarity strategies.

Two interchangeable :class:`SimilarityScorer` implementations:

- :class:`PixelSimilarityScorer` computes a simplified per-pixel score
  in-process (threshold 0.95).
- :class:`ExternalMetricScorer` parses the media tool's ``ssim`` filter
  output (threshold 0.98).
"""

from framedrop.similarity.base import SimilarityScorer
from framedrop.similarity.external import ExternalMetricScorer, parse_ssim_score
from framedrop.similarity.factory import create_scorer, register_scorer
from framedrop.similarity.pixel import PixelSimilarityScorer, pixel_similarity

__all__ = [
    "SimilarityScorer",
    "ExternalMetricScorer",
    "PixelSimilarityScorer",
    "create_scorer",
    "register_scorer",
    "parse_ssim_score",
    "pixel_similarity",
]
