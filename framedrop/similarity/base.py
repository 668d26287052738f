"""Base SimilarityScorer abstract class.

A scorer maps two frame images to a similarity score in ``[0, 1]``;
higher means more alike.  Each scorer carries its own duplicate
threshold because the strategies produce differently distributed
scores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class SimilarityScorer(ABC):
    """Abstract base class for frame similarity strategies.

    Implementations must be deterministic: the same two files always
    produce the same score.

    Parameters
    ----------
    name : str
        Short identifier used in logs and config (e.g. ``"pixel"``).
    duplicate_threshold : float
        A pair whose score strictly exceeds this value is a duplicate.
    """

    def __init__(self, name: str, duplicate_threshold: float) -> None:
        self.name = name
        self.duplicate_threshold = duplicate_threshold

    @abstractmethod
    def score(self, image_a: str | Path, image_b: str | Path) -> float:
        """Return the similarity of two frame images.

        Raises
        ------
        SimilarityError
            If the pair cannot be compared.
        MediaToolError
            If an external invocation fails.
        """
        ...

    def is_duplicate(self, score: float) -> bool:
        return score > self.duplicate_threshold

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.name!r}, threshold={self.duplicate_threshold})>"
