"""Batched duplicate detection over an ordered frame sequence.

The sequence is cut into contiguous batches of ``batch_size`` frames.
Batches are scored concurrently; inside a batch each frame is compared
with its immediate successor and marked for discard when the pair's
score exceeds the scorer's threshold.

Known limitation: the last frame of every batch is never compared with
the first frame of the next batch, so a duplicate pair that straddles a
batch boundary is always kept.  The global last frame is always kept.

A pair that cannot be scored counts as "not similar" (score 0).
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Sequence

from framedrop.errors import MediaToolError, SimilarityError, ToolNotFoundError
from framedrop.similarity.base import SimilarityScorer

logger = logging.getLogger(__name__)


class BatchDeduplicator:
    """Produce one discard decision per frame.

    Parameters
    ----------
    scorer : SimilarityScorer
        Strategy used for each adjacent pair.
    batch_size : int
        Frames per independently scored batch.
    max_workers : int, optional
        Number of batches scored concurrently.
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        batch_size: int = 20,
        max_workers: Optional[int] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.scorer = scorer
        self.batch_size = batch_size
        self.max_workers = max_workers

    def decide(self, frames: Sequence[str | Path]) -> list[bool]:
        """Return ``discard`` flags aligned 1:1 with ``frames``.

        ``True`` means the frame duplicates its successor and can be
        dropped.

        Raises
        ------
        ToolNotFoundError
            If the scorer needs the media tool and it cannot be launched.
        """
        n = len(frames)
        if n == 0:
            return []

        starts = range(0, n, self.batch_size)
        results: dict[int, list[bool]] = {}
        lock = threading.Lock()

        def _run(start: int) -> None:
            batch = frames[start : start + self.batch_size]
            local = self._score_batch(start, batch)
            with lock:
                results[start] = local

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            # list() re-raises the first worker exception.
            list(pool.map(_run, starts))

        decisions: list[bool] = []
        for start in starts:
            local = results.get(start, [])
            expected = min(self.batch_size, n - start)
            if len(local) < expected:
                local = local + [False] * (expected - len(local))
            decisions.extend(local[:expected])

        decisions[-1] = False
        logger.info(
            "Marked %d of %d frames as duplicates (%d batches of %d)",
            sum(decisions),
            n,
            len(starts),
            self.batch_size,
        )
        return decisions

    def _score_batch(self, start: int, batch: Sequence[str | Path]) -> list[bool]:
        local: list[bool] = []
        for i in range(len(batch) - 1):
            score = self._safe_score(batch[i], batch[i + 1])
            duplicate = self.scorer.is_duplicate(score)
            logger.debug(
                "frame %d vs %d: %.4f%s",
                start + i,
                start + i + 1,
                score,
                " (duplicate)" if duplicate else "",
            )
            local.append(duplicate)
        if batch:
            # Batch edge: no comparison across the boundary.
            local.append(False)
        return local

    def _safe_score(self, image_a: str | Path, image_b: str | Path) -> float:
        try:
            return self.scorer.score(image_a, image_b)
        except ToolNotFoundError:
            raise
        except (SimilarityError, MediaToolError) as exc:
            logger.warning(
                "Could not compare %s and %s, keeping both: %s",
                Path(image_a).name,
                Path(image_b).name,
                exc,
            )
            return 0.0
