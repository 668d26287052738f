"""Tests for BatchDeduplicator.

Tests cover:

- Decision count and ordering for arbitrary lengths and batch sizes
- The global last frame is always kept
- The batch-boundary blind spot
- Fail-safe handling of pairs that cannot be scored
- End-to-end scenarios on synthetic frames with the pixel strategy
"""

from __future__ import annotations

import random
import threading
import time
from pathlib import Path

import pytest

from framedrop.dedup import BatchDeduplicator
from framedrop.errors import DimensionMismatchError, MediaToolError, ToolNotFoundError
from framedrop.similarity.base import SimilarityScorer
from framedrop.similarity.pixel import PixelSimilarityScorer


# ── Helpers ─────────────────────────────────────────────────────────


class LabelScorer(SimilarityScorer):
    """Scores 1.0 when two frame labels are equal, else 0.0.

    Frames are plain strings; ``"a#1"`` and ``"a#2"`` share label ``a``.
    An optional random delay shuffles batch completion order.
    """

    def __init__(self, jitter: float = 0.0) -> None:
        super().__init__("label", 0.5)
        self.jitter = jitter
        self.pairs: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def score(self, image_a, image_b) -> float:
        if self.jitter:
            time.sleep(random.random() * self.jitter)
        with self._lock:
            self.pairs.append((str(image_a), str(image_b)))
        return 1.0 if str(image_a).split("#")[0] == str(image_b).split("#")[0] else 0.0


def _frames(labels: str) -> list[str]:
    """``"aab"`` -> ``["a#0", "a#1", "b#2"]``."""
    return [f"{label}#{i}" for i, label in enumerate(labels)]


# ── Shape properties ────────────────────────────────────────────────


class TestDecisionShape:
    """Decision list length, order and fixed positions."""

    def test_empty_sequence(self):
        assert BatchDeduplicator(LabelScorer(), 4).decide([]) == []

    def test_single_frame_kept(self):
        assert BatchDeduplicator(LabelScorer(), 4).decide(_frames("a")) == [False]

    @pytest.mark.parametrize("n", [1, 2, 3, 7, 20, 21, 40, 41])
    @pytest.mark.parametrize("batch_size", [1, 2, 3, 20])
    def test_one_decision_per_frame(self, n, batch_size):
        """Exactly N decisions, last one False."""
        decisions = BatchDeduplicator(LabelScorer(), batch_size).decide(_frames("a" * n))
        assert len(decisions) == n
        assert decisions[-1] is False

    def test_all_identical_single_batch(self):
        """Every frame but the last duplicates its successor."""
        decisions = BatchDeduplicator(LabelScorer(), 20).decide(_frames("aaaaa"))
        assert decisions == [True, True, True, True, False]

    def test_order_preserved_under_jitter(self):
        """Batches finishing out of order still merge by index."""
        labels = "aabbbcdde" * 4
        expected = BatchDeduplicator(LabelScorer(), 3, max_workers=1).decide(_frames(labels))
        shuffled = BatchDeduplicator(LabelScorer(jitter=0.01), 3, max_workers=8).decide(
            _frames(labels)
        )
        assert shuffled == expected

    def test_batch_size_one_keeps_everything(self):
        """With single-frame batches nothing is ever compared."""
        scorer = LabelScorer()
        decisions = BatchDeduplicator(scorer, 1).decide(_frames("aaaa"))
        assert decisions == [False] * 4
        assert scorer.pairs == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            BatchDeduplicator(LabelScorer(), 0)


# ── Batch boundary ──────────────────────────────────────────────────


class TestBatchBoundary:
    """The last frame of a non-final batch is never compared forward."""

    def test_duplicate_straddling_boundary_is_kept(self):
        """Frames 2 and 3 are identical but sit in different batches."""
        frames = _frames("abcc")
        scorer = LabelScorer()
        decisions = BatchDeduplicator(scorer, 3).decide(frames)
        assert decisions == [False, False, False, False]
        assert (frames[2], frames[3]) not in scorer.pairs

    def test_only_within_batch_pairs_scored(self):
        """N frames in batches of B yield N - ceil(N/B) comparisons."""
        scorer = LabelScorer()
        BatchDeduplicator(scorer, 4).decide(_frames("abcdefghij"))
        assert len(scorer.pairs) == 10 - 3

    def test_boundary_frames_false_even_when_identical(self):
        """Every batch-final frame is False for an all-identical sequence."""
        decisions = BatchDeduplicator(LabelScorer(), 3).decide(_frames("a" * 9))
        assert decisions == [True, True, False] * 3


# ── Failure handling ────────────────────────────────────────────────


class TestFailSafe:
    """Pairs that cannot be scored are treated as distinct."""

    @pytest.mark.parametrize(
        "error", [DimensionMismatchError("size"), MediaToolError("exit 1")]
    )
    def test_scoring_error_keeps_frame(self, error):
        class Failing(LabelScorer):
            def score(self, image_a, image_b) -> float:
                raise error

        assert BatchDeduplicator(Failing(), 10).decide(_frames("aaa")) == [False, False, False]

    def test_missing_tool_propagates(self):
        class Missing(LabelScorer):
            def score(self, image_a, image_b) -> float:
                raise ToolNotFoundError("no ffmpeg")

        with pytest.raises(ToolNotFoundError):
            BatchDeduplicator(Missing(), 10).decide(_frames("aaa"))


# ── Pixel strategy end to end ───────────────────────────────────────


class TestPixelScenarios:
    """Synthetic frame sequences scored with the in-process strategy."""

    def test_ten_frames_one_duplicate(self, frame_writer, noise):
        """Frames 3 and 4 identical, batch 20 -> only index 3 discarded."""
        arrays = [noise(seed) for seed in range(10)]
        arrays[4] = arrays[3].copy()
        paths = frame_writer(arrays)

        decisions = BatchDeduplicator(PixelSimilarityScorer(row_workers=2), 20).decide(paths)

        assert decisions == [i == 3 for i in range(10)]
        survivors = [p for p, d in zip(paths, decisions) if not d]
        assert len(survivors) == 9

    def test_two_batches_two_duplicate_pairs(self, frame_writer, noise):
        """Batch size 2 over [A, A, B, B] -> [True, False, True, False]."""
        a, b = noise(100), noise(200)
        paths = frame_writer([a, a.copy(), b, b.copy()])

        decisions = BatchDeduplicator(PixelSimilarityScorer(), 2).decide(paths)

        assert decisions == [True, False, True, False]

    def test_boundary_duplicate_with_real_frames(self, frame_writer, noise):
        """Identical frames split across batches are both kept."""
        arrays = [noise(1), noise(2), noise(3)]
        arrays.append(arrays[2].copy())
        paths = frame_writer(arrays)

        decisions = BatchDeduplicator(PixelSimilarityScorer(), 3).decide(paths)

        assert decisions == [False, False, False, False]

    def test_accepts_path_objects(self, frame_writer, noise):
        paths = frame_writer([noise(7), noise(7)])
        assert all(isinstance(p, Path) for p in paths)
        assert BatchDeduplicator(PixelSimilarityScorer(), 5).decide(paths) == [True, False]
