"""Shared pytest fixtures for the framedrop test suite.

Provides a synthetic frame writer and a :class:`FakeGateway` that
stands in for the media tool so no test needs a real ``ffmpeg``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence

import cv2
import numpy as np
import pytest

from framedrop.config import DedupConfig
from framedrop.context import PipelineContext
from framedrop.hardware import HardwareProfileResolver
from framedrop.media_tool.base import ProcessGateway, ToolResult
from framedrop.similarity.pixel import PixelSimilarityScorer

logger = logging.getLogger(__name__)

FRAME_SHAPE = (24, 32)


# ---------------------------------------------------------------------------
# Synthetic frames
# ---------------------------------------------------------------------------


def noise_frame(seed: int, shape: tuple[int, int] = FRAME_SHAPE) -> np.ndarray:
    """Return a deterministic random grayscale frame."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=shape, dtype=np.uint8)


def uniform_frame(value: int, shape: tuple[int, int] = FRAME_SHAPE) -> np.ndarray:
    return np.full(shape, value, dtype=np.uint8)


def write_frames(directory: Path, frames: Sequence[np.ndarray], pattern: str = "frame_%04d.png") -> list[Path]:
    """Write ``frames`` as ``frame_0001.png``, ``frame_0002.png``, ..."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for index, frame in enumerate(frames, start=1):
        path = directory / (pattern % index)
        assert cv2.imwrite(str(path), frame)
        paths.append(path)
    return paths


@pytest.fixture
def frame_writer(tmp_path: Path) -> Callable[..., list[Path]]:
    """Write a list of arrays into ``tmp_path/frames`` and return the paths."""

    def _write(frames: Sequence[np.ndarray], subdir: str = "frames") -> list[Path]:
        return write_frames(tmp_path / subdir, frames)

    return _write


# ---------------------------------------------------------------------------
# Fake media tool
# ---------------------------------------------------------------------------


class FakeGateway(ProcessGateway):
    """In-memory :class:`ProcessGateway` that records every call.

    ``extract_frames`` writes ``frames`` using the requested pattern;
    ``encode_video`` writes a placeholder output file.
    """

    def __init__(
        self,
        frames: Sequence[np.ndarray] = (),
        hwaccels: str = "Hardware acceleration methods:\n",
        encoders: str = "Encoders:\n V....D libx264  H.264\n",
        ssim_text: str = "[Parsed_ssim_0] SSIM Y:1.0 All:1.000000 (inf)\n",
        extract_returncode: int = 0,
        encode_returncodes: Sequence[int] = (0,),
    ) -> None:
        self.frames = list(frames)
        self.hwaccels = hwaccels
        self.encoders = encoders
        self.ssim_text = ssim_text
        self.extract_returncode = extract_returncode
        self.encode_returncodes = list(encode_returncodes)
        self.calls: list[tuple] = []
        self.encoded_frame_names: list[str] = []

    def count(self, verb: str) -> int:
        return sum(1 for call in self.calls if call[0] == verb)

    def list_hwaccels(self) -> str:
        self.calls.append(("list_hwaccels",))
        return self.hwaccels

    def list_encoders(self) -> str:
        self.calls.append(("list_encoders",))
        return self.encoders

    def extract_frames(self, video_path, output_pattern, decode_args=()) -> ToolResult:
        self.calls.append(("extract_frames", str(video_path), str(output_pattern), list(decode_args)))
        if self.extract_returncode != 0:
            return ToolResult(returncode=self.extract_returncode, stderr="decode error")
        pattern = Path(output_pattern)
        for index, frame in enumerate(self.frames, start=1):
            cv2.imwrite(str(pattern.parent / (pattern.name % index)), frame)
        return ToolResult(returncode=0)

    def compute_similarity(self, image_a, image_b) -> str:
        self.calls.append(("compute_similarity", str(image_a), str(image_b)))
        return self.ssim_text

    def encode_video(self, input_pattern, output_path, framerate, encoder_args) -> ToolResult:
        self.calls.append(
            ("encode_video", str(input_pattern), str(output_path), framerate, list(encoder_args))
        )
        pattern = Path(input_pattern)
        self.encoded_frame_names = sorted(
            p.name for p in pattern.parent.glob(f"*{pattern.suffix}")
        )
        returncode = self.encode_returncodes.pop(0) if self.encode_returncodes else 0
        if returncode == 0:
            Path(output_path).write_bytes(b"fake video")
        return ToolResult(returncode=returncode)


@pytest.fixture
def make_context(tmp_path: Path):
    """Build a :class:`PipelineContext` around a :class:`FakeGateway`."""

    def _make(gateway: FakeGateway, **config_overrides) -> PipelineContext:
        overrides = dict(scratch_dir=tmp_path / "scratch", row_workers=2, max_workers=4)
        overrides.update(config_overrides)
        config = DedupConfig(**overrides)
        return PipelineContext(
            config=config,
            gateway=gateway,
            hardware=HardwareProfileResolver(gateway, enabled=config.hardware_acceleration),
            scorer=PixelSimilarityScorer(row_workers=config.row_workers),
        )

    return _make


# ---------------------------------------------------------------------------
# Helper fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_gateway_cls() -> type[FakeGateway]:
    """The :class:`FakeGateway` class, for direct use or subclassing."""
    return FakeGateway


@pytest.fixture
def noise() -> Callable[..., np.ndarray]:
    """Deterministic random frame builder, see :func:`noise_frame`."""
    return noise_frame


@pytest.fixture
def uniform() -> Callable[..., np.ndarray]:
    """Constant-valued frame builder, see :func:`uniform_frame`."""
    return uniform_frame
