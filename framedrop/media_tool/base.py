"""Abstract gateway to the external media tool.

A :class:`ProcessGateway` is the only place in the pipeline that knows
how to talk to the decode/encode tool.  It exposes a narrow, typed verb
set; hardware-specific argument lists are the only varying input the
callers pass through.

Verb contracts:

- :meth:`list_hwaccels` / :meth:`list_encoders` return the probe's
  freeform standard output.
- :meth:`compute_similarity` returns the diagnostic (stderr) text that
  carries the aggregate score.
- :meth:`extract_frames` / :meth:`encode_video` return a
  :class:`ToolResult` whose :attr:`~ToolResult.ok` tells success from
  failure.

All verbs raise :class:`~framedrop.errors.ToolNotFoundError` when the
executable cannot be launched at all.  Probe and similarity verbs raise
:class:`~framedrop.errors.MediaToolError` on nonzero exit or timeout.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external tool invocation.

    Attributes
    ----------
    args : list[str]
        Full argument vector, executable first.
    returncode : int
        Process exit status.
    stdout : str
        Captured standard output.
    stderr : str
        Captured standard error.
    """

    args: list[str] = field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessGateway(abc.ABC):
    """Base class for media tool gateways."""

    @abc.abstractmethod
    def list_hwaccels(self) -> str:
        """Return the tool's list of available hardware accelerators."""

    @abc.abstractmethod
    def list_encoders(self) -> str:
        """Return the tool's list of available encoders."""

    @abc.abstractmethod
    def extract_frames(
        self,
        video_path: str | Path,
        output_pattern: str | Path,
        decode_args: Sequence[str] = (),
    ) -> ToolResult:
        """Decode ``video_path`` into one image file per frame.

        Parameters
        ----------
        video_path : str or Path
            Source video.
        output_pattern : str or Path
            Output path containing a zero-padded ``%0Nd`` placeholder.
        decode_args : sequence of str
            Hardware decode arguments placed before the input.
        """

    @abc.abstractmethod
    def compute_similarity(self, image_a: str | Path, image_b: str | Path) -> str:
        """Run the tool's similarity filter and return its diagnostic text."""

    @abc.abstractmethod
    def encode_video(
        self,
        input_pattern: str | Path,
        output_path: str | Path,
        framerate: int,
        encoder_args: Sequence[str],
    ) -> ToolResult:
        """Encode the image sequence matching ``input_pattern`` to ``output_path``."""
