"""Deduplication controller -- full pipeline orchestrator.

Extracts every frame of a video into a scratch workspace, scores
adjacent frames, deletes the duplicates and re-encodes what is left.

Stages run strictly in sequence::

    EXTRACTING -> COLLECTING -> SCORING -> PRUNING -> REENCODING -> DONE

Any unrecoverable failure moves the controller to ``ABORTED`` and
raises.  Deletion failures and a failed final encode are logged and
counted but do not abort.  The scratch workspace is removed however
the run ends.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

from framedrop.context import PipelineContext
from framedrop.dedup import BatchDeduplicator
from framedrop.errors import DedupError, MediaToolError, ToolNotFoundError
from framedrop.frames import FrameCollector
from framedrop.hardware import HardwareProfile
from framedrop.log import Timer
from framedrop.orchestrator.workspace import ScratchWorkspace

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle states of one controller run."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    COLLECTING = "collecting"
    SCORING = "scoring"
    PRUNING = "pruning"
    REENCODING = "reencoding"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class DedupReport:
    """Outcome of one pipeline run.

    Attributes
    ----------
    input_path : str
        Source video.
    output_path : str, optional
        Output video path (set once re-encoding starts).
    frame_count : int
        Frames extracted.
    discarded : int
        Frames marked as duplicates.
    removed : int
        Duplicate files actually deleted.
    deletion_failures : int
        Duplicate files that could not be deleted.
    encoder : str
        Hardware profile name used for the final encode, or ``"software"``.
    encoded : bool
        Whether the final encode succeeded.
    state : PipelineState
        Last state reached.
    stage_seconds : dict[str, float]
        Wall time per stage.
    """

    input_path: str
    output_path: Optional[str] = None
    frame_count: int = 0
    discarded: int = 0
    removed: int = 0
    deletion_failures: int = 0
    encoder: str = "software"
    encoded: bool = False
    state: PipelineState = PipelineState.IDLE
    stage_seconds: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["state"] = self.state.value
        return data


class DeduplicationController:
    """Drive one video through the deduplication pipeline.

    Parameters
    ----------
    context : PipelineContext
        Configured collaborators (gateway, hardware resolver, scorer).
    """

    def __init__(self, context: PipelineContext) -> None:
        self.context = context
        self.config = context.config
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = []
        self.report: Optional[DedupReport] = None

    # -- Public API ----------------------------------------------------

    def process_video(self, input_path: str | Path, output_dir: str | Path) -> Path:
        """Remove near-duplicate frames from ``input_path``.

        Parameters
        ----------
        input_path : str or Path
            Source video.
        output_dir : str or Path
            Directory for the output video (created if missing).

        Returns
        -------
        Path
            Path of the re-encoded video.  Returned even if the final
            encode failed, as the best-effort result.

        Raises
        ------
        DedupError
            If the input is missing, the output directory cannot be
            created, or extraction fails or produces no frames.
        ToolNotFoundError
            If the media tool cannot be launched.
        """
        input_path = Path(input_path)
        output_dir = Path(output_dir)
        self.history = []
        self.report = DedupReport(input_path=str(input_path))
        logger.info("Starting video processing: %s", input_path)

        try:
            self._prepare(input_path, output_dir)
            with ScratchWorkspace(self.config.scratch_dir) as workspace:
                self._extract(input_path, workspace)
                frames = self._collect(workspace)
                decisions = self._score(frames)
                self._prune(frames, decisions, workspace)
                output_path = self._reencode(input_path, output_dir, workspace)
        except Exception:
            self._transition(PipelineState.ABORTED)
            raise

        self._transition(PipelineState.DONE)
        logger.info(
            "Video processing complete: %d frames in, %d removed -> %s",
            self.report.frame_count,
            self.report.removed,
            output_path,
        )
        logger.debug("Run report: %s", self.report.to_dict())
        return output_path

    # -- Stages --------------------------------------------------------

    def _prepare(self, input_path: Path, output_dir: Path) -> None:
        """Validate the input and create the output directory up front."""
        self._transition(PipelineState.EXTRACTING)
        if not input_path.is_file():
            raise DedupError(f"Input video not found: {input_path}", stage=self.state.value)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DedupError(
                f"Cannot create output directory {output_dir}: {exc}", stage=self.state.value
            ) from exc

    def _extract(self, input_path: Path, workspace: ScratchWorkspace) -> None:
        profile = self.context.hardware.resolve()
        pattern = workspace.path / self.config.frame_pattern
        decode_args = list(profile.decode_args) if profile else []

        with Timer("extract", logger) as t:
            ok = self._run_extract(input_path, pattern, decode_args)
            if not ok and profile is not None and self.config.software_fallback:
                logger.warning(
                    "Hardware decode via %r failed, retrying in software", profile.name
                )
                ok = self._run_extract(input_path, pattern, [])
        self.report.stage_seconds["extract"] = t.elapsed

        if not ok:
            raise DedupError(f"Frame extraction failed for {input_path}", stage=self.state.value)

    def _run_extract(self, input_path: Path, pattern: Path, decode_args: Sequence[str]) -> bool:
        try:
            return self.context.gateway.extract_frames(input_path, pattern, decode_args).ok
        except ToolNotFoundError:
            raise
        except MediaToolError as exc:
            logger.error("Frame extraction error: %s", exc)
            return False

    def _collect(self, workspace: ScratchWorkspace) -> list[Path]:
        self._transition(PipelineState.COLLECTING)
        collector = FrameCollector(self.config.frame_extension, self.config.max_workers)
        with Timer("collect", logger) as t:
            frames = collector.collect(workspace.path)
        self.report.stage_seconds["collect"] = t.elapsed
        self.report.frame_count = len(frames)
        if not frames:
            raise DedupError("No frames produced", stage=self.state.value)
        logger.info("Found %d frames to process", len(frames))
        return frames

    def _score(self, frames: list[Path]) -> list[bool]:
        self._transition(PipelineState.SCORING)
        deduplicator = BatchDeduplicator(
            self.context.scorer,
            batch_size=self.config.batch_size,
            max_workers=self.config.max_workers,
        )
        with Timer("score", logger) as t:
            decisions = deduplicator.decide(frames)
        self.report.stage_seconds["score"] = t.elapsed
        self.report.discarded = sum(decisions)
        return decisions

    def _prune(
        self,
        frames: list[Path],
        decisions: list[bool],
        workspace: ScratchWorkspace,
    ) -> None:
        self._transition(PipelineState.PRUNING)
        remaining: list[Path] = []
        with Timer("prune", logger) as t:
            for path, discard in zip(frames, decisions):
                if not discard:
                    remaining.append(path)
                    continue
                try:
                    path.unlink()
                    self.report.removed += 1
                except OSError as exc:
                    logger.warning("Failed to remove file %s: %s", path, exc)
                    self.report.deletion_failures += 1
                    remaining.append(path)
            self._renumber(remaining, workspace.path)
        self.report.stage_seconds["prune"] = t.elapsed
        logger.info("Removed %d duplicate frames", self.report.removed)

    def _renumber(self, remaining: list[Path], directory: Path) -> None:
        """Rename ``remaining`` into a gap-free frame sequence.

        Targets never exceed a frame's own index, so renaming in order
        cannot overwrite a frame that has not been moved yet.
        """
        for index, path in enumerate(remaining, start=1):
            target = directory / self.config.frame_name(index)
            if path == target:
                continue
            try:
                path.rename(target)
            except OSError as exc:
                logger.warning("Failed to renumber %s -> %s: %s", path.name, target.name, exc)

    def _reencode(
        self,
        input_path: Path,
        output_dir: Path,
        workspace: ScratchWorkspace,
    ) -> Path:
        self._transition(PipelineState.REENCODING)
        output_path = output_dir / (
            f"{input_path.stem}{self.config.output_suffix}.{self.config.output_container}"
        )
        self.report.output_path = str(output_path)
        pattern = workspace.path / self.config.frame_pattern

        profile = self.context.hardware.resolve()
        with Timer("encode", logger) as t:
            ok = self._run_encode(pattern, output_path, profile)
            if not ok and profile is not None and self.config.software_fallback:
                logger.warning("Hardware encode via %r failed, retrying in software", profile.name)
                ok = self._run_encode(pattern, output_path, None)
        self.report.stage_seconds["encode"] = t.elapsed

        if not ok:
            logger.warning("Failed to stitch frames into %s; returning it anyway", output_path)
        self.report.encoded = ok
        return output_path

    def _run_encode(
        self,
        pattern: Path,
        output_path: Path,
        profile: Optional[HardwareProfile],
    ) -> bool:
        if profile is not None:
            encoder_args = list(profile.encode_args)
            self.report.encoder = profile.name
        else:
            encoder_args = list(self.config.software_encoder_args)
            self.report.encoder = "software"

        try:
            result = self.context.gateway.encode_video(
                pattern, output_path, self.config.framerate, encoder_args
            )
        except ToolNotFoundError:
            raise
        except MediaToolError as exc:
            logger.warning("Encode error: %s", exc)
            return False
        return result.ok

    # -- Internal -------------------------------------------------------

    def _transition(self, state: PipelineState) -> None:
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)
        if self.report is not None:
            self.report.state = state
