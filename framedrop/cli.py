"""Command-line entry point.

Usage::

    framedrop <input_video_path> <output_directory>

Prints ``Video created: <path>`` on success.  Settings come from
``configs/dedup.yaml`` when present.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import yaml

from framedrop.config import load_dedup_config
from framedrop.context import PipelineContext
from framedrop.errors import FramedropError, ToolNotFoundError
from framedrop.log import setup_logging
from framedrop.orchestrator import DeduplicationController

logger = logging.getLogger(__name__)


class _UsageParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        sys.stderr.write(f"{self.prog}: error: {message}\n")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    p = _UsageParser(
        prog="framedrop",
        description="Remove near-duplicate frames from a video and re-encode it.",
    )
    p.add_argument("video_file", help="Input video path")
    p.add_argument("output_directory", help="Directory for the processed video")
    return p


def _one_line(exc: BaseException) -> str:
    """Collapse a possibly multi-line error message (YAML marks) to one line."""
    return " ".join(str(exc).split())


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        config = load_dedup_config()
        context = PipelineContext.from_config(config)
        output = DeduplicationController(context).process_video(
            args.video_file, args.output_directory
        )
    except ToolNotFoundError as exc:
        logger.critical("%s", exc)
        sys.stderr.write(f"error creating video: {_one_line(exc)}\n")
        return 1
    except (FramedropError, ValueError, OSError, yaml.YAMLError) as exc:
        sys.stderr.write(f"error creating video: {_one_line(exc)}\n")
        return 1

    sys.stdout.write(f"Video created: {output}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
