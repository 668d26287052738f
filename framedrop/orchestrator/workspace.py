"""Scratch directory holding the frames of one pipeline run."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ScratchWorkspace:
    """Temporary directory removed when the owning scope ends.

    Use as a context manager; the directory and everything in it are
    deleted on exit whether or not the body raised.

    Parameters
    ----------
    parent : str or Path, optional
        Directory to create the workspace in (system temp if unset).
    prefix : str
        Directory name prefix.
    """

    def __init__(self, parent: Optional[str | Path] = None, prefix: str = "framedrop_") -> None:
        self._parent = Path(parent) if parent else None
        self._prefix = prefix
        self._tmp: Optional[tempfile.TemporaryDirectory] = None

    @property
    def path(self) -> Path:
        if self._tmp is None:
            raise RuntimeError("ScratchWorkspace is not open")
        return Path(self._tmp.name)

    @property
    def is_open(self) -> bool:
        return self._tmp is not None

    def __enter__(self) -> "ScratchWorkspace":
        if self._parent is not None:
            self._parent.mkdir(parents=True, exist_ok=True)
        self._tmp = tempfile.TemporaryDirectory(
            prefix=self._prefix,
            dir=str(self._parent) if self._parent else None,
        )
        logger.debug("Created scratch workspace %s", self._tmp.name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:  # noqa: ANN001
        if self._tmp is not None:
            name = self._tmp.name
            self._tmp.cleanup()
            self._tmp = None
            logger.debug("Removed scratch workspace %s", name)
        return False

    def __repr__(self) -> str:
        status = str(self.path) if self._tmp is not None else "closed"
        return f"<{type(self).__name__}({status})>"
