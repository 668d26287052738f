"""Locate the external media tool executable once per process."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from framedrop.errors import ToolNotFoundError
from framedrop.once import OnceCell

logger = logging.getLogger(__name__)


class ToolLocator:
    """Lazily resolve and cache the path to the media tool.

    Resolution order:

    1. ``configured_path`` if it points to an executable file.
    2. ``name`` looked up on ``PATH``.

    The first successful lookup is cached for the lifetime of the
    locator; concurrent first calls resolve only once.

    Parameters
    ----------
    name : str
        Executable name to search for on ``PATH``.
    configured_path : str or Path, optional
        Explicit executable path that takes precedence over ``PATH``.
    """

    def __init__(self, name: str = "ffmpeg", configured_path: Optional[str | Path] = None) -> None:
        self.name = name
        self.configured_path = Path(configured_path) if configured_path else None
        self._cell: OnceCell[str] = OnceCell()

    def path(self) -> str:
        """Return the executable path, resolving it on first use.

        Raises
        ------
        ToolNotFoundError
            If neither the configured path nor ``PATH`` yields an
            executable.
        """
        return self._cell.get_or_init(self._resolve)

    def _resolve(self) -> str:
        if self.configured_path is not None:
            if self.configured_path.is_file() and os.access(self.configured_path, os.X_OK):
                logger.info("Using configured %s: %s", self.name, self.configured_path)
                return str(self.configured_path)
            raise ToolNotFoundError(
                f"Configured {self.name} is not an executable file: {self.configured_path}"
            )

        found = shutil.which(self.name)
        if found:
            logger.info("Found %s in PATH: %s", self.name, found)
            return found

        raise ToolNotFoundError(
            f"{self.name} not found. Install it or set tool_path in configs/dedup.yaml."
        )

    def __repr__(self) -> str:
        state = "resolved" if self._cell.initialized else "unresolved"
        return f"<{type(self).__name__}({self.name!r}, {state})>"
