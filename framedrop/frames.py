"""Enumerate extracted frame images on disk.

:class:`FrameCollector` walks a directory tree level by level, listing
each level's directories concurrently on a worker pool, and returns the
matching frame files in temporal order.
"""

from __future__ import annotations

import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Trailing frame index in a file stem, e.g. ``frame_0042`` -> 42.
_INDEX_RE = re.compile(r"(\d+)$")


def frame_sort_key(path: Path) -> tuple:
    """Order frames by their numeric index, then by full path.

    Frames whose index overflowed the zero-padding width (``frame_10000``
    after ``frame_9999``) still sort after their predecessors.
    """
    match = _INDEX_RE.search(path.stem)
    index = int(match.group(1)) if match else -1
    return (str(path.parent), index, path.name)


def _list_dir(directory: Path) -> tuple[list[Path], list[Path]]:
    """Return ``(files, subdirs)`` of ``directory``; unreadable -> empty."""
    files: list[Path] = []
    subdirs: list[Path] = []
    try:
        with os.scandir(directory) as it:
            for entry in it:
                try:
                    if entry.is_dir():
                        subdirs.append(Path(entry.path))
                    elif entry.is_file():
                        files.append(Path(entry.path))
                except OSError:
                    continue
    except OSError as exc:
        logger.debug("Cannot list %s: %s", directory, exc)
    return files, subdirs


class FrameCollector:
    """Collect frame image paths beneath a directory.

    Parameters
    ----------
    extension : str
        File extension to keep (without dot, case-insensitive).
    max_workers : int, optional
        Worker pool size for directory listing.
    """

    def __init__(self, extension: str = "png", max_workers: Optional[int] = None) -> None:
        self.extension = extension.lstrip(".").lower()
        self.max_workers = max_workers

    def _matches(self, path: Path) -> bool:
        return path.suffix.lower() == f".{self.extension}"

    def collect(self, root: str | Path) -> list[Path]:
        """Return every matching frame under ``root`` in temporal order.

        A missing ``root`` yields an empty list; a file ``root`` yields
        itself if it has the right extension.
        """
        root = Path(root)
        if not root.exists():
            return []
        if root.is_file():
            return [root] if self._matches(root) else []

        found: list[Path] = []
        level = [root]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            while level:
                next_level: list[Path] = []
                for files, subdirs in pool.map(_list_dir, level):
                    found.extend(p for p in files if self._matches(p))
                    next_level.extend(subdirs)
                level = next_level

        found.sort(key=frame_sort_key)
        logger.debug("Collected %d .%s frames under %s", len(found), self.extension, root)
        return found
