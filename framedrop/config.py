"""Pipeline configuration data structures.

A :class:`DedupConfig` describes everything the pipeline needs to know
about a run: where the media tool lives, which similarity strategy to
use, how frames are named on disk, and how long each external call may
take.

Configs can be loaded from YAML files via :func:`load_dedup_config`.
String values in YAML configs support environment variable expansion
using ``$VAR`` or ``${VAR}`` syntax, as well as ``~`` for the user
home directory.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# Default config file shipped at the project root.
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "dedup.yaml"

# Pattern matching $VAR or ${VAR} for environment variable expansion.
_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

_SOFTWARE_ENCODER_ARGS = ["-c:v", "libx264", "-preset", "fast"]


@dataclass
class DedupConfig:
    """Declarative description of one deduplication run.

    Parameters
    ----------
    tool_path : str, optional
        Explicit path to the media tool executable.  When unset the
        tool is looked up on ``PATH`` by ``tool_name``.
    tool_name : str
        Executable name to search for (default ``"ffmpeg"``).
    strategy : str
        Similarity strategy: ``"pixel"`` (in-process) or ``"ffmpeg"``
        (the tool's own SSIM filter).
    batch_size : int
        Number of contiguous frames scored as one parallel unit.
    frame_extension : str
        Image extension used for extracted frames.
    frame_prefix : str
        File name prefix for extracted frames.
    frame_digits : int
        Zero-padding width of the frame index.
    framerate : int
        Frame rate of the re-encoded output.
    software_encoder_args : list[str]
        Encoder arguments used when no hardware profile is active.
    hardware_acceleration : bool
        Probe for hardware decode/encode backends.
    software_fallback : bool
        Retry a failed hardware encode once with the software encoder.
    max_workers : int, optional
        Worker pool size for batch scoring and directory traversal.
    row_workers : int, optional
        Worker pool size for per-row pixel similarity.
    probe_timeout_s, extract_timeout_s, similarity_timeout_s, encode_timeout_s : float
        Upper bound in seconds for each kind of external invocation.
    similarity_retries : int
        Extra attempts for a failed external similarity probe.
    scratch_dir : str or Path, optional
        Parent directory for the scratch workspace (system temp if unset).
    output_suffix : str
        Appended to the input stem to build the output file name.
    output_container : str
        Extension of the output video.
    """

    tool_path: Optional[str | Path] = None
    tool_name: str = "ffmpeg"
    strategy: str = "pixel"
    batch_size: int = 20

    # Frame naming
    frame_extension: str = "png"
    frame_prefix: str = "frame_"
    frame_digits: int = 4

    # Encoding
    framerate: int = 30
    software_encoder_args: list[str] = field(
        default_factory=lambda: list(_SOFTWARE_ENCODER_ARGS)
    )
    hardware_acceleration: bool = True
    software_fallback: bool = True

    # Parallelism
    max_workers: Optional[int] = None
    row_workers: Optional[int] = None

    # External invocation limits
    probe_timeout_s: float = 30.0
    extract_timeout_s: float = 3600.0
    similarity_timeout_s: float = 60.0
    encode_timeout_s: float = 3600.0
    similarity_retries: int = 1

    # Paths
    scratch_dir: Optional[str | Path] = None
    output_suffix: str = "_processed"
    output_container: str = "mp4"

    def __post_init__(self) -> None:
        if self.tool_path:
            self.tool_path = Path(os.path.expanduser(_expand_vars(str(self.tool_path))))
        if self.scratch_dir:
            self.scratch_dir = Path(os.path.expanduser(_expand_vars(str(self.scratch_dir))))
        self.frame_extension = self.frame_extension.lstrip(".").lower()
        self.software_encoder_args = [str(a) for a in self.software_encoder_args]

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if not self.strategy:
            raise ValueError("strategy must not be empty")
        if self.framerate <= 0:
            raise ValueError(f"framerate must be > 0, got {self.framerate}")
        if self.frame_digits < 1:
            raise ValueError(f"frame_digits must be >= 1, got {self.frame_digits}")
        if self.similarity_retries < 0:
            raise ValueError(
                f"similarity_retries must be >= 0, got {self.similarity_retries}"
            )
        for name in (
            "probe_timeout_s",
            "extract_timeout_s",
            "similarity_timeout_s",
            "encode_timeout_s",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")

    @property
    def frame_pattern(self) -> str:
        """Printf-style file name pattern for extracted frames."""
        return f"{self.frame_prefix}%0{self.frame_digits}d.{self.frame_extension}"

    def frame_name(self, index: int) -> str:
        """Return the file name of the frame at 1-based ``index``."""
        return self.frame_pattern % index


def _expand_vars(value: str) -> str:
    """Expand ``$VAR`` and ``${VAR}`` references in a string.

    Undefined variables are left as-is (no error).  ``${VAR:-default}``
    falls back to ``default``.
    """

    def _replace(match: re.Match) -> str:
        braced = match.group(1)
        bare = match.group(2)
        original: str = match.group(0) or ""

        if braced is not None:
            if ":-" in braced:
                var_name, default = braced.split(":-", 1)
                return os.environ.get(var_name, default)
            return os.environ.get(braced, original)

        return os.environ.get(bare or "", original)

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_vars_recursive(data: dict) -> dict:
    """Expand environment variables in all string values of *data*.

    Lists of strings (e.g. encoder arguments) are expanded element-wise.
    """
    expanded: dict = {}
    for key, value in data.items():
        if isinstance(value, str):
            expanded[key] = _expand_vars(value)
        elif isinstance(value, list):
            expanded[key] = [_expand_vars(v) if isinstance(v, str) else v for v in value]
        else:
            expanded[key] = value
    return expanded


def load_dedup_config(config_path: str | Path | None = None) -> DedupConfig:
    """Load a :class:`DedupConfig` from a YAML file.

    Parameters
    ----------
    config_path : str or Path, optional
        YAML file to read.  When omitted, ``configs/dedup.yaml`` is used
        if present, otherwise the built-in defaults are returned.

    Returns
    -------
    DedupConfig

    Raises
    ------
    FileNotFoundError
        If an explicit ``config_path`` does not exist.
    ValueError
        If the YAML contains unknown fields or invalid values.
    yaml.YAMLError
        If the file is not valid YAML.
    """
    if config_path is None:
        if not _DEFAULT_CONFIG_PATH.exists():
            logger.debug("No %s found, using built-in defaults", _DEFAULT_CONFIG_PATH)
            return DedupConfig()
        config_path = _DEFAULT_CONFIG_PATH

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"No dedup config found at {config_path}")

    logger.info("Loading dedup config from %s", config_path)
    with open(config_path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    if raw is None:
        return DedupConfig()
    if not isinstance(raw, dict):
        raise ValueError(
            f"Expected a YAML mapping in {config_path}, got {type(raw).__name__}"
        )

    raw = _expand_vars_recursive(raw)

    valid_fields = {f.name for f in dataclasses.fields(DedupConfig)}
    unknown = set(raw) - valid_fields
    if unknown:
        raise ValueError(
            f"Unknown fields in {config_path}: {sorted(unknown)}. "
            f"Valid fields: {sorted(valid_fields)}"
        )

    try:
        return DedupConfig(**raw)
    except TypeError as exc:
        raise ValueError(
            f"Invalid config in {config_path}: {exc}. "
            f"Valid fields: {sorted(valid_fields)}"
        ) from exc
