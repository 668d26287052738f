"""FFmpeg-backed :class:`ProcessGateway`.

Every call spawns one ``ffmpeg`` child process, captures its output and
waits for it under a per-verb timeout.  A timed-out child is killed and
reported as a :class:`~framedrop.errors.MediaToolError`.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from framedrop.config import DedupConfig
from framedrop.errors import MediaToolError, ToolNotFoundError
from framedrop.media_tool.base import ProcessGateway, ToolResult
from framedrop.media_tool.locator import ToolLocator

logger = logging.getLogger(__name__)

# Flags prepended to every invocation.
_COMMON_ARGS = ["-hide_banner", "-nostdin"]


class FfmpegGateway(ProcessGateway):
    """Run ``ffmpeg`` as a managed subprocess.

    Parameters
    ----------
    locator : ToolLocator
        Resolves the ``ffmpeg`` executable on first use.
    config : DedupConfig
        Supplies the per-verb timeouts.
    """

    def __init__(self, locator: ToolLocator, config: DedupConfig) -> None:
        self._locator = locator
        self._config = config

    # -- Probes --------------------------------------------------------

    def list_hwaccels(self) -> str:
        result = self._run(["-hwaccels"], self._config.probe_timeout_s)
        self._check(result, "hwaccel probe")
        return result.stdout

    def list_encoders(self) -> str:
        result = self._run(["-encoders"], self._config.probe_timeout_s)
        self._check(result, "encoder probe")
        return result.stdout

    # -- Frames --------------------------------------------------------

    def extract_frames(
        self,
        video_path: str | Path,
        output_pattern: str | Path,
        decode_args: Sequence[str] = (),
    ) -> ToolResult:
        args = [
            *decode_args,
            "-i",
            str(video_path),
            "-threads",
            "0",
            str(output_pattern),
        ]
        result = self._run(args, self._config.extract_timeout_s)
        if not result.ok:
            logger.warning(
                "Frame extraction exited %d: %s", result.returncode, _tail(result.stderr)
            )
        return result

    def compute_similarity(self, image_a: str | Path, image_b: str | Path) -> str:
        args = [
            "-i",
            str(image_a),
            "-i",
            str(image_b),
            "-filter_complex",
            "ssim",
            "-f",
            "null",
            "-",
        ]
        result = self._run(args, self._config.similarity_timeout_s)
        self._check(result, "ssim probe")
        # The ssim filter reports on the diagnostic stream.
        return result.stderr

    def encode_video(
        self,
        input_pattern: str | Path,
        output_path: str | Path,
        framerate: int,
        encoder_args: Sequence[str],
    ) -> ToolResult:
        args = [
            "-y",
            "-framerate",
            str(framerate),
            "-i",
            str(input_pattern),
            *encoder_args,
            "-threads",
            "0",
            "-pix_fmt",
            "yuv420p",
            str(output_path),
        ]
        result = self._run(args, self._config.encode_timeout_s)
        if not result.ok:
            logger.warning("Encode exited %d: %s", result.returncode, _tail(result.stderr))
        return result

    # -- Internal -------------------------------------------------------

    def _run(self, args: Sequence[str], timeout: float) -> ToolResult:
        """Run the tool with ``args`` and capture its output.

        Raises
        ------
        ToolNotFoundError
            If the executable is missing or not executable.
        MediaToolError
            If the process cannot be started for another reason (for
            example too many open files) or does not exit within
            ``timeout`` seconds.
        """
        cmd = [self._locator.path(), *_COMMON_ARGS, *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                stdin=subprocess.DEVNULL,
                timeout=timeout,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ToolNotFoundError(f"Could not launch {cmd[0]}: {exc}", args=cmd) from exc
        except OSError as exc:
            raise MediaToolError(f"Failed to start {cmd[0]}: {exc}", args=cmd) from exc
        except subprocess.TimeoutExpired as exc:
            stderr = exc.stderr or ""
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            raise MediaToolError(
                f"{cmd[0]} timed out after {timeout:.0f}s",
                args=cmd,
                stderr=_tail(stderr),
            ) from exc

        return ToolResult(
            args=cmd,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    @staticmethod
    def _check(result: ToolResult, what: str) -> None:
        if not result.ok:
            raise MediaToolError(
                f"{what} failed (exit {result.returncode}): {_tail(result.stderr)}",
                args=result.args,
                returncode=result.returncode,
                stderr=_tail(result.stderr),
            )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self._locator!r})>"


def _tail(text: str, limit: int = 500) -> str:
    return text.strip()[-limit:]
