"""Hardware decode/encode backend discovery.

:class:`HardwareProfileResolver` probes the media tool once for its
hardware accelerators and encoders, walks a fixed preference list of
backends and caches the first one the tool supports.  ``None`` means
"use the software encoder".

Only the first match is ever used.  If that backend later fails at
encode time, the controller may fall back to software encoding, but
the resolver never demotes to the next candidate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from framedrop.errors import MediaToolError, ToolNotFoundError
from framedrop.media_tool.base import ProcessGateway
from framedrop.once import OnceCell

logger = logging.getLogger(__name__)

_VAAPI_DEVICE = "/dev/dri/renderD128"


@dataclass(frozen=True)
class HardwareProfile:
    """A hardware backend and its argument sets.

    Attributes
    ----------
    name : str
        Accelerator identifier as reported by the tool (e.g. ``"cuda"``).
    decode_args : tuple[str, ...]
        Arguments placed before the input when extracting frames.
    encode_args : tuple[str, ...]
        Encoder arguments used when re-encoding.
    encoder : str
        Encoder name that must be present for this profile to apply.
    """

    name: str
    decode_args: tuple[str, ...]
    encode_args: tuple[str, ...]
    encoder: str


# Preference order: first supported entry wins.
CANDIDATE_PROFILES: tuple[HardwareProfile, ...] = (
    HardwareProfile(
        name="cuda",
        decode_args=("-hwaccel", "cuda"),
        encode_args=("-c:v", "h264_nvenc", "-preset", "p4", "-tune", "hq"),
        encoder="h264_nvenc",
    ),
    HardwareProfile(
        name="videotoolbox",
        decode_args=("-hwaccel", "videotoolbox"),
        encode_args=("-c:v", "h264_videotoolbox"),
        encoder="h264_videotoolbox",
    ),
    HardwareProfile(
        name="qsv",
        decode_args=("-hwaccel", "qsv"),
        encode_args=("-c:v", "h264_qsv"),
        encoder="h264_qsv",
    ),
    HardwareProfile(
        name="vaapi",
        decode_args=("-hwaccel", "vaapi", "-vaapi_device", _VAAPI_DEVICE),
        encode_args=(
            "-vaapi_device",
            _VAAPI_DEVICE,
            "-vf",
            "format=nv12,hwupload",
            "-c:v",
            "h264_vaapi",
        ),
        encoder="h264_vaapi",
    ),
)


def _tokens(text: str) -> set[str]:
    """Split freeform probe output into a set of whitespace tokens."""
    return set(text.split())


def select_profile(
    hwaccels_text: str,
    encoders_text: str,
    candidates: tuple[HardwareProfile, ...] = CANDIDATE_PROFILES,
) -> Optional[HardwareProfile]:
    """Return the first candidate supported by both probe outputs.

    Parameters
    ----------
    hwaccels_text : str
        Output of the accelerator probe.
    encoders_text : str
        Output of the encoder probe.
    candidates : tuple[HardwareProfile, ...]
        Ordered preference list.

    Returns
    -------
    HardwareProfile or None
        ``None`` when no candidate's accelerator and encoder are both
        listed.
    """
    accels = _tokens(hwaccels_text)
    encoders = _tokens(encoders_text)
    for profile in candidates:
        if profile.name in accels and profile.encoder in encoders:
            return profile
    return None


class HardwareProfileResolver:
    """Resolve the active :class:`HardwareProfile` once and cache it.

    Parameters
    ----------
    gateway : ProcessGateway
        Used for the two capability probes.
    enabled : bool
        When ``False`` no probing happens and :meth:`resolve` always
        returns ``None``.
    """

    def __init__(self, gateway: ProcessGateway, enabled: bool = True) -> None:
        self._gateway = gateway
        self._enabled = enabled
        self._cell: OnceCell[Optional[HardwareProfile]] = OnceCell()

    def resolve(self) -> Optional[HardwareProfile]:
        """Return the cached profile, probing the tool on first call.

        A probe failure resolves to ``None`` (software fallback) and is
        cached like any other outcome.

        Raises
        ------
        ToolNotFoundError
            If the media tool cannot be launched.
        """
        return self._cell.get_or_init(self._detect)

    def _detect(self) -> Optional[HardwareProfile]:
        if not self._enabled:
            logger.info("Hardware acceleration disabled, using software encoder")
            return None

        try:
            hwaccels = self._gateway.list_hwaccels()
            encoders = self._gateway.list_encoders()
        except ToolNotFoundError:
            raise
        except MediaToolError as exc:
            logger.warning("Hardware probe failed, using software encoder: %s", exc)
            return None

        profile = select_profile(hwaccels, encoders)
        if profile is None:
            logger.info("No hardware backend available, using software encoder")
        else:
            logger.info("Using hardware backend %r", profile.name)
        return profile
