"""Media tool subsystem: locate the decode/encode tool and run it.

Typical usage::

    from framedrop.media_tool import FfmpegGateway, ToolLocator

    gateway = FfmpegGateway(ToolLocator("ffmpeg"), config)
    gateway.extract_frames("in.mp4", "/tmp/frames/frame_%04d.png")
"""

from framedrop.media_tool.base import ProcessGateway, ToolResult
from framedrop.media_tool.ffmpeg import FfmpegGateway
from framedrop.media_tool.locator import ToolLocator

__all__ = [
    "ProcessGateway",
    "ToolResult",
    "FfmpegGateway",
    "ToolLocator",
]
