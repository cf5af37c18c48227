"""Video probing and single-frame decoding using ffprobe/ffmpeg."""

from __future__ import annotations

import io
import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import numpy as np
from PIL import Image

from frame_studio.errors import MediaDecodeError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoInfo:
    duration: float
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


class FrameDecoder(Protocol):
    """Seekable decode surface the sampler drives."""

    @property
    def info(self) -> VideoInfo: ...

    def read_frame(self, timestamp: float) -> Optional[np.ndarray]: ...


def probe_video(video_path: Path) -> VideoInfo:
    """Read duration and pixel dimensions of the first video stream."""

    if not Path(video_path).exists():
        raise MediaDecodeError(f"Video file not found: {video_path}")

    cmd = [
        "ffprobe",
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height:format=duration",
        "-of",
        "json",
        str(video_path),
    ]
    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise MediaDecodeError(f"Could not probe {video_path}: {exc}") from exc

    try:
        data = json.loads(result.stdout or "{}")
        stream = data["streams"][0]
        width = int(stream["width"])
        height = int(stream["height"])
        duration = float(data["format"]["duration"])
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise MediaDecodeError(f"Unreadable probe output for {video_path}") from exc

    if duration <= 0 or width <= 0 or height <= 0:
        raise MediaDecodeError(
            f"Video reports no playable content (duration={duration}, size={width}x{height})"
        )

    return VideoInfo(duration=duration, width=width, height=height)


class FfmpegDecoder:
    """Decodes the frame shown at an exact instant, one ffmpeg run per seek."""

    def __init__(self, video_path: Path | str) -> None:
        self.video_path = Path(video_path)
        self._info: VideoInfo | None = None

    @property
    def info(self) -> VideoInfo:
        if self._info is None:
            self._info = probe_video(self.video_path)
            logger.debug("Probed %s: %s", self.video_path, self._info)
        return self._info

    @property
    def aspect_ratio(self) -> float:
        return self.info.aspect_ratio

    def read_frame(self, timestamp: float) -> Optional[np.ndarray]:
        """Return the RGB frame at ``timestamp`` or None past the last frame."""

        ts_str = f"{timestamp:.3f}"
        cmd = [
            "ffmpeg",
            "-v",
            "error",
            "-ss",
            ts_str,
            "-i",
            str(self.video_path),
            "-frames:v",
            "1",
            "-f",
            "image2pipe",
            "-vcodec",
            "png",
            "-",
        ]
        try:
            result = subprocess.run(cmd, check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise MediaDecodeError(f"Seek to {ts_str}s failed for {self.video_path}") from exc

        if not result.stdout:
            logger.debug("No frame decoded at %ss", ts_str)
            return None

        with Image.open(io.BytesIO(result.stdout)) as image:
            return np.asarray(image.convert("RGB"), dtype=np.uint8).copy()
