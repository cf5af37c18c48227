"""Frame sampling: walk a video at a fixed cadence and keep the good frames."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional

import numpy as np

from frame_studio.errors import MediaDecodeError

from .decoder import FrameDecoder
from .quality import QualityFilter, QualityThresholds


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class Candidate:
    timestamp: float
    pixels: np.ndarray


@dataclass
class ExtractionResult:
    frames: List[np.ndarray]
    aspect_ratio: float
    sampled: int = 0
    timestamps: List[float] = field(default_factory=list)


def frange(start: float, stop: float, step: float) -> Iterable[float]:
    # Multiply instead of accumulating so long videos do not drift.
    i = 0
    cur = start
    while cur < stop:
        yield cur
        i += 1
        cur = start + i * step


def sample_timestamps(duration_s: float, frames_per_second: float) -> List[float]:
    """Uniformly spaced instants ``0, 1/rate, 2/rate, ...`` before the end."""

    if frames_per_second <= 0:
        raise ValueError("frames_per_second must be > 0")
    if duration_s <= 0:
        raise MediaDecodeError("Video reports zero duration")
    return list(frange(0.0, duration_s, 1.0 / frames_per_second))


def iter_candidates(decoder: FrameDecoder, frames_per_second: float) -> Iterator[Candidate]:
    """Lazily seek and decode each sampled instant in increasing time order."""

    duration = decoder.info.duration
    for ts in sample_timestamps(duration, frames_per_second):
        pixels = decoder.read_frame(min(ts, duration))
        if pixels is None:
            logger.debug("Decoder ran out of frames at %.3fs", ts)
            return
        yield Candidate(timestamp=ts, pixels=pixels)


def extract_frames(
    decoder: FrameDecoder,
    *,
    frames_per_second: float = 1.0,
    max_frames: int = 30,
    thresholds: QualityThresholds | None = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ExtractionResult:
    """Return distinct, non-blurry frames sampled from ``decoder``.

    Sampling stops at end of video or once ``max_frames`` frames have been
    accepted. Running twice with the same video and thresholds yields the same
    frames.
    """

    if max_frames <= 0:
        raise ValueError("max_frames must be > 0")

    info = decoder.info
    quality = QualityFilter(thresholds)
    result = ExtractionResult(frames=[], aspect_ratio=info.aspect_ratio)

    for candidate in iter_candidates(decoder, frames_per_second):
        result.sampled += 1
        verdict = quality.evaluate(candidate.pixels)
        if not verdict.accepted:
            logger.debug(
                "Rejected frame at %.3fs (blurry=%s similar=%s variance=%.2f)",
                candidate.timestamp,
                verdict.blurry,
                verdict.similar,
                verdict.variance,
            )
            continue

        result.frames.append(candidate.pixels)
        result.timestamps.append(candidate.timestamp)
        if on_progress:
            on_progress(len(result.frames), max_frames)
        if len(result.frames) >= max_frames:
            break

    logger.info("Accepted %d of %d sampled frames", len(result.frames), result.sampled)
    return result


def capture_frame(decoder: FrameDecoder, timestamp: float) -> np.ndarray:
    """Grab the frame at ``timestamp`` without any quality filtering."""

    duration = decoder.info.duration
    if timestamp < 0:
        raise ValueError("timestamp must be >= 0")
    pixels = decoder.read_frame(min(timestamp, duration))
    if pixels is None:
        raise MediaDecodeError(f"No frame could be decoded at {timestamp:.3f}s")
    return pixels
