"""Package for video sampling and frame quality filtering."""

from .decoder import FfmpegDecoder, VideoInfo, probe_video
from .quality import QualityFilter, QualityThresholds, is_blurry, is_too_similar, laplacian_variance
from .sampler import ExtractionResult, capture_frame, extract_frames, iter_candidates, sample_timestamps

__all__ = [
    "FfmpegDecoder",
    "VideoInfo",
    "probe_video",
    "QualityFilter",
    "QualityThresholds",
    "is_blurry",
    "is_too_similar",
    "laplacian_variance",
    "ExtractionResult",
    "capture_frame",
    "extract_frames",
    "iter_candidates",
    "sample_timestamps",
]
