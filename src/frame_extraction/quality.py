"""Blur and near-duplicate predicates for sampled frames.

Both predicates work on ``H x W x 3`` ``uint8`` RGB arrays. A candidate is
accepted only when it is neither blurry nor too similar to the last frame that
was accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])
SIMILARITY_SAMPLE_STRIDE = 10

DEFAULT_BLUR_THRESHOLD = 50.0
DEFAULT_SIMILARITY_THRESHOLD = 5.0


@dataclass(frozen=True)
class QualityThresholds:
    blur_threshold: float = DEFAULT_BLUR_THRESHOLD
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def __post_init__(self) -> None:
        if self.blur_threshold < 0 or self.similarity_threshold < 0:
            raise ValueError("Quality thresholds must be >= 0")


@dataclass(frozen=True)
class Verdict:
    blurry: bool
    similar: bool
    variance: float
    difference: Optional[float]

    @property
    def accepted(self) -> bool:
        return not (self.blurry or self.similar)


def to_luma(pixels: np.ndarray) -> np.ndarray:
    """Single-channel luma, rounded back into 8 bits."""

    rgb = pixels[..., :3].astype(np.float64)
    luma = rgb @ LUMA_WEIGHTS
    return np.clip(np.rint(luma), 0, 255).astype(np.uint8)


def laplacian_variance(pixels: np.ndarray) -> float:
    """Population variance of the 4-neighbour Laplacian over interior pixels."""

    gray = to_luma(pixels).astype(np.float64)
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return float("inf")

    center = gray[1:-1, 1:-1]
    response = (
        gray[:-2, 1:-1]
        + gray[2:, 1:-1]
        + gray[1:-1, :-2]
        + gray[1:-1, 2:]
        - 4.0 * center
    )
    return float(response.var())


def is_blurry(pixels: np.ndarray, blur_threshold: float) -> bool:
    return laplacian_variance(pixels) < blur_threshold


def mean_sampled_difference(current: np.ndarray, previous: np.ndarray) -> float:
    """Average per-channel delta over every 10th pixel (by linear offset)."""

    if current.shape != previous.shape:
        raise ValueError(f"Frame shapes differ: {current.shape} vs {previous.shape}")

    cur = current.reshape(-1, current.shape[-1])[::SIMILARITY_SAMPLE_STRIDE, :3]
    prev = previous.reshape(-1, previous.shape[-1])[::SIMILARITY_SAMPLE_STRIDE, :3]
    if cur.shape[0] == 0:
        return 0.0

    diff = np.abs(cur.astype(np.int16) - prev.astype(np.int16)).sum()
    return float(diff) / (cur.shape[0] * 3)


def is_too_similar(
    current: np.ndarray, previous: Optional[np.ndarray], similarity_threshold: float
) -> bool:
    if previous is None:
        return False
    return mean_sampled_difference(current, previous) < similarity_threshold


class QualityFilter:
    """Stateful filter remembering the last accepted frame."""

    def __init__(self, thresholds: QualityThresholds | None = None) -> None:
        self.thresholds = thresholds or QualityThresholds()
        self._last_accepted: Optional[np.ndarray] = None

    def reset(self) -> None:
        self._last_accepted = None

    def evaluate(self, pixels: np.ndarray) -> Verdict:
        variance = laplacian_variance(pixels)
        blurry = variance < self.thresholds.blur_threshold

        difference = None
        if self._last_accepted is not None:
            difference = mean_sampled_difference(pixels, self._last_accepted)
        similar = difference is not None and difference < self.thresholds.similarity_threshold

        verdict = Verdict(blurry=blurry, similar=similar, variance=variance, difference=difference)
        if verdict.accepted:
            self._last_accepted = pixels
        return verdict
