"""
Test Configuration
==================

Shared fixtures: synthetic frames, a fake decoder and a fake transform service.
"""

from typing import Dict, List, Optional

import numpy as np
import pytest

from frame_extraction.decoder import VideoInfo
from frame_studio.quota import MemoryQuotaStore, QuotaLedger
from frame_studio.store import FrameStore


def textured_frame(seed: int = 0, size: int = 32) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(size, size, 3), dtype=np.uint8)


def solid_frame(value: int = 0, size: int = 32) -> np.ndarray:
    return np.full((size, size, 3), value, dtype=np.uint8)


class FakeDecoder:
    """Serves pre-rendered frames as if they were a video at ``fps``."""

    def __init__(self, frames: List[np.ndarray], fps: float, duration: Optional[float] = None):
        self.frames = frames
        self.fps = fps
        height, width = frames[0].shape[:2] if frames else (1, 1)
        self._info = VideoInfo(
            duration=duration if duration is not None else len(frames) / fps,
            width=width,
            height=height,
        )
        self.seeks: List[float] = []

    @property
    def info(self) -> VideoInfo:
        return self._info

    def read_frame(self, timestamp: float) -> Optional[np.ndarray]:
        self.seeks.append(timestamp)
        i = int(round(timestamp * self.fps))
        if i >= len(self.frames):
            return None
        return self.frames[i]


class FakeTransformService:
    """Records every call; fails on configured call numbers (1-based)."""

    def __init__(self, failures: Optional[Dict[int, Exception]] = None):
        self.failures = failures or {}
        self.transform_inputs: List[bytes] = []
        self.edit_inputs: List[tuple] = []
        self.describe_inputs: List[bytes] = []
        self.translate_inputs: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def transform(self, image, style, aspect_ratio, style_reference=None):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.transform_inputs.append(image)
            call = len(self.transform_inputs)
            if call in self.failures:
                raise self.failures[call]
            return f"styled-{call}-{style.name}".encode()
        finally:
            self.in_flight -= 1

    def edit(self, image, prompt):
        self.edit_inputs.append((image, prompt))
        return image + b"|" + prompt.encode()

    def describe(self, image):
        self.describe_inputs.append(image)
        return f"a scene #{len(self.describe_inputs)}"

    def translate(self, text, language):
        self.translate_inputs.append((text, language))
        return f"[{language}] {text}"


@pytest.fixture
def store_with_frames():
    store = FrameStore()
    for seed in range(5):
        store.append_original(textured_frame(seed))
    return store


@pytest.fixture
def fake_service():
    return FakeTransformService()


@pytest.fixture
def quota_store():
    return MemoryQuotaStore()


@pytest.fixture
def ledger(quota_store):
    return QuotaLedger(quota_store, name="regeneration", limit=10, period=lambda: "2026-10-18")
