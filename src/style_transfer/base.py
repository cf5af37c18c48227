"""Contract between the orchestrator and any image transform backend."""

from __future__ import annotations

from typing import Optional, Protocol

from .styles import ArtStyle


SUPPORTED_ASPECT_RATIOS = {
    "1:1": 1.0,
    "16:9": 16 / 9,
    "9:16": 9 / 16,
    "4:3": 4 / 3,
    "3:4": 3 / 4,
}


def closest_aspect_ratio(ratio: float | None) -> str:
    """Map a width/height ratio to the nearest ratio string the API accepts."""

    if not ratio or ratio <= 0:
        return "1:1"
    return min(SUPPORTED_ASPECT_RATIOS, key=lambda name: abs(SUPPORTED_ASPECT_RATIOS[name] - ratio))


class TransformService(Protocol):
    """Image transform backend.

    Implementations raise the ``Transform*`` errors from ``frame_studio.errors``
    so callers never look at provider-specific messages.
    """

    def transform(
        self,
        image: bytes,
        style: ArtStyle,
        aspect_ratio: float,
        style_reference: Optional[bytes] = None,
    ) -> bytes: ...

    def edit(self, image: bytes, prompt: str) -> bytes: ...

    def describe(self, image: bytes) -> str: ...

    def translate(self, text: str, language: str) -> str: ...
