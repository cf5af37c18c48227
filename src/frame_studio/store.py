"""In-memory frame store: ordered originals, sparse derived frames, selection."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

import numpy as np
from PIL import Image

from .errors import NotFound


logger = logging.getLogger(__name__)

JPEG_QUALITY = 92


class Gallery(str, Enum):
    ORIGINAL = "original"
    DERIVED = "derived"


class DerivedKind(str, Enum):
    REGENERATED = "regenerated"
    EDITED = "edited"


def encode_jpeg(pixels: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


@dataclass(eq=False)
class Frame:
    """An accepted original frame. Its index is its position in the store."""

    pixels: np.ndarray
    description: Optional[str] = None
    translated_description: Optional[str] = None
    _jpeg: Optional[bytes] = field(default=None, repr=False)

    @property
    def jpeg(self) -> bytes:
        # Encoded once so repeated transform calls see identical bytes.
        if self._jpeg is None:
            self._jpeg = encode_jpeg(self.pixels)
        return self._jpeg

    def same_pixels(self, pixels: np.ndarray) -> bool:
        return self.pixels.shape == pixels.shape and np.array_equal(self.pixels, pixels)


@dataclass(frozen=True)
class DerivedFrame:
    source_index: int
    image: bytes
    prompt: str
    kind: DerivedKind = DerivedKind.REGENERATED


class FrameStore:
    """Originals plus a positional mapping of derived frames.

    Derived frames are keyed by the index of the original they came from; a
    missing key is a hole. Only one gallery can hold a selection at a time.
    """

    def __init__(self) -> None:
        self._originals: List[Frame] = []
        self._derived: Dict[int, DerivedFrame] = {}
        self._ever_derived = False
        self._selection: Set[int] = set()
        self._active: Optional[Gallery] = None

    # -- originals ---------------------------------------------------------

    @property
    def originals(self) -> List[Frame]:
        return list(self._originals)

    def __len__(self) -> int:
        return len(self._originals)

    def frame(self, index: int) -> Frame:
        if not 0 <= index < len(self._originals):
            raise NotFound(f"Original frame {index} does not exist")
        return self._originals[index]

    def append_original(self, pixels: np.ndarray) -> Optional[int]:
        """Add a frame unless an identical one is already stored."""

        if any(existing.same_pixels(pixels) for existing in self._originals):
            logger.debug("Skipping duplicate frame")
            return None
        self._originals.append(Frame(pixels=pixels))
        return len(self._originals) - 1

    def replace_originals(self, frames: Iterable[np.ndarray]) -> None:
        """Start over with a freshly extracted set of frames."""

        self._originals = [Frame(pixels=p) for p in frames]
        self._derived = {}
        self._ever_derived = False
        self.clear_selection()

    def add_frame(self, frame: Frame) -> int:
        self._originals.append(frame)
        return len(self._originals) - 1

    # -- derived -----------------------------------------------------------

    def derived(self, index: int) -> Optional[DerivedFrame]:
        return self._derived.get(index)

    def set_derived(self, index: int, derived: DerivedFrame) -> None:
        self.frame(index)
        self._derived[index] = derived
        self._ever_derived = True

    @property
    def ever_derived(self) -> bool:
        return self._ever_derived

    def open_derived_slots(self) -> None:
        """Show the derived gallery as slots even while every slot is a hole."""

        if self._originals:
            self._ever_derived = True

    def derived_slots(self) -> List[Optional[DerivedFrame]]:
        """Positional view: empty, or one slot (maybe a hole) per original."""

        if not self._ever_derived:
            return []
        return [self._derived.get(i) for i in range(len(self._originals))]

    def valid_derived(self) -> List[DerivedFrame]:
        return [self._derived[i] for i in sorted(self._derived)]

    def valid_derived_indices(self) -> List[int]:
        return sorted(self._derived)

    # -- selection ---------------------------------------------------------

    @property
    def active_gallery(self) -> Optional[Gallery]:
        return self._active

    def selected(self, gallery: Gallery) -> List[int]:
        if self._active is not gallery:
            return []
        return sorted(self._selection)

    def _selectable(self, gallery: Gallery) -> List[int]:
        if gallery is Gallery.ORIGINAL:
            return list(range(len(self._originals)))
        return self.valid_derived_indices()

    def _activate(self, gallery: Gallery) -> None:
        if self._active is not gallery:
            self._selection = set()
            self._active = gallery

    def toggle(self, gallery: Gallery, index: int) -> bool:
        """Flip selection of ``index``; returns whether it is now selected."""

        if index not in self._selectable(gallery):
            raise NotFound(f"No {gallery.value} frame at index {index}")
        self._activate(gallery)
        if index in self._selection:
            self._selection.discard(index)
        else:
            self._selection.add(index)
        if not self._selection:
            self._active = None
            return False
        return index in self._selection

    def select(self, gallery: Gallery, indices: Iterable[int]) -> None:
        indices = set(indices)
        missing = indices - set(self._selectable(gallery))
        if missing:
            raise NotFound(f"No {gallery.value} frame at index {min(missing)}")
        self._activate(gallery)
        self._selection |= indices
        if not self._selection:
            self._active = None

    def select_all(self, gallery: Gallery) -> None:
        """Select everything in ``gallery``, or clear if it already is."""

        selectable = set(self._selectable(gallery))
        if self._active is gallery and self._selection == selectable:
            self.clear_selection()
            return
        self._activate(gallery)
        self._selection = selectable
        if not selectable:
            self._active = None

    def clear_selection(self) -> None:
        self._selection = set()
        self._active = None

    # -- deletion ----------------------------------------------------------

    def delete_selected(self) -> int:
        """Remove selected originals and their derived frames, compacting both."""

        doomed = set(self.selected(Gallery.ORIGINAL))
        if not doomed:
            return 0

        kept = [i for i in range(len(self._originals)) if i not in doomed]
        remap = {old: new for new, old in enumerate(kept)}

        self._originals = [self._originals[i] for i in kept]
        self._derived = {
            remap[old]: DerivedFrame(
                source_index=remap[old], image=d.image, prompt=d.prompt, kind=d.kind
            )
            for old, d in self._derived.items()
            if old in remap
        }
        self.clear_selection()
        logger.info("Deleted %d original frame(s)", len(doomed))
        return len(doomed)

    def delete_selected_derived(self) -> int:
        """Clear selected derived frames, leaving holes in place."""

        doomed = self.selected(Gallery.DERIVED)
        for index in doomed:
            self._derived.pop(index, None)
        self.clear_selection()
        return len(doomed)
