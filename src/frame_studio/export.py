"""Labelled image pairs for download packaging."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .errors import NotFound
from .store import FrameStore, Gallery

ExportPair = Tuple[str, bytes]


def export_pairs(
    store: FrameStore, gallery: Gallery, indices: Optional[Iterable[int]] = None
) -> List[ExportPair]:
    """``(label, jpeg bytes)`` for each requested frame; holes are skipped."""

    if gallery is Gallery.ORIGINAL:
        wanted = sorted(indices) if indices is not None else list(range(len(store)))
        return [
            (f"original_frame_{i + 1:04d}.jpg", store.frame(i).jpeg)
            for i in wanted
        ]

    wanted = sorted(indices) if indices is not None else store.valid_derived_indices()
    pairs: List[ExportPair] = []
    for i in wanted:
        if not 0 <= i < len(store):
            raise NotFound(f"Original frame {i} does not exist")
        derived = store.derived(i)
        if derived is not None:
            pairs.append((f"regenerated_frame_{i + 1:04d}.jpg", derived.image))
    return pairs


def write_zip(pairs: Iterable[ExportPair], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for label, data in pairs:
            archive.writestr(label, data)
    return out_path
