"""On-disk workspace so a frame store survives between CLI runs.

Layout::

    <root>/manifest.json
    <root>/originals/frame_0001.png
    <root>/derived/frame_0001.jpg
"""

from __future__ import annotations

import io
import json
import logging
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from .errors import FrameStudioError
from .store import DerivedFrame, DerivedKind, Frame, FrameStore


logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
MANIFEST_VERSION = 1


@dataclass
class Workspace:
    root: Path
    store: FrameStore = field(default_factory=FrameStore)
    aspect_ratio: Optional[float] = None
    video: Optional[str] = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_NAME

    @classmethod
    def open(cls, root: Path | str) -> "Workspace":
        """Load an existing workspace, or start an empty one at ``root``."""

        root = Path(root)
        manifest = root / MANIFEST_NAME
        if not manifest.exists():
            return cls(root=root)

        try:
            data = json.loads(manifest.read_text())
        except ValueError as exc:
            raise FrameStudioError(f"Workspace manifest {manifest} is not valid JSON") from exc

        ws = cls(
            root=root,
            aspect_ratio=data.get("aspect_ratio"),
            video=data.get("video"),
            session_id=data.get("session_id") or uuid.uuid4().hex,
        )
        try:
            ws._load_frames(data)
        except (OSError, KeyError, TypeError, ValueError) as exc:
            raise FrameStudioError(f"Workspace {root} is damaged: {exc}") from exc
        logger.debug("Opened workspace %s with %d frame(s)", root, len(ws.store))
        return ws

    def _load_frames(self, data: dict) -> None:
        for entry in data.get("originals", []):
            with Image.open(self.root / entry["file"]) as image:
                pixels = np.asarray(image.convert("RGB"), dtype=np.uint8).copy()
            self.store.add_frame(
                Frame(
                    pixels=pixels,
                    description=entry.get("description"),
                    translated_description=entry.get("translated_description"),
                )
            )
        for entry in data.get("derived", []):
            index = int(entry["index"])
            self.store.set_derived(
                index,
                DerivedFrame(
                    source_index=index,
                    image=(self.root / entry["file"]).read_bytes(),
                    prompt=entry.get("prompt", ""),
                    kind=DerivedKind(entry.get("kind", DerivedKind.REGENERATED.value)),
                ),
            )
        if data.get("derived_slots"):
            self.store.open_derived_slots()

    def save(self) -> Path:
        originals_dir = self.root / "originals"
        derived_dir = self.root / "derived"
        for directory in (originals_dir, derived_dir):
            if directory.exists():
                shutil.rmtree(directory)
            directory.mkdir(parents=True)

        originals = []
        for i, frame in enumerate(self.store.originals):
            rel = Path("originals") / f"frame_{i + 1:04d}.png"
            buf = io.BytesIO()
            Image.fromarray(frame.pixels).save(buf, format="PNG")
            (self.root / rel).write_bytes(buf.getvalue())
            originals.append(
                {
                    "file": rel.as_posix(),
                    "description": frame.description,
                    "translated_description": frame.translated_description,
                }
            )

        derived = []
        for index in self.store.valid_derived_indices():
            item = self.store.derived(index)
            rel = Path("derived") / f"frame_{index + 1:04d}.jpg"
            (self.root / rel).write_bytes(item.image)
            derived.append({"index": index, "file": rel.as_posix(), "prompt": item.prompt, "kind": item.kind.value})

        manifest = {
            "version": MANIFEST_VERSION,
            "video": self.video,
            "aspect_ratio": self.aspect_ratio,
            "session_id": self.session_id,
            "originals": originals,
            "derived": derived,
            "derived_slots": self.store.ever_derived,
        }
        self.manifest_path.write_text(json.dumps(manifest, indent=2))
        return self.manifest_path
