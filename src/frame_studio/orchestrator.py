"""Sequential, quota-metered regeneration of frames through a transform service."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from style_transfer.base import TransformService
from style_transfer.styles import ArtStyle, build_style_prompt

from .errors import NotFound, RegenerationFailed, TransformError
from .quota import QuotaLedger
from .store import DerivedFrame, DerivedKind, FrameStore


logger = logging.getLogger(__name__)

API_CALL_DELAY_S = 1.5

ProgressCallback = Callable[[int, int, int], None]


@dataclass(frozen=True)
class RegenerationTask:
    position: int
    index: int
    style: ArtStyle


@dataclass
class BatchResult:
    requested: List[int]
    completed: List[int] = field(default_factory=list)
    failed_index: Optional[int] = None
    error: Optional[TransformError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RegenerationOrchestrator:
    """Drives original frames through ``service`` one at a time.

    Every call is sourced from the original frame, the full batch cost is
    reserved before the first call, and a fixed delay separates calls.
    """

    def __init__(
        self,
        store: FrameStore,
        service: TransformService,
        ledger: QuotaLedger,
        *,
        describe_ledger: QuotaLedger | None = None,
        aspect_ratio: float | None = None,
        call_delay: float = API_CALL_DELAY_S,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.store = store
        self.service = service
        self.ledger = ledger
        self.describe_ledger = describe_ledger
        self.aspect_ratio = aspect_ratio
        self.call_delay = call_delay
        self._sleep = sleep
        self._on_progress = on_progress

    def plan(self, target_indices: Iterable[int] | None, style: ArtStyle) -> List[RegenerationTask]:
        if not len(self.store) or not self.aspect_ratio:
            raise ValueError("Load a video and extract frames before regenerating.")

        indices = list(range(len(self.store))) if target_indices is None else list(target_indices)
        if not indices:
            raise ValueError("No frames selected for regeneration.")
        for index in indices:
            self.store.frame(index)

        return [RegenerationTask(position=pos, index=i, style=style) for pos, i in enumerate(indices)]

    def regenerate(
        self,
        target_indices: Iterable[int] | None = None,
        style: ArtStyle = ArtStyle.CARTOON,
        *,
        style_reference: bytes | None = None,
    ) -> BatchResult:
        """Regenerate ``target_indices`` (all originals when None) in ``style``.

        Raises ``QuotaExceeded`` before any call when the batch does not fit,
        and ``RegenerationFailed`` on the first failing frame. Frames finished
        before a failure stay in the store and the quota is not refunded.
        """

        tasks = self.plan(target_indices, style)
        period = self.ledger.current_period()
        self.ledger.reserve(len(tasks), period)

        result = BatchResult(requested=[t.index for t in tasks])
        logger.info("Regenerating %d frame(s) in %s style", len(tasks), style.value)
        try:
            self._run(tasks, result, style_reference)
        finally:
            self.store.clear_selection()

        if result.error is not None:
            raise RegenerationFailed(result.failed_index, result.error, result)
        return result

    def _run(self, tasks: List[RegenerationTask], result: BatchResult, style_reference: bytes | None) -> None:
        total = len(tasks)
        for task in tasks:
            if self._on_progress:
                self._on_progress(task.position + 1, total, task.index)

            source = self.store.frame(task.index).jpeg
            try:
                image = self.service.transform(
                    source, task.style, self.aspect_ratio, style_reference=style_reference
                )
            except Exception as exc:
                error = exc
                if not isinstance(exc, TransformError):
                    # Timeouts and other unclassified errors fail the call like any other.
                    error = TransformError(f"{type(exc).__name__}: {exc}")
                    error.__cause__ = exc
                logger.warning("Frame %d failed, abandoning %d remaining", task.index, total - task.position - 1)
                result.failed_index = task.index
                result.error = error
                return

            prompt = build_style_prompt(task.style, with_reference=style_reference is not None)
            self.store.set_derived(task.index, DerivedFrame(source_index=task.index, image=image, prompt=prompt))
            result.completed.append(task.index)

            if task.position < total - 1:
                self._sleep(self.call_delay)

    def edit(self, index: int, prompt: str) -> DerivedFrame:
        """Apply a free-text edit to the derived frame at ``index`` in place."""

        if not prompt or not prompt.strip():
            raise ValueError("Edit prompt must not be empty.")
        current = self.store.derived(index)
        if current is None:
            raise NotFound(f"No regenerated frame at index {index} to edit")

        image = self.service.edit(current.image, prompt.strip())
        edited = DerivedFrame(source_index=index, image=image, prompt=prompt.strip(), kind=DerivedKind.EDITED)
        self.store.set_derived(index, edited)
        return edited

    def describe(self, index: int) -> str:
        """Describe the original frame, metered by the description ledger."""

        frame = self.store.frame(index)
        if frame.description:
            return frame.description

        if self.describe_ledger is not None:
            self.describe_ledger.reserve(1)
        frame.description = self.service.describe(frame.jpeg)
        frame.translated_description = None
        return frame.description

    def translate(self, index: int, language: str) -> str:
        frame = self.store.frame(index)
        if not frame.description:
            raise NotFound(f"Frame {index} has no description to translate")
        frame.translated_description = self.service.translate(frame.description, language)
        return frame.translated_description
