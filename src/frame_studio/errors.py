"""Error taxonomy shared by extraction, transform and orchestration code."""

from __future__ import annotations

from typing import Any


class FrameStudioError(Exception):
    """Base class for every failure surfaced to callers."""


class MediaDecodeError(FrameStudioError):
    """The video could not be loaded, probed or seeked."""


class NotFound(FrameStudioError):
    """An operation referenced a frame that is no longer in the store."""


class QuotaExceeded(FrameStudioError):
    def __init__(self, name: str, *, limit: int, consumed: int, requested: int) -> None:
        self.name = name
        self.limit = limit
        self.consumed = consumed
        self.requested = requested
        remaining = self.remaining
        super().__init__(
            f"{name} quota exceeded: {remaining} left in this period,"
            f" {requested} requested. Select fewer frames or try again later."
        )

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.consumed)


class TransformError(FrameStudioError):
    """The transform service failed for a reason outside the known categories."""


class TransformAuthError(TransformError):
    """Credentials were rejected; this is a configuration problem."""


class TransformRateLimited(TransformError):
    hint = "Wait a moment before trying again or process a smaller selection of frames."


class TransformBlocked(TransformError):
    def __init__(self, reason: str | None) -> None:
        self.reason = reason or "unspecified"
        super().__init__(f"Request was blocked by the model. Reason: {self.reason}.")


class TransformEmptyResult(TransformError):
    """The service answered but produced no usable image or text."""


class RegenerationFailed(FrameStudioError):
    """A batch aborted on ``index``; frames finished before it are kept."""

    def __init__(self, index: int, cause: TransformError, result: Any) -> None:
        self.index = index
        self.cause = cause
        self.result = result
        super().__init__(f"Regeneration stopped at frame {index}: {cause}")
