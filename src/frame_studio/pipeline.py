"""Pipeline helpers wiring extraction, the store, quotas and Gemini together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from frame_extraction import FfmpegDecoder, QualityThresholds, capture_frame, extract_frames
from frame_extraction.decoder import FrameDecoder
from style_transfer.base import TransformService

from .config import Settings
from .orchestrator import ProgressCallback, RegenerationOrchestrator
from .quota import JsonFileQuotaStore, MeteredAction, QuotaLedger, QuotaStore, SessionPeriod, build_ledger
from .workspace import Workspace


logger = logging.getLogger(__name__)


def extract_into_workspace(
    workspace: Workspace,
    video_path: Path,
    *,
    frames_per_second: float = 1.0,
    max_frames: int = 30,
    thresholds: QualityThresholds | None = None,
    decoder: Optional[FrameDecoder] = None,
) -> int:
    """Replace the workspace's originals with frames extracted from ``video_path``."""

    decoder = decoder or FfmpegDecoder(video_path)

    def _progress(current: int, total: int) -> None:
        print(f"[extract] accepted {current}/{total}")

    result = extract_frames(
        decoder,
        frames_per_second=frames_per_second,
        max_frames=max_frames,
        thresholds=thresholds,
        on_progress=_progress,
    )
    workspace.store.replace_originals(result.frames)
    workspace.aspect_ratio = result.aspect_ratio
    workspace.video = str(video_path)
    return len(result.frames)


def capture_into_workspace(
    workspace: Workspace,
    video_path: Path,
    timestamp: float,
    *,
    decoder: Optional[FrameDecoder] = None,
) -> Optional[int]:
    """Add the frame at ``timestamp``; returns its index or None if already present."""

    decoder = decoder or FfmpegDecoder(video_path)
    pixels = capture_frame(decoder, timestamp)
    if workspace.aspect_ratio is None:
        workspace.aspect_ratio = decoder.info.aspect_ratio
        workspace.video = str(video_path)
    return workspace.store.append_original(pixels)


def build_ledgers(
    settings: Settings, workspace: Workspace, store: QuotaStore | None = None
) -> tuple[QuotaLedger, QuotaLedger]:
    """Regeneration and description ledgers; a workspace is one session."""

    store = store or JsonFileQuotaStore(settings.quota_path)
    session = SessionPeriod(workspace.session_id)
    regen = build_ledger(
        MeteredAction.REGENERATION,
        limit=settings.regen_limit,
        scope=settings.regen_scope,
        store=store,
        session=session,
    )
    describe = build_ledger(
        MeteredAction.DESCRIPTION,
        limit=settings.describe_limit,
        scope=settings.describe_scope,
        store=store,
        session=session,
    )
    return regen, describe


def build_service(settings: Settings) -> TransformService:
    from style_transfer.gemini_client import GeminiTransformService

    return GeminiTransformService(
        api_key=settings.api_key,
        engine=settings.engine,
        image_model=settings.image_model,
        text_model=settings.text_model,
        imagen_model=settings.imagen_model,
    )


def build_orchestrator(
    workspace: Workspace,
    settings: Settings,
    *,
    service: TransformService | None = None,
    quota_store: QuotaStore | None = None,
    on_progress: Optional[ProgressCallback] = None,
) -> RegenerationOrchestrator:
    regen, describe = build_ledgers(settings, workspace, quota_store)
    return RegenerationOrchestrator(
        workspace.store,
        service or build_service(settings),
        regen,
        describe_ledger=describe,
        aspect_ratio=workspace.aspect_ratio,
        call_delay=settings.call_delay,
        on_progress=on_progress,
    )
