"""CLI entry point for the frame studio toolchain."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from frame_extraction import QualityThresholds
from style_transfer.styles import ArtStyle

from . import __version__
from .config import Settings, configure_logging, load_env_file
from .errors import FrameStudioError, RegenerationFailed, TransformRateLimited
from .export import export_pairs, write_zip
from .pipeline import build_ledgers, build_orchestrator, capture_into_workspace, extract_into_workspace
from .store import Gallery
from .workspace import Workspace


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract video frames and restyle them with Gemini")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path("artifacts/workspace"),
        help="Directory holding extracted and regenerated frames",
    )

    sub = parser.add_subparsers(dest="command")

    extract = sub.add_parser("extract", help="Sample a video and keep sharp, distinct frames")
    extract.add_argument("--video", type=Path, required=True, help="Path to local video file")
    extract.add_argument("--fps", type=float, default=1.0, help="Frames sampled per second of video")
    extract.add_argument("--max-frames", type=int, default=30, help="Stop after this many accepted frames")
    extract.add_argument("--blur-threshold", type=float, default=50.0, help="Reject frames below this Laplacian variance")
    extract.add_argument(
        "--similarity-threshold",
        type=float,
        default=5.0,
        help="Reject frames whose average channel delta to the last kept frame is below this",
    )

    capture = sub.add_parser("capture", help="Add the frame at one timestamp, unfiltered")
    capture.add_argument("--video", type=Path, required=True, help="Path to local video file")
    capture.add_argument("--at", type=float, required=True, help="Timestamp in seconds")

    regen = sub.add_parser("regenerate", help="Restyle frames through Gemini")
    regen.add_argument("--style", default="cartoon", help="Art style name, e.g. cartoon or anime")
    regen.add_argument("--indices", type=int, nargs="+", help="Frame indices (default: all)")
    regen.add_argument("--style-reference", type=Path, help="Optional image to keep styling consistent")

    edit = sub.add_parser("edit", help="Edit a regenerated frame with a text prompt")
    edit.add_argument("--index", type=int, required=True)
    edit.add_argument("--prompt", required=True)

    describe = sub.add_parser("describe", help="Describe an original frame")
    describe.add_argument("--index", type=int, required=True)

    translate = sub.add_parser("translate", help="Translate a frame description")
    translate.add_argument("--index", type=int, required=True)
    translate.add_argument("--language", default="Spanish")

    delete = sub.add_parser("delete", help="Delete frames")
    delete.add_argument("--indices", type=int, nargs="+", required=True)
    delete.add_argument("--derived", action="store_true", help="Clear regenerated frames instead of originals")

    export = sub.add_parser("export", help="Zip frames for download")
    export.add_argument("--gallery", choices=[g.value for g in Gallery], default=Gallery.DERIVED.value)
    export.add_argument("--indices", type=int, nargs="+", help="Frame indices (default: all)")
    export.add_argument("--out", type=Path, help="Archive path")

    sub.add_parser("quota", help="Show remaining regenerations and descriptions")

    return parser


def _print_regen_progress(current: int, total: int, index: int) -> None:
    print(f"[regenerate] frame {index} ({current} of {total})")


def _run(args: argparse.Namespace, settings: Settings) -> Optional[int]:
    workspace = Workspace.open(args.workspace)

    if args.command == "extract":
        thresholds = QualityThresholds(
            blur_threshold=args.blur_threshold,
            similarity_threshold=args.similarity_threshold,
        )
        count = extract_into_workspace(
            workspace,
            args.video,
            frames_per_second=args.fps,
            max_frames=args.max_frames,
            thresholds=thresholds,
        )
        workspace.save()
        print(f"[extract] kept {count} frame(s) -> {workspace.root}")
        return 0

    if args.command == "capture":
        index = capture_into_workspace(workspace, args.video, args.at)
        if index is None:
            print("[capture] frame already present, nothing added")
        else:
            workspace.save()
            print(f"[capture] added frame {index}")
        return 0

    if args.command == "quota":
        regen, describe = build_ledgers(settings, workspace)
        print(f"regenerations left: {regen.remaining()} of {regen.limit} ({settings.regen_scope.value})")
        print(f"descriptions left: {describe.remaining()} of {describe.limit} ({settings.describe_scope.value})")
        return 0

    if args.command == "delete":
        gallery = Gallery.DERIVED if args.derived else Gallery.ORIGINAL
        workspace.store.select(gallery, args.indices)
        if args.derived:
            removed = workspace.store.delete_selected_derived()
        else:
            removed = workspace.store.delete_selected()
        workspace.save()
        print(f"[delete] removed {removed} {gallery.value} frame(s)")
        return 0

    if args.command == "export":
        gallery = Gallery(args.gallery)
        pairs = export_pairs(workspace.store, gallery, args.indices)
        if not pairs:
            print("[export] nothing to export")
            return 1
        out = args.out or workspace.root / f"{'regenerated' if gallery is Gallery.DERIVED else 'original'}_frames.zip"
        write_zip(pairs, out)
        print(f"[export] {len(pairs)} frame(s) -> {out}")
        return 0

    orchestrator = build_orchestrator(workspace, settings, on_progress=_print_regen_progress)

    if args.command == "regenerate":
        style = ArtStyle.from_name(args.style)
        reference = args.style_reference.read_bytes() if args.style_reference else None
        try:
            result = orchestrator.regenerate(args.indices, style, style_reference=reference)
        except RegenerationFailed as exc:
            print(f"[regenerate] finished {len(exc.result.completed)} frame(s) before failing", file=sys.stderr)
            if isinstance(exc.cause, TransformRateLimited):
                print(f"[regenerate] {TransformRateLimited.hint}", file=sys.stderr)
            raise
        finally:
            workspace.save()
        print(f"[regenerate] done: {', '.join(str(i) for i in result.completed)}")
        return 0

    if args.command == "edit":
        orchestrator.edit(args.index, args.prompt)
        workspace.save()
        print(f"[edit] updated frame {args.index}")
        return 0

    if args.command == "describe":
        print(orchestrator.describe(args.index))
        workspace.save()
        return 0

    if args.command == "translate":
        print(orchestrator.translate(args.index, args.language))
        workspace.save()
        return 0

    return None


def main(argv: Optional[List[str]] = None) -> int:
    # Load .env if present (ignored if values already in env)
    load_env_file()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    settings = Settings.from_env()
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        code = _run(args, settings)
    except (FrameStudioError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if code is None:
        parser.print_help()
        return 0
    return code


if __name__ == "__main__":
    sys.exit(main())
