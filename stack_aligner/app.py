from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from .chain import COMPARE_MODES, COMPARE_SELECTED
from .core import PillowStack, Roi, SliceStack, add_alignment_tag, load_stack_from_paths, save_stack
from .errors import AlignmentError
from .landmarks import points_from_mapping, read_landmarks_csv
from .log import initialize_logging
from .normalize import ADJUST_CHOICES, ADJUST_FIRST
from .pipeline import AlignmentOptions, AlignmentResult, ManualOptions, run_automated
from .session import ManualSession

logger = logging.getLogger(__name__)


def default_output_name(source_paths: Sequence[str]) -> str:
    if source_paths:
        source = Path(source_paths[0])
        return str(source.with_name(f"{source.stem}_aligned.tif"))
    return "aligned.tif"


def is_output_conflict(output_path: str, source_paths: Sequence[str]) -> bool:
    output_abs = os.path.abspath(output_path)
    for src in source_paths:
        if os.path.abspath(src) == output_abs:
            return True
    return False


def resolve_output_path(output: Optional[str], source_paths: Sequence[str], overwrite: bool = False) -> str:
    output_path = output or default_output_name(source_paths)
    if is_output_conflict(output_path, source_paths):
        raise AlignmentError("Pick a new filename. Original images are never overwritten.")
    if os.path.exists(output_path) and not overwrite:
        raise AlignmentError(f"{output_path} already exists. Choose a new name or pass --overwrite.")
    return output_path


def format_corrections(result: AlignmentResult) -> List[str]:
    return [
        f"{slice_number}\t{correction.dx}\t{correction.dy}"
        for slice_number, correction in enumerate(result.corrections, start=1)
    ]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("paths", nargs="+", help="Input multi-page TIFF or one image per slice")
    parser.add_argument("--first", type=int, default=None, help="First slice to correct (default 1)")
    parser.add_argument("--last", type=int, default=None, help="Last slice to correct (default: stack size)")
    parser.add_argument("--adjust-to", choices=ADJUST_CHOICES, default=ADJUST_FIRST, help="Slice kept at (0, 0)")
    parser.add_argument("--correct-previous", action="store_true", help="Shift slices before the range like the first")
    parser.add_argument("--correct-following", action="store_true", help="Shift slices after the range like the last")
    parser.add_argument("--transform-file", default=None, help="Write a MultiStackReg transformation file")
    parser.add_argument("-o", "--output", default=None, help="Aligned stack path (default <stem>_aligned.tif)")
    parser.add_argument("--overwrite", action="store_true", help="Replace an existing output file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every per-slice step")
    parser.add_argument("--log-file", default=None, help="Also append log records to this file")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stack-aligner", description="Integer translation alignment of image stacks.")
    sub = parser.add_subparsers(dest="command", required=True)

    auto = sub.add_parser("auto", help="Search corrections by matching an ROI slice to slice")
    _add_common_arguments(auto)
    auto.add_argument("--roi", type=int, nargs=4, metavar=("X", "Y", "W", "H"), required=True)
    auto.add_argument("--slice", type=int, default=None, help="Slice the ROI belongs to (default: first of range)")
    auto.add_argument("--range", dest="search_range", type=int, default=5, help="Search radius in pixels")
    auto.add_argument("--power", type=float, default=2.0, help="Error exponent")
    auto.add_argument("--compare", choices=COMPARE_MODES, default=COMPARE_SELECTED)
    auto.add_argument("--no-apply", action="store_true", help="Only export the transformation file")

    manual = sub.add_parser("manual", help="Derive corrections from landmark clicks")
    _add_common_arguments(manual)
    manual.add_argument("--landmarks", required=True, help="CSV with slice,x,y rows")
    manual.add_argument("--current-slice", type=int, default=None, help="Active slice when confirming")
    manual.add_argument("--no-x", action="store_true", help="Do not apply the x component")
    manual.add_argument("--no-y", action="store_true", help="Do not apply the y component")
    return parser


def run_auto(args: argparse.Namespace, stack: SliceStack) -> AlignmentResult:
    host = PillowStack(stack.slices, roi=Roi(*args.roi))
    host.active_slice = args.slice if args.slice is not None else (args.first or 1)
    options = AlignmentOptions(
        search_range=args.search_range,
        power=args.power,
        compare=args.compare,
        first_slice=args.first,
        last_slice=args.last,
        adjust_to=args.adjust_to,
        correct_previous=args.correct_previous,
        correct_following=args.correct_following,
        transform_file=args.transform_file,
        apply=not args.no_apply,
    )
    output_path = resolve_output_path(args.output, stack.source_paths, args.overwrite) if options.apply else None
    result = run_automated(host, options)
    if output_path:
        _save(host, stack, output_path)
    return result


def run_manual(args: argparse.Namespace, stack: SliceStack) -> Optional[AlignmentResult]:
    host = PillowStack(stack.slices)
    options = ManualOptions(
        first_slice=args.first,
        last_slice=args.last,
        adjust_to=args.adjust_to,
        correct_previous=args.correct_previous,
        correct_following=args.correct_following,
        transform_file=args.transform_file,
        align_x=not args.no_x,
        align_y=not args.no_y,
    )
    output_path = resolve_output_path(args.output, stack.source_paths, args.overwrite) if options.applies else None
    landmarks = read_landmarks_csv(args.landmarks)
    points_from_mapping(landmarks, host.slice_count)

    session = ManualSession(host, options)
    for slice_number in sorted(landmarks):
        host.active_slice = slice_number
        session.on_click(*landmarks[slice_number])
    if args.current_slice is not None:
        host.active_slice = args.current_slice
    result = session.confirm()
    if result is None:
        session.cancel()
        return None
    if output_path:
        _save(host, stack, output_path)
    return result


def _save(host: PillowStack, stack: SliceStack, output_path: str) -> None:
    save_stack(host.slices, output_path, tiffinfo=add_alignment_tag(stack.tiffinfo), save_kwargs=stack.save_kwargs)
    logger.info("Saved aligned stack: %s", output_path)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = create_parser().parse_args(argv)
    initialize_logging(verbose=args.verbose, log_file=args.log_file)
    try:
        stack = load_stack_from_paths(args.paths)
        if args.command == "auto":
            result = run_auto(args, stack)
        else:
            result = run_manual(args, stack)
    except (ValueError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    if result is None:
        return 1
    for line in format_corrections(result):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
