"""
Chess Screen – Main Entry Point
===============================

Commands:

  1. **Recognize**  – Locate the board in a screenshot, classify every
                      square against a template folder and print the FEN.
  2. **Locate**     – Run board location only and report the rect.
  3. **Templates**  – Load a template folder and list what it contains.

Usage examples
--------------

**Recognition**::

    chess-screen recognize \\
        --image screenshot.png \\
        --templates templates/ \\
        --auto-tag --full

**Board location only**::

    chess-screen locate --image screenshot.png --save-debug located.png

**Template inspection**::

    chess-screen templates --templates templates/ --filter-tag 1920_1080
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import cv2
import numpy as np

from chess_screen.errors import ChessScreenError

log = logging.getLogger("chess_screen")


def _read_image(path: str) -> np.ndarray:
    image = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if image is None:
        log.error("Could not read image: %s", path)
        sys.exit(1)
    return image


# ═══════════════════════════════════════════════════════════════════════
# Recognition
# ═══════════════════════════════════════════════════════════════════════

def cmd_recognize(args: argparse.Namespace) -> None:
    """Run the recognition pipeline on a screenshot."""
    from chess_screen.inference.catalog import TemplateCatalog, resolution_tag
    from chess_screen.inference.pipeline import ScreenshotPipeline

    image = _read_image(args.image)

    filter_tag = args.filter_tag
    if args.auto_tag:
        filter_tag = resolution_tag(image)
        log.info("Using resolution tag %s", filter_tag)

    catalog = TemplateCatalog.load(
        args.templates, filter_tag, strict=args.strict_templates,
    )
    pipeline = ScreenshotPipeline(
        catalog,
        workers=args.workers,
        on_error="raise" if args.strict_squares else "placeholder",
    )

    result = pipeline.recognize(image)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif args.full:
        print(result.full_fen)
    else:
        print(result.fen)

    if args.verbose and not args.json:
        print("\n" + "=" * 60, file=sys.stderr)
        print("  CHESS SCREEN RESULT", file=sys.stderr)
        print("=" * 60, file=sys.stderr)
        print(f"  FEN (position) : {result.fen}", file=sys.stderr)
        print(f"  FEN (full)     : {result.full_fen}", file=sys.stderr)
        print(f"  Board rect     : {result.board_rect}", file=sys.stderr)
        print(f"  Detection      : {result.detection_method}", file=sys.stderr)
        print(f"  Mean score     : {result.mean_score:.4f}", file=sys.stderr)
        if result.violations:
            print(f"  Violations     : {result.violations}", file=sys.stderr)
        if result.failed_squares:
            print(f"  Failed squares : {result.failed_squares}", file=sys.stderr)
        print("=" * 60 + "\n", file=sys.stderr)

    if args.save_debug:
        pipeline.visualize(result, image=image, save_path=args.save_debug)


# ═══════════════════════════════════════════════════════════════════════
# Board location
# ═══════════════════════════════════════════════════════════════════════

def cmd_locate(args: argparse.Namespace) -> None:
    """Locate the board and print the normalised rect."""
    from chess_screen.errors import BoardNotFoundError
    from chess_screen.inference.grid import normalize
    from chess_screen.inference.pipeline import draw_locator_result
    from chess_screen.models.board_locator import BoardLocator

    image = _read_image(args.image)
    h, w = image.shape[:2]

    locator = BoardLocator()
    rough = locator.locate(image)
    if rough is None:
        raise BoardNotFoundError(f"No board region found in {w}x{h} image")
    board_rect = normalize(rough.rect, w, h, locator.config.min_board_side)

    print(json.dumps({
        "method": rough.method,
        "rough": [rough.rect.x, rough.rect.y, rough.rect.width, rough.rect.height],
        "board": [board_rect.x, board_rect.y, board_rect.width, board_rect.height],
        "cell": board_rect.width // 8,
    }))

    if args.save_debug:
        vis = draw_locator_result(image, rough, board_rect)
        cv2.imwrite(args.save_debug, vis)
        log.info("Saved debug image to %s", args.save_debug)


# ═══════════════════════════════════════════════════════════════════════
# Template inspection
# ═══════════════════════════════════════════════════════════════════════

def cmd_templates(args: argparse.Namespace) -> None:
    """List the keys of a loaded template catalog."""
    from chess_screen.inference.catalog import TemplateCatalog

    catalog = TemplateCatalog.load(
        args.templates, args.filter_tag, strict=args.strict_templates,
    )
    for key in catalog.keys():
        print(key)
    print(
        f"{len(catalog)} templates, backgrounds: "
        + ", ".join(bg.value for bg in catalog.backgrounds)
    )


# ═══════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chess-screen",
        description="Recognise a chess position from a screenshot.",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging and a result summary on stderr")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # ── recognize ──
    p_rec = sub.add_parser("recognize", help="Recognize a screenshot")
    p_rec.add_argument("--image", required=True,
                       help="Path to the screenshot")
    p_rec.add_argument("--templates", required=True,
                       help="Directory of template PNGs")
    tag = p_rec.add_mutually_exclusive_group()
    tag.add_argument("--filter-tag", default=None,
                     help="Only load templates whose name ends in _<TAG>")
    tag.add_argument("--auto-tag", action="store_true",
                     help="Use the screenshot resolution (<W>_<H>) as filter tag")
    p_rec.add_argument("--full", action="store_true",
                       help="Print the full six-field FEN")
    p_rec.add_argument("--strict-templates", action="store_true",
                       help="Fail on duplicate template keys")
    p_rec.add_argument("--strict-squares", action="store_true",
                       help="Fail when a single square cannot be classified")
    p_rec.add_argument("--workers", type=int, default=None,
                       help="Classify squares on N threads")
    p_rec.add_argument("--save-debug", default=None,
                       help="Save debug overlay to path")
    p_rec.add_argument("--json", action="store_true",
                       help="Print a JSON summary instead of the bare FEN")

    # ── locate ──
    p_loc = sub.add_parser("locate", help="Locate the board only")
    p_loc.add_argument("--image", required=True)
    p_loc.add_argument("--save-debug", default=None,
                       help="Save debug overlay to path")

    # ── templates ──
    p_tpl = sub.add_parser("templates", help="List a template catalog")
    p_tpl.add_argument("--templates", required=True)
    p_tpl.add_argument("--filter-tag", default=None)
    p_tpl.add_argument("--strict-templates", action="store_true")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    dispatch = {
        "recognize": cmd_recognize,
        "locate": cmd_locate,
        "templates": cmd_templates,
    }

    try:
        dispatch[args.command](args)
    except ChessScreenError as exc:
        log.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
