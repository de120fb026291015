"""
Command-line interface for the Sudoku scanning pipeline.

This module provides the main entry point for processing Sudoku photos
through the complete pipeline: board detection -> cell extraction -> OCR.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import cv2

from .canvas import ImageLoadError, load_image, to_bgr
from .cells import split_into_cells
from .config import OCRConfig
from .ocr import RecognitionError, prepare_cell, print_grid, tesseract_version
from .pipeline import OCRProgress, crop_board, extract_sudoku_from_image


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sudoku-scan",
        description="Extract a Sudoku puzzle from a photo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sudoku-scan --image data/raw/example.jpg --out out
  sudoku-scan --image data/raw/example.jpg --out out --save-cells --debug
  sudoku-scan --image data/raw/cropped.png --skip-detection --margin 0.12
        """
    )

    parser.add_argument(
        "--image",
        required=True,
        help="Path to input Sudoku image"
    )

    parser.add_argument(
        "--out",
        default="out",
        help="Output directory for results (default: out)"
    )

    parser.add_argument(
        "--margin",
        type=float,
        help="Fraction of each cell trimmed per side, 0-0.5 (default: 0.154)"
    )

    parser.add_argument(
        "--min-conf",
        type=float,
        help="Minimum recognizer confidence 0-100 to accept a digit (default: 1)"
    )

    parser.add_argument(
        "--threshold",
        type=int,
        help="Binarization threshold 0-255 for conditioned cells (default: 160)"
    )

    parser.add_argument(
        "--contrast",
        type=float,
        help="Cell contrast enhancement factor (default: 1.5)"
    )

    parser.add_argument(
        "--padding",
        type=int,
        help="White padding in pixels around each cell before OCR (default: 20)"
    )

    parser.add_argument(
        "--skip-detection",
        action="store_true",
        help="Treat the whole image as the board (already cropped)"
    )

    parser.add_argument(
        "--no-preprocess",
        action="store_true",
        help="Skip board contrast stretching"
    )

    parser.add_argument(
        "--save-cells",
        action="store_true",
        help="Save the 81 conditioned cells to <out>/cells/"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Save per-cell recognition details"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline details"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> OCRConfig:
    """Build the pipeline configuration from parsed arguments."""
    return OCRConfig().with_overrides(
        cell_margin=args.margin,
        min_confidence=args.min_conf,
        binarize_threshold=args.threshold,
        contrast_factor=args.contrast,
        cell_padding=args.padding,
        preprocess=not args.no_preprocess,
        skip_board_detection=args.skip_detection,
    )


def _print_progress(progress: OCRProgress) -> None:
    if progress.status != "recognizing" or progress.progress == 20:
        print(f"  [{progress.progress:5.1f}%] {progress.message}")


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    input_path = Path(args.image)
    input_filename = input_path.stem
    output_dir = Path(args.out)
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        print(f"Loading image: {input_path}")
        image = load_image(input_path)
    except ImageLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        print(f"[INFO] Tesseract {tesseract_version()}")
    except RecognitionError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Please install Tesseract and make sure it is on PATH.", file=sys.stderr)
        sys.exit(3)

    try:
        if config.skip_board_detection:
            board = image
        else:
            print("Stage 1: Board detection...")
            board, region = crop_board(image)
            print(f"[OK] Board at x={region.x} y={region.y} size={region.size}")

        board_path = output_dir / f"{input_filename}_board.png"
        cv2.imwrite(str(board_path), to_bgr(board))
        print(f"  Saved: {board_path}")

        if args.save_cells:
            cells_dir = output_dir / "cells"
            cells_dir.mkdir(parents=True, exist_ok=True)
            cells = split_into_cells(board, config.cell_margin, config.target_cell_size)
            for i, cell in enumerate(cells):
                row, col = divmod(i, 9)
                filename = f"{input_filename}_r{row}_c{col}.png"
                cv2.imwrite(str(cells_dir / filename), to_bgr(prepare_cell(cell, config)))
            print(f"  Saved 81 cells to: {cells_dir}")

        print("Stage 2: OCR digit recognition...")
        # Board is already cropped; do not detect it a second time
        result = extract_sudoku_from_image(
            board,
            config=config.with_overrides(skip_board_detection=True),
            on_progress=_print_progress,
        )
    except ValueError as e:
        print(f"Error during processing: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"[OK] Recognized {result.digit_count} digits (mean confidence {result.confidence:.1f})")
    print("\nRecognized Sudoku Grid:")
    grid = result.grid()
    print_grid(grid)

    puzzle_json = output_dir / f"{input_filename}_puzzle.json"
    with open(puzzle_json, "w") as f:
        json.dump(grid, f)
    print(f"  Saved: {puzzle_json}")

    puzzle_flat = output_dir / f"{input_filename}_puzzle_flat.txt"
    with open(puzzle_flat, "w") as f:
        f.write(result.puzzle)
    print(f"  Saved: {puzzle_flat}")

    if args.debug:
        debug_path = output_dir / f"{input_filename}_debug_info.txt"
        with open(debug_path, "w") as f:
            f.write("Debug Information\n")
            f.write("================\n\n")
            f.write(f"Board size: {board.shape[1]}x{board.shape[0]}\n")
            f.write(f"Config: {config}\n\n")
            for cell in result.cell_results:
                f.write(
                    f"r{cell.row} c{cell.column}: digit={cell.digit} "
                    f"conf={cell.confidence:.1f} text={cell.text!r}\n"
                )
        print(f"  Saved: {debug_path}")

    print(f"\n[OK] Processing complete! Check output directory: {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
