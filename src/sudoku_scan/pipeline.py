"""
End-to-end extraction of a Sudoku puzzle from a photo.

Sequences the stages: load -> detect and crop board -> stretch contrast ->
split into cells -> recognize each cell -> puzzle string.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from .canvas import check_pixel_buffer, crop, load_image
from .cells import DEFAULT_CELL_MARGIN, split_into_cells
from .config import OCRConfig
from .grid import Rectangle, SquareRegion, detect_board_rectangle, squarify_rectangle
from .ocr import CellRecognitionResult, recognize_cells, stretch_contrast, to_grid, to_puzzle


logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, np.ndarray]


@dataclass(frozen=True)
class OCRProgress:
    """Progress report: status is loading, processing, recognizing or complete."""
    status: str
    progress: float
    message: str


@dataclass(frozen=True)
class OCRResult:
    """
    Extracted puzzle.

    Attributes:
        puzzle: 81-character string, 0 for empty cells
        confidence: Mean confidence (0-100) over cells with a digit, 0 if none
        digit_count: Number of cells with a recognized digit
        cell_results: Per-cell details in row-major order
        board: Square region cropped from the photo, None when detection was skipped
    """
    puzzle: str
    confidence: float
    digit_count: int
    cell_results: List[CellRecognitionResult] = field(default_factory=list)
    board: Optional[SquareRegion] = None

    def grid(self) -> List[List[int]]:
        return to_grid(self.puzzle)


ProgressCallback = Callable[[OCRProgress], None]


def _load(source: ImageSource) -> np.ndarray:
    if isinstance(source, np.ndarray):
        return check_pixel_buffer(source)
    return load_image(source)


def crop_board(pixels: np.ndarray) -> Tuple[np.ndarray, SquareRegion]:
    """
    Detect the board and cut out its largest centered square.

    Args:
        pixels: RGBA photo buffer

    Returns:
        Tuple of (board buffer, square region in photo coordinates)
    """
    rect: Rectangle = detect_board_rectangle(pixels)
    region = squarify_rectangle(rect)
    if region.size <= 0:
        # Degenerate detection (e.g. a one pixel wide image): use the whole photo
        height, width = pixels.shape[:2]
        region = SquareRegion(0, 0, min(width, height))

    logger.info("Board detected at x=%d y=%d size=%d", region.x, region.y, region.size)
    return crop(pixels, region.x, region.y, region.size, region.size), region


def extract_sudoku_from_image(
    source: ImageSource,
    engine=None,
    config: Optional[OCRConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> OCRResult:
    """
    Extract a Sudoku puzzle from a photo.

    Args:
        source: File path, encoded image bytes or RGBA buffer
        engine: Recognizer with recognize(pixels) -> Recognition (shared Tesseract engine if None)
        config: Pipeline settings (defaults if None)
        on_progress: Called with OCRProgress at each stage and after every cell

    Returns:
        OCRResult with the puzzle string and per-cell details

    Raises:
        ImageLoadError: If the image cannot be loaded
    """
    config = config or OCRConfig()

    def report(status: str, progress: float, message: str) -> None:
        if on_progress is not None:
            on_progress(OCRProgress(status, progress, message))

    report("loading", 0, "Loading image...")
    pixels = _load(source)

    region = None
    if config.skip_board_detection:
        board = pixels
    else:
        report("processing", 5, "Detecting board...")
        board, region = crop_board(pixels)
    report("processing", 15, "Processing image...")

    if config.preprocess:
        board = stretch_contrast(board)

    cells = split_into_cells(board, config.cell_margin, config.target_cell_size)
    report("recognizing", 20, "Recognizing digits...")

    def cell_progress(percent: float) -> None:
        done = round(percent * len(cells) / 100)
        report("recognizing", 20 + percent * 0.75, f"Recognizing cell {min(done + 1, len(cells))}/{len(cells)}...")

    cell_results = recognize_cells(cells, engine, config, cell_progress)
    report("processing", 95, "Finalizing...")

    recognized = [r for r in cell_results if r.digit is not None]
    confidence = sum(r.confidence for r in recognized) / len(recognized) if recognized else 0.0

    result = OCRResult(
        puzzle=to_puzzle(cell_results),
        confidence=confidence,
        digit_count=len(recognized),
        cell_results=cell_results,
        board=region,
    )
    report("complete", 100, "Complete")
    logger.info("Extracted %d digits, mean confidence %.1f", result.digit_count, result.confidence)
    return result


def detect_and_crop_board(source: ImageSource) -> np.ndarray:
    """
    Detect the board in a photo and return it as a square RGBA buffer.

    Args:
        source: File path, encoded image bytes or RGBA buffer

    Returns:
        Cropped square board
    """
    board, _ = crop_board(_load(source))
    return board


def extract_cell_images(board: ImageSource, margin: float = DEFAULT_CELL_MARGIN) -> List[np.ndarray]:
    """
    Split an already cropped board into its 81 cell images (for previews).

    Args:
        board: Cropped board as path, bytes or RGBA buffer
        margin: Fraction of each cell trimmed per side

    Returns:
        81 RGBA cell buffers in row-major order
    """
    return split_into_cells(_load(board), margin)
