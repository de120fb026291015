"""
OCR module for digit recognition using Tesseract.

This module provides functions for conditioning Sudoku cells, running them
through the recognizer and turning the output into a puzzle grid.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

import cv2
import numpy as np
import pytesseract
from PIL import Image

from .canvas import WHITE, check_pixel_buffer
from .cells import CELL_COUNT, GRID_SIZE, is_cell_empty
from .config import DEFAULT_BINARIZE_THRESHOLD, DEFAULT_CELL_PADDING, DEFAULT_CONTRAST_FACTOR, OCRConfig
from .digits import parse_digit
from .preprocess import luma


logger = logging.getLogger(__name__)

# Page segmentation mode 10: treat the image as a single character
SINGLE_CHAR_CONFIG = "--psm 10 --oem 1"
DILATE_DARK_THRESHOLD = 128
STRETCH_GAMMA = 0.8

# Global cache for the recognizer
_engine_cache = {}
_engine_lock = threading.Lock()


class RecognitionError(RuntimeError):
    """Raised when the recognizer cannot process a cell."""
    pass


class Recognition(NamedTuple):
    """Raw recognizer output: text and confidence 0-100."""
    text: str
    confidence: float


@dataclass(frozen=True)
class CellRecognitionResult:
    """Outcome for one cell; digit is None for blank or unreadable cells."""
    index: int
    row: int
    column: int
    digit: Optional[int]
    confidence: float
    text: str


def _with_rgb(pixels: np.ndarray, rgb: np.ndarray) -> np.ndarray:
    """New buffer with the given RGB values and the alpha channel of pixels."""
    out = np.empty_like(pixels)
    out[..., :3] = rgb
    out[..., 3] = pixels[..., 3]
    return out


def enhance_contrast(pixels: np.ndarray, factor: float = DEFAULT_CONTRAST_FACTOR) -> np.ndarray:
    """
    Push every channel value away from the mean brightness.

    Args:
        pixels: RGBA buffer
        factor: Contrast multiplier (1.0 leaves the image unchanged)

    Returns:
        New RGBA buffer, alpha unchanged
    """
    check_pixel_buffer(pixels)
    mean = float(luma(pixels).mean())
    rgb = pixels[..., :3].astype(np.float64)
    stretched = np.floor(mean + (rgb - mean) * factor + 0.5)
    return _with_rgb(pixels, np.clip(stretched, 0, 255).astype(np.uint8))


def binarize(pixels: np.ndarray, threshold: int = DEFAULT_BINARIZE_THRESHOLD) -> np.ndarray:
    """
    Convert to pure black and white.

    Args:
        pixels: RGBA buffer
        threshold: Pixels with luma below this become black, the rest white

    Returns:
        New RGBA buffer, alpha unchanged
    """
    check_pixel_buffer(pixels)
    values = np.where(luma(pixels) < threshold, 0, 255).astype(np.uint8)
    return _with_rgb(pixels, values[..., np.newaxis])


def dilate(pixels: np.ndarray) -> np.ndarray:
    """
    Thicken dark strokes by one pixel.

    A pixel turns black when any of its eight neighbours is dark (luma < 128).
    Helps with thin 8s and 9s that binarize into broken strokes.

    Args:
        pixels: RGBA buffer, usually already binarized

    Returns:
        New RGBA buffer, alpha unchanged
    """
    check_pixel_buffer(pixels)
    height, width = pixels.shape[:2]
    dark = np.pad(luma(pixels) < DILATE_DARK_THRESHOLD, 1, mode="constant", constant_values=False)

    near_dark = np.zeros((height, width), dtype=bool)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dy == 0 and dx == 0:
                continue
            near_dark |= dark[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]

    out = pixels.copy()
    out[near_dark, :3] = 0
    return out


def add_padding(pixels: np.ndarray, padding: int = DEFAULT_CELL_PADDING) -> np.ndarray:
    """Surround a buffer with an opaque white border of padding pixels."""
    check_pixel_buffer(pixels)
    if padding <= 0:
        return pixels.copy()
    return cv2.copyMakeBorder(
        pixels, padding, padding, padding, padding, cv2.BORDER_CONSTANT, value=WHITE
    )


def stretch_contrast(pixels: np.ndarray) -> np.ndarray:
    """
    Board-level preprocessing: min/max contrast stretch then gamma 0.8.

    Output is grayscale (R = G = B).

    Args:
        pixels: RGBA buffer of the board

    Returns:
        New RGBA buffer, alpha unchanged
    """
    check_pixel_buffer(pixels)
    gray = np.floor(luma(pixels))
    low, high = gray.min(), gray.max()
    value_range = (high - low) or 1

    stretched = np.floor((gray - low) / value_range * 255)
    corrected = np.floor(255 * np.power(stretched / 255, STRETCH_GAMMA))
    return _with_rgb(pixels, corrected.astype(np.uint8)[..., np.newaxis])


def prepare_cell(
    cell: np.ndarray,
    config: Optional[OCRConfig] = None,
    use_dilation: bool = False,
) -> np.ndarray:
    """
    Condition a single cell for recognition.

    Process: contrast enhancement -> binarize -> (optional dilation) -> white padding.

    Args:
        cell: RGBA cell buffer
        config: Pipeline settings (defaults if None)
        use_dilation: Thicken strokes; used when the first attempt found no digit

    Returns:
        Padded black-and-white RGBA buffer
    """
    config = config or OCRConfig()
    processed = enhance_contrast(cell, config.contrast_factor)
    processed = binarize(processed, config.binarize_threshold)
    if use_dilation:
        processed = dilate(processed)
    return add_padding(processed, config.cell_padding)


class TesseractEngine:
    """
    Single-character recognizer backed by pytesseract.

    Tesseract must be installed and on PATH (or pytesseract.tesseract_cmd set).
    """

    def __init__(self, lang: str = "eng", config: str = SINGLE_CHAR_CONFIG):
        self.lang = lang
        self.config = config

    def recognize(self, pixels: np.ndarray) -> Recognition:
        """
        Recognize the character in a conditioned cell.

        Returns:
            Recognition with the joined word text and mean word confidence (0 if none)

        Raises:
            RecognitionError: If Tesseract is missing or fails
        """
        check_pixel_buffer(pixels)
        image = Image.fromarray(np.ascontiguousarray(pixels[..., :3]))

        try:
            data = pytesseract.image_to_data(
                image, lang=self.lang, config=self.config, output_type=pytesseract.Output.DICT
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise RecognitionError(f"Tesseract failed: {e}") from e

        words = []
        confidences = []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            conf = float(conf)
            if text.strip() and conf >= 0:
                words.append(text.strip())
                confidences.append(conf)

        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return Recognition("".join(words), confidence)


def get_engine() -> TesseractEngine:
    """
    Get the shared Tesseract engine.

    Created on first use and reused afterwards.
    """
    with _engine_lock:
        if "tesseract" not in _engine_cache:
            _engine_cache["tesseract"] = TesseractEngine()
        return _engine_cache["tesseract"]


def tesseract_version() -> str:
    """
    Installed Tesseract version.

    Raises:
        RecognitionError: If Tesseract is not installed
    """
    try:
        return str(pytesseract.get_tesseract_version())
    except pytesseract.TesseractNotFoundError as e:
        raise RecognitionError("Tesseract is not installed or not on PATH") from e


def _read_digit(
    cell: np.ndarray, engine, config: OCRConfig, use_dilation: bool
) -> Tuple[Optional[int], Recognition]:
    result = engine.recognize(prepare_cell(cell, config, use_dilation))
    text = result.text.strip()
    digit = parse_digit(text)
    if digit is not None and result.confidence < config.min_confidence:
        digit = None
    return digit, Recognition(text, result.confidence)


def recognize_cell(index: int, cell: np.ndarray, engine=None, config: Optional[OCRConfig] = None) -> CellRecognitionResult:
    """
    Recognize the digit in one cell.

    Blank cells are reported without calling the recognizer. When the first
    attempt yields no accepted digit, the cell is retried once with dilation.
    Recognizer errors are logged and leave the cell without a digit.

    Args:
        index: Cell index 0-80 in row-major order
        cell: RGBA cell buffer (unconditioned)
        engine: Object with recognize(pixels) -> Recognition (shared Tesseract engine if None)
        config: Pipeline settings (defaults if None)

    Returns:
        CellRecognitionResult for the cell
    """
    config = config or OCRConfig()
    row, column = divmod(index, GRID_SIZE)

    if is_cell_empty(cell):
        return CellRecognitionResult(index, row, column, None, 100.0, "")

    if engine is None:
        engine = get_engine()

    digit = None
    text = ""
    confidence = 0.0
    try:
        digit, (text, confidence) = _read_digit(cell, engine, config, use_dilation=False)
        if digit is None:
            retry_digit, retry = _read_digit(cell, engine, config, use_dilation=True)
            if retry_digit is not None:
                digit = retry_digit
                text, confidence = retry
    except Exception as e:
        # One unreadable cell must not abort the other 80
        logger.warning("OCR failed for cell %d (row %d, col %d): %s", index, row, column, e)

    return CellRecognitionResult(index, row, column, digit, confidence, text)


def recognize_cells(
    cells: List[np.ndarray],
    engine=None,
    config: Optional[OCRConfig] = None,
    on_progress: Optional[Callable[[float], None]] = None,
) -> List[CellRecognitionResult]:
    """
    Recognize digits in all 81 cells.

    Args:
        cells: 81 RGBA cell buffers in row-major order
        engine: Recognizer (shared Tesseract engine if None)
        config: Pipeline settings (defaults if None)
        on_progress: Called with the completed percentage after each cell

    Returns:
        81 CellRecognitionResult entries in row-major order
    """
    if len(cells) != CELL_COUNT:
        raise ValueError(f"Expected {CELL_COUNT} cells, got {len(cells)}")

    config = config or OCRConfig()
    if engine is None:
        engine = get_engine()

    results = []
    for i, cell in enumerate(cells):
        if i % GRID_SIZE == 0:
            logger.debug("Processing row %d/%d...", i // GRID_SIZE + 1, GRID_SIZE)

        results.append(recognize_cell(i, cell, engine, config))

        if on_progress is not None:
            on_progress((i + 1) / len(cells) * 100)

    logger.info("Recognized %d digits in %d cells",
                sum(r.digit is not None for r in results), len(cells))
    return results


def to_puzzle(results: List[CellRecognitionResult]) -> str:
    """81-character puzzle string, 0 for cells without a digit."""
    return "".join(str(r.digit or 0) for r in results)


def to_grid(puzzle: str) -> List[List[int]]:
    """
    Convert an 81-character puzzle string to a 9x9 grid.

    Args:
        puzzle: Digits in row-major order, 0 for empty cells

    Returns:
        9x9 grid as list of lists
    """
    if len(puzzle) != CELL_COUNT:
        raise ValueError(f"Expected {CELL_COUNT} digits, got {len(puzzle)}")

    return [
        [int(ch) for ch in puzzle[row * GRID_SIZE:(row + 1) * GRID_SIZE]]
        for row in range(GRID_SIZE)
    ]


GRID_SEPARATOR = "+" + "-" * 29 + "+"


def print_grid(grid: List[List[int]]) -> None:
    """
    Pretty-print a Sudoku grid to stdout.

    Args:
        grid: 9x9 grid as list of lists
    """
    print(GRID_SEPARATOR)

    for i, row in enumerate(grid):
        line = "|"
        for j, cell in enumerate(row):
            line += "   " if cell == 0 else f" {cell} "
            if j in [2, 5]:
                line += "|"

        line += "|"
        print(line)

        if i in [2, 5]:
            print(GRID_SEPARATOR)

    print(GRID_SEPARATOR)


def validate_puzzle(puzzle: str) -> bool:
    """
    Basic structural check of a puzzle string.

    Returns:
        True if it has 81 characters, all digits 0-9
    """
    return len(puzzle) == CELL_COUNT and all(ch in "0123456789" for ch in puzzle)
