"""
Sudoku Scan - extract Sudoku puzzles from photos.

This package provides functionality for:
- Image preprocessing (grayscale, blur, edge detection)
- Board detection with line, edge density and dark pixel strategies
- Cell extraction, conditioning and digit recognition
"""

__version__ = "0.1.0"

from .canvas import ImageLoadError, load_image, from_bgr, to_bgr, crop, resample_region
from .preprocess import to_grayscale, gaussian_blur, detect_edges
from .grid import (
    Line,
    Rectangle,
    SquareRegion,
    find_horizontal_lines,
    find_vertical_lines,
    group_lines,
    find_rectangle_from_lines,
    find_rectangle_by_density,
    find_rectangle_dark_pixels,
    detect_board_rectangle,
    squarify_rectangle,
)
from .cells import CellGeometry, cell_geometry, split_into_cells, is_cell_empty
from .digits import CORRECTIONS, parse_digit
from .config import OCRConfig
from .ocr import (
    CellRecognitionResult,
    Recognition,
    RecognitionError,
    TesseractEngine,
    enhance_contrast,
    binarize,
    dilate,
    add_padding,
    stretch_contrast,
    prepare_cell,
    recognize_cells,
    to_grid,
    print_grid,
    validate_puzzle,
)
from .pipeline import OCRProgress, OCRResult, extract_sudoku_from_image, detect_and_crop_board, extract_cell_images

__all__ = [
    # Pipeline
    "extract_sudoku_from_image",
    "detect_and_crop_board",
    "extract_cell_images",
    "OCRConfig",
    "OCRProgress",
    "OCRResult",
    # Image loading
    "load_image",
    "from_bgr",
    "to_bgr",
    "crop",
    "resample_region",
    # Preprocessing
    "to_grayscale",
    "gaussian_blur",
    "detect_edges",
    # Board detection
    "Line",
    "Rectangle",
    "SquareRegion",
    "find_horizontal_lines",
    "find_vertical_lines",
    "group_lines",
    "find_rectangle_from_lines",
    "find_rectangle_by_density",
    "find_rectangle_dark_pixels",
    "detect_board_rectangle",
    "squarify_rectangle",
    # Cells
    "CellGeometry",
    "cell_geometry",
    "split_into_cells",
    "is_cell_empty",
    # OCR
    "enhance_contrast",
    "binarize",
    "dilate",
    "add_padding",
    "stretch_contrast",
    "prepare_cell",
    "recognize_cells",
    "Recognition",
    "TesseractEngine",
    "CellRecognitionResult",
    "CORRECTIONS",
    "parse_digit",
    "to_grid",
    "print_grid",
    "validate_puzzle",
    # Exceptions
    "ImageLoadError",
    "RecognitionError",
]
