"""
Cell extraction functions for splitting the board into individual cells.

This module handles:
- Dividing the board into a 9x9 grid with an inward margin per cell
- Resampling each cell to a size the recognizer handles well
- Detecting blank cells before recognition
"""

import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .canvas import check_pixel_buffer, resample_region
from .preprocess import luma


GRID_SIZE = 9
CELL_COUNT = GRID_SIZE * GRID_SIZE

DEFAULT_CELL_MARGIN = 0.154
DEFAULT_TARGET_CELL_SIZE = 100
EMPTY_STDDEV_THRESHOLD = 8.0


@dataclass(frozen=True)
class CellGeometry:
    """Crop rectangle of one cell within the squared board."""
    row: int
    column: int
    source_x: float
    source_y: float
    source_width: float
    source_height: float

    @property
    def index(self) -> int:
        return self.row * GRID_SIZE + self.column


def cell_geometry(width: float, height: float, margin: float = DEFAULT_CELL_MARGIN) -> List[CellGeometry]:
    """
    Compute the 81 cell crop rectangles for a board.

    Each cell is width/9 x height/9, shrunk on every side by margin times
    the cell size so grid lines stay out of the crop.

    Args:
        width: Board width in pixels
        height: Board height in pixels
        margin: Fraction of the cell trimmed per side, 0 <= margin < 0.5

    Returns:
        81 CellGeometry entries in row-major order

    Raises:
        ValueError: If the board is empty or the margin is out of range
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Board must have a positive size, got {width}x{height}")
    if not 0 <= margin < 0.5:
        raise ValueError(f"Cell margin must be in [0, 0.5), got {margin}")

    cell_width = width / GRID_SIZE
    cell_height = height / GRID_SIZE
    margin_x = cell_width * margin
    margin_y = cell_height * margin

    return [
        CellGeometry(
            row=row,
            column=col,
            source_x=col * cell_width + margin_x,
            source_y=row * cell_height + margin_y,
            source_width=cell_width - 2 * margin_x,
            source_height=cell_height - 2 * margin_y,
        )
        for row in range(GRID_SIZE)
        for col in range(GRID_SIZE)
    ]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def split_into_cells(
    board: np.ndarray,
    margin: float = DEFAULT_CELL_MARGIN,
    target_size: int = DEFAULT_TARGET_CELL_SIZE,
) -> List[np.ndarray]:
    """
    Split a board buffer into 81 cell buffers.

    Cells smaller than target_size on their short side are upscaled so that
    side reaches target_size; larger cells keep their size.

    Args:
        board: RGBA buffer of the cropped board
        margin: Fraction of each cell trimmed per side
        target_size: Minimum short side of a resampled cell

    Returns:
        List of 81 RGBA cell buffers in row-major order
    """
    check_pixel_buffer(board)
    height, width = board.shape[:2]

    cells = []
    for geometry in cell_geometry(width, height, margin):
        scale = max(1.0, target_size / min(geometry.source_width, geometry.source_height))
        out_width = max(1, _round_half_up(geometry.source_width * scale))
        out_height = max(1, _round_half_up(geometry.source_height * scale))

        cells.append(resample_region(
            board,
            geometry.source_x,
            geometry.source_y,
            geometry.source_width,
            geometry.source_height,
            out_width,
            out_height,
        ))

    return cells


def is_cell_empty(cell: np.ndarray, threshold: float = EMPTY_STDDEV_THRESHOLD) -> bool:
    """
    Check if a cell is blank.

    A digit adds strong brightness variation; a blank cell is close to
    uniform whatever the lighting.

    Args:
        cell: RGBA cell buffer
        threshold: Standard deviation of luma below which the cell is empty

    Returns:
        True if the cell appears to be empty
    """
    check_pixel_buffer(cell)
    return float(np.std(luma(cell))) < threshold
