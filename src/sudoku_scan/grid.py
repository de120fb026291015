"""
Board detection functions.

This module handles:
- Finding long horizontal and vertical edge runs
- Scoring line pairs to pick the board rectangle
- Falling back to edge density and dark pixel bounds when lines are missing
- Squaring the detected rectangle for cell extraction
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

import numpy as np

from .canvas import check_intensity_map
from .preprocess import edge_map


logger = logging.getLogger(__name__)

# Line finding
MIN_LINE_COVERAGE = 0.5
LINE_MERGE_RATIO = 0.03

# Line-pair scoring
MIN_SIDE_RATIO = 0.3
BORDER_MARGIN_RATIO = 0.02
HORIZONTAL_EDGE_PENALTY = 0.7
VERTICAL_EDGE_PENALTY = 0.8

# Density fallback
DENSITY_WINDOW_RATIO = 0.05
DENSITY_START = 0.15
DENSITY_SUSTAIN = 0.1
DENSITY_SUSTAIN_FRACTION = 0.3
DENSITY_MIN_SIDE_RATIO = 0.2

# Dark pixel fallback
DARK_THRESHOLD = 200
MIN_DARK_FRACTION = 0.1


class Line(NamedTuple):
    """A detected straight line: row/column offset and run coverage in [0, 1]."""
    position: int
    strength: float


@dataclass(frozen=True)
class Rectangle:
    """Board bounds in source image pixels."""
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


@dataclass(frozen=True)
class SquareRegion:
    """Square crop: top-left corner and side length."""
    x: int
    y: int
    size: int


def _longest_run(mask: np.ndarray) -> int:
    """Length of the longest run of True values in a 1D boolean array."""
    padded = np.concatenate(([0], mask.astype(np.int8), [0]))
    changes = np.flatnonzero(np.diff(padded))
    if changes.size == 0:
        return 0
    return int((changes[1::2] - changes[0::2]).max())


def _find_lines(edges: np.ndarray) -> List[Line]:
    """Rows of the edge map whose longest edge run covers half the row."""
    length = edges.shape[1]
    min_run = length * MIN_LINE_COVERAGE
    lines = []

    for position, row in enumerate(edges > 0):
        run = _longest_run(row)
        if run >= min_run:
            lines.append(Line(position, run / length))

    return lines


def find_horizontal_lines(edges: np.ndarray) -> List[Line]:
    """
    Find rows containing a continuous edge run of at least half the image width.

    Args:
        edges: Binary edge map (0/255)

    Returns:
        Lines in row order, strength = run length / width
    """
    check_intensity_map(edges)
    return _find_lines(edges)


def find_vertical_lines(edges: np.ndarray) -> List[Line]:
    """Column counterpart of find_horizontal_lines (run measured against height)."""
    check_intensity_map(edges)
    return _find_lines(edges.T)


def group_lines(lines: List[Line], margin: float) -> List[Line]:
    """
    Collapse lines closer than margin, keeping the strongest of each group.

    Each line joins the first existing group within margin; the group takes
    the line's position and strength only when the line is strictly stronger.

    Args:
        lines: Detected lines in scan order
        margin: Merge distance in pixels

    Returns:
        Grouped lines sorted by position
    """
    grouped: List[Line] = []

    for line in lines:
        for i, existing in enumerate(grouped):
            if abs(existing.position - line.position) < margin:
                if line.strength > existing.strength:
                    grouped[i] = line
                break
        else:
            grouped.append(line)

    return sorted(grouped, key=lambda g: g.position)


def _square_bonus(aspect_ratio: float) -> float:
    if aspect_ratio > 0.9:
        return 2.5
    if aspect_ratio > 0.8:
        return 2.0
    if aspect_ratio > 0.7:
        return 1.5
    return 1.0


def score_rectangle(rect: Rectangle, width: int, height: int) -> float:
    """
    Score a candidate board rectangle.

    score = area * aspect * square bonus * boundary penalty, where candidates
    hugging the image border are discounted per touched edge.
    """
    rect_width = rect.width
    rect_height = rect.height
    border_margin = min(width, height) * BORDER_MARGIN_RATIO

    area = rect_width * rect_height
    aspect_ratio = min(rect_width, rect_height) / max(rect_width, rect_height)

    penalty = 1.0
    if rect.top < border_margin:
        penalty *= HORIZONTAL_EDGE_PENALTY
    if rect.bottom > height - border_margin:
        penalty *= HORIZONTAL_EDGE_PENALTY
    if rect.left < border_margin:
        penalty *= VERTICAL_EDGE_PENALTY
    if rect.right > width - border_margin:
        penalty *= VERTICAL_EDGE_PENALTY

    return area * aspect_ratio * _square_bonus(aspect_ratio) * penalty


def find_rectangle_from_lines(
    h_lines: List[Line],
    v_lines: List[Line],
    width: int,
    height: int,
) -> Optional[Rectangle]:
    """
    Pick the best scoring rectangle from every pair of horizontal and vertical lines.

    Pairs spanning less than 30% of the image in either direction are skipped.
    Ties keep the first candidate in (top, bottom, left, right) order.

    Args:
        h_lines: Grouped horizontal lines sorted by position
        v_lines: Grouped vertical lines sorted by position
        width: Image width
        height: Image height

    Returns:
        Best rectangle, or None if fewer than two lines per axis or no pair is large enough
    """
    if len(h_lines) < 2 or len(v_lines) < 2:
        return None

    best_rect = None
    best_score = 0.0

    for i, top_line in enumerate(h_lines[:-1]):
        for bottom_line in h_lines[i + 1:]:
            if bottom_line.position - top_line.position < height * MIN_SIDE_RATIO:
                continue

            for k, left_line in enumerate(v_lines[:-1]):
                for right_line in v_lines[k + 1:]:
                    if right_line.position - left_line.position < width * MIN_SIDE_RATIO:
                        continue

                    rect = Rectangle(
                        left_line.position,
                        top_line.position,
                        right_line.position,
                        bottom_line.position,
                    )
                    score = score_rectangle(rect, width, height)
                    if score > best_score:
                        best_score = score
                        best_rect = rect

    return best_rect


def _sustained(density: np.ndarray, start: int, stop: int, step: int, window: int) -> bool:
    """
    Check that more than 30% of a window of scan lines carry edges.

    The window starts at start and walks step-wise for window lines, never
    reaching stop.
    """
    count = 0
    for offset in range(window):
        index = start + offset * step
        if (step > 0 and index >= stop) or (step < 0 and index <= stop):
            break
        if density[index] > DENSITY_SUSTAIN:
            count += 1
    return count > window * DENSITY_SUSTAIN_FRACTION


def _scan_forward(density: np.ndarray, window: int, default: int) -> int:
    for index in range(len(density) - window):
        if density[index] > DENSITY_START and _sustained(density, index, len(density), 1, window):
            return index
    return default


def _scan_backward(density: np.ndarray, window: int, floor: int, default: int) -> int:
    for index in range(len(density) - 1, floor + window, -1):
        if density[index] > DENSITY_START and _sustained(density, index, floor, -1, window):
            return index
    return default


def find_rectangle_by_density(edges: np.ndarray) -> Optional[Rectangle]:
    """
    Locate the board from sustained edge density.

    Finds the first row from the top (and from the bottom) whose edge density
    exceeds 15% and is followed by a window of rows that keep some edge
    presence, then repeats over columns within the found row band. Works when
    the border is broken into several runs.

    Args:
        edges: Binary edge map (0/255)

    Returns:
        Rectangle, or None if it covers less than 20% of the image in either direction
    """
    check_intensity_map(edges)
    height, width = edges.shape
    window = int(np.floor(height * DENSITY_WINDOW_RATIO))
    mask = edges > 0

    h_density = mask.sum(axis=1) / width
    top = _scan_forward(h_density, window, 0)
    bottom = _scan_backward(h_density, window, top, height - 1)

    band = mask[top:bottom + 1]
    v_density = band.sum(axis=0) / (bottom - top + 1)
    left = _scan_forward(v_density, window, 0)
    right = _scan_backward(v_density, window, left, width - 1)

    if right - left < width * DENSITY_MIN_SIDE_RATIO or bottom - top < height * DENSITY_MIN_SIDE_RATIO:
        return None

    return Rectangle(left, top, right, bottom)


def find_rectangle_dark_pixels(gray: np.ndarray) -> Rectangle:
    """
    Bounding box of rows and columns with more than 10% dark pixels.

    Always succeeds: sides without any dark row/column stay at the image edge,
    so an empty image yields the full frame.

    Args:
        gray: Grayscale intensity map (not the edge map)

    Returns:
        Rectangle in image coordinates
    """
    check_intensity_map(gray)
    height, width = gray.shape
    dark = gray < DARK_THRESHOLD

    dark_rows = np.flatnonzero(dark.sum(axis=1) / width > MIN_DARK_FRACTION)
    dark_cols = np.flatnonzero(dark.sum(axis=0) / height > MIN_DARK_FRACTION)

    top, bottom = (int(dark_rows[0]), int(dark_rows[-1])) if dark_rows.size else (0, height - 1)
    left, right = (int(dark_cols[0]), int(dark_cols[-1])) if dark_cols.size else (0, width - 1)

    return Rectangle(left, top, right, bottom)


def _line_strategy(gray: np.ndarray, edges: np.ndarray) -> Optional[Rectangle]:
    height, width = edges.shape
    margin = min(width, height) * LINE_MERGE_RATIO
    h_lines = group_lines(find_horizontal_lines(edges), margin)
    v_lines = group_lines(find_vertical_lines(edges), margin)
    logger.debug("Grouped lines: %d horizontal, %d vertical", len(h_lines), len(v_lines))
    return find_rectangle_from_lines(h_lines, v_lines, width, height)


def _density_strategy(gray: np.ndarray, edges: np.ndarray) -> Optional[Rectangle]:
    return find_rectangle_by_density(edges)


# Tried in order; the first rectangle found wins.
Strategy = Callable[[np.ndarray, np.ndarray], Optional[Rectangle]]
DETECTION_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("lines", _line_strategy),
    ("density", _density_strategy),
)


def detect_board_rectangle(pixels: np.ndarray) -> Rectangle:
    """
    Detect the puzzle board in a photo.

    Pipeline: grayscale -> blur -> edges -> line pairs, else edge density,
    else dark pixel bounds. The last step always produces a rectangle, so
    this never fails.

    Args:
        pixels: (height, width, 4) RGBA buffer

    Returns:
        Board rectangle in image coordinates
    """
    gray, edges = edge_map(pixels)

    for name, strategy in DETECTION_STRATEGIES:
        rect = strategy(gray, edges)
        if rect is not None:
            logger.debug("Board found by %s strategy: %s", name, rect)
            return rect
        logger.debug("Strategy %s found no board", name)

    rect = find_rectangle_dark_pixels(gray)
    logger.debug("Board found by dark pixel strategy: %s", rect)
    return rect


def squarify_rectangle(rect: Rectangle) -> SquareRegion:
    """
    Largest square inside a rectangle, centered along the longer side.

    Args:
        rect: Rectangle to square

    Returns:
        SquareRegion with size = min(width, height)
    """
    width = rect.width
    height = rect.height
    size = min(width, height)

    return SquareRegion(
        x=rect.left + (width - size) // 2,
        y=rect.top + (height - size) // 2,
        size=size,
    )
