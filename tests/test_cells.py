"""
Tests for cell geometry, cell splitting and blank cell detection.
"""

import pytest
import numpy as np
from pathlib import Path

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sudoku_scan.cells import CellGeometry, cell_geometry, split_into_cells, is_cell_empty


def white_board(size):
    return np.full((size, size, 4), 255, dtype=np.uint8)


def checkerboard(size, square=4):
    """High-variance black/white RGBA pattern."""
    ys, xs = np.mgrid[0:size, 0:size]
    values = np.where(((ys // square) + (xs // square)) % 2 == 0, 0, 255).astype(np.uint8)
    img = np.empty((size, size, 4), dtype=np.uint8)
    img[..., :3] = values[..., np.newaxis]
    img[..., 3] = 255
    return img


class TestCellGeometry:
    """Test the 9x9 crop layout."""

    def test_without_margin(self):
        cells = cell_geometry(900, 900, margin=0)
        assert len(cells) == 81
        assert cells[0] == CellGeometry(0, 0, 0.0, 0.0, 100.0, 100.0)
        last = cells[-1]
        assert (last.row, last.column) == (8, 8)
        assert last.source_x == pytest.approx(800.0)
        assert last.source_y == pytest.approx(800.0)

    def test_row_major_order(self):
        cells = cell_geometry(90, 90)
        assert [(c.row, c.column) for c in cells[:10]] == [(0, c) for c in range(9)] + [(1, 0)]
        assert [c.index for c in cells] == list(range(81))

    def test_margin_shrinks_each_side(self):
        cells = cell_geometry(900, 900, margin=0.1)
        cell = cells[10]  # row 1, col 1
        assert cell.source_x == pytest.approx(110.0)
        assert cell.source_y == pytest.approx(110.0)
        assert cell.source_width == pytest.approx(80.0)
        assert cell.source_height == pytest.approx(80.0)

    def test_non_square_board(self):
        cells = cell_geometry(180, 90, margin=0)
        assert cells[1].source_x == pytest.approx(20.0)
        assert cells[9].source_y == pytest.approx(10.0)
        assert cells[0].source_width == pytest.approx(20.0)
        assert cells[0].source_height == pytest.approx(10.0)

    @pytest.mark.parametrize("margin", [-0.1, 0.5, 0.7])
    def test_invalid_margin(self, margin):
        with pytest.raises(ValueError, match="margin"):
            cell_geometry(90, 90, margin=margin)

    def test_empty_board(self):
        with pytest.raises(ValueError, match="positive"):
            cell_geometry(0, 90)


class TestSplitIntoCells:
    """Test resampling the board into cell buffers."""

    def test_small_board_upscaled(self):
        cells = split_into_cells(white_board(450))
        assert len(cells) == 81
        for cell in cells:
            assert cell.ndim == 3 and cell.shape[2] == 4
            assert abs(cell.shape[0] - 100) <= 1
            assert abs(cell.shape[1] - 100) <= 1

    def test_large_board_keeps_size(self):
        # Cell 300px, trimmed to 300 - 2 * 46.2 = 207.6
        cells = split_into_cells(white_board(2700))
        assert cells[0].shape == (208, 208, 4)

    def test_cell_content_follows_board(self):
        board = white_board(90)
        board[0:10, 0:10, :3] = (255, 0, 0)
        cells = split_into_cells(board, margin=0)
        np.testing.assert_array_equal(cells[0][50, 50, :3], [255, 0, 0])
        np.testing.assert_array_equal(cells[1][50, 50, :3], [255, 255, 255])

    def test_margin_excludes_grid_lines(self):
        board = white_board(270)
        for i in range(10):
            pos = min(i * 30, 269)
            board[pos, :, :3] = 0
            board[:, pos, :3] = 0
        cells = split_into_cells(board)
        assert all(is_cell_empty(cell) for cell in cells)

    def test_rejects_invalid_board(self):
        with pytest.raises(ValueError):
            split_into_cells(np.zeros((90, 90, 3), dtype=np.uint8))


class TestIsCellEmpty:
    """Test the variance based blank cell check."""

    @pytest.mark.parametrize("level", [0, 64, 128, 200, 255])
    def test_uniform_is_empty(self, level):
        cell = np.full((40, 40, 4), level, dtype=np.uint8)
        cell[..., 3] = 255
        assert is_cell_empty(cell)

    def test_checkerboard_is_not_empty(self):
        assert not is_cell_empty(checkerboard(40))

    def test_light_noise_is_empty(self):
        rng = np.random.default_rng(3)
        cell = np.full((40, 40, 4), 230, dtype=np.uint8)
        noise = rng.integers(-3, 4, size=(40, 40))
        cell[..., :3] = (230 + noise)[..., np.newaxis].astype(np.uint8)
        assert is_cell_empty(cell)

    def test_small_digit_is_not_empty(self):
        cell = np.full((40, 40, 4), 255, dtype=np.uint8)
        cell[10:30, 18:22, :3] = 0
        assert not is_cell_empty(cell)

    def test_custom_threshold(self):
        cell = checkerboard(40)
        assert is_cell_empty(cell, threshold=200)
