"""
Tests for grayscale conversion, blur and edge detection.

All images are small synthetic buffers built with NumPy.
"""

import pytest
import numpy as np
from pathlib import Path

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sudoku_scan.preprocess import to_grayscale, gaussian_blur, detect_edges, gradient_magnitude, edge_map


def solid_rgba(width, height, color, alpha=255):
    """Create a solid color RGBA buffer."""
    img = np.empty((height, width, 4), dtype=np.uint8)
    img[..., :3] = color
    img[..., 3] = alpha
    return img


class TestGrayscale:
    """Test luma conversion."""

    def test_white_is_255(self):
        gray = to_grayscale(solid_rgba(2, 2, (255, 255, 255)))
        assert gray.shape == (2, 2)
        assert gray.dtype == np.uint8
        assert np.all(gray == 255)

    def test_black_is_0(self):
        gray = to_grayscale(solid_rgba(2, 2, (0, 0, 0)))
        assert np.all(gray == 0)

    def test_red(self):
        # 0.299 * 255 = 76.245
        gray = to_grayscale(solid_rgba(1, 1, (255, 0, 0)))
        assert gray[0, 0] == 76

    @pytest.mark.parametrize("color", [(10, 200, 30), (123, 45, 67), (250, 1, 99)])
    def test_solid_colors_match_formula(self, color):
        r, g, b = color
        expected = int(np.floor(0.299 * r + 0.587 * g + 0.114 * b))
        gray = to_grayscale(solid_rgba(3, 4, color))
        assert gray.shape == (4, 3)
        assert np.all(gray == expected)

    def test_alpha_is_ignored(self):
        opaque = to_grayscale(solid_rgba(3, 3, (90, 120, 30), alpha=255))
        transparent = to_grayscale(solid_rgba(3, 3, (90, 120, 30), alpha=0))
        np.testing.assert_array_equal(opaque, transparent)

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError, match="shape"):
            to_grayscale(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_rejects_wrong_dtype(self):
        with pytest.raises(ValueError, match="uint8"):
            to_grayscale(np.zeros((4, 4, 4), dtype=np.float32))


class TestBlur:
    """Test the 3x3 weighted blur."""

    def test_uniform_image_unchanged(self):
        gray = np.full((10, 12), 100, dtype=np.uint8)
        np.testing.assert_array_equal(gaussian_blur(gray), gray)

    def test_interior_weights(self):
        gray = np.array([
            [0, 16, 0],
            [16, 32, 16],
            [0, 16, 0],
        ], dtype=np.uint8)
        blurred = gaussian_blur(gray)
        # (4 * 2 * 16 + 4 * 32) / 16
        assert blurred[1, 1] == 16

    def test_floor_division(self):
        gray = np.zeros((3, 3), dtype=np.uint8)
        gray[1, 1] = 5
        # 4 * 5 / 16 = 1.25
        assert gaussian_blur(gray)[1, 1] == 1

    def test_border_keeps_original_values(self):
        rng = np.random.default_rng(0)
        gray = rng.integers(0, 256, size=(8, 9), dtype=np.uint8)
        blurred = gaussian_blur(gray)
        np.testing.assert_array_equal(blurred[0], gray[0])
        np.testing.assert_array_equal(blurred[-1], gray[-1])
        np.testing.assert_array_equal(blurred[:, 0], gray[:, 0])
        np.testing.assert_array_equal(blurred[:, -1], gray[:, -1])

    def test_input_not_modified(self):
        rng = np.random.default_rng(1)
        gray = rng.integers(0, 256, size=(6, 6), dtype=np.uint8)
        original = gray.copy()
        gaussian_blur(gray)
        np.testing.assert_array_equal(gray, original)

    def test_tiny_image(self):
        gray = np.array([[1, 2], [3, 4]], dtype=np.uint8)
        np.testing.assert_array_equal(gaussian_blur(gray), gray)


class TestEdges:
    """Test Sobel edge detection."""

    def test_uniform_image_has_no_edges(self):
        gray = np.full((20, 20), 180, dtype=np.uint8)
        edges = detect_edges(gray)
        assert edges.shape == gray.shape
        assert not edges.any()

    def test_vertical_step(self):
        gray = np.zeros((20, 20), dtype=np.uint8)
        gray[:, 10:] = 255
        edges = detect_edges(gray)

        assert set(np.unique(edges)) <= {0, 255}
        # Interior rows see the step around columns 9 and 10
        assert np.all(edges[1:-1, 9] == 255)
        assert np.all(edges[1:-1, 10] == 255)
        # Far from the step there is no gradient
        assert not edges[:, :8].any()
        assert not edges[:, 12:].any()

    def test_border_is_never_an_edge(self):
        rng = np.random.default_rng(2)
        gray = rng.integers(0, 256, size=(15, 15), dtype=np.uint8)
        edges = detect_edges(gray)
        assert not edges[0].any()
        assert not edges[-1].any()
        assert not edges[:, 0].any()
        assert not edges[:, -1].any()

    def test_threshold_is_relative(self):
        # Same pattern at low and high contrast gives the same edges
        strong = np.zeros((20, 20), dtype=np.uint8)
        strong[:, 10:] = 200
        weak = np.zeros((20, 20), dtype=np.uint8)
        weak[:, 10:] = 20
        np.testing.assert_array_equal(detect_edges(strong), detect_edges(weak))

    def test_gradient_magnitude_of_step(self):
        gray = np.zeros((5, 5), dtype=np.uint8)
        gray[:, 3:] = 100
        magnitude = gradient_magnitude(gray)
        # Column 2: gx = (1 + 2 + 1) * 100
        assert magnitude[2, 2] == pytest.approx(400.0)
        assert magnitude[2, 1] == 0.0

    def test_tiny_image(self):
        gray = np.array([[0, 255], [255, 0]], dtype=np.uint8)
        assert not detect_edges(gray).any()

    def test_edge_map_runs_all_stages(self):
        img = solid_rgba(30, 30, (255, 255, 255))
        img[10:20, 10:20, :3] = 0
        gray, edges = edge_map(img)
        assert gray.shape == (30, 30)
        assert edges.shape == (30, 30)
        assert edges.any()
