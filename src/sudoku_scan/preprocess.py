"""
Image preprocessing functions for board detection.

This module handles the first steps of the pipeline:
- Converting RGBA buffers to grayscale intensity maps
- Applying a 3x3 blur
- Sobel edge detection with an adaptive threshold
"""

import cv2
import numpy as np

from .canvas import check_intensity_map, check_pixel_buffer


BLUR_KERNEL = np.array([
    [1, 2, 1],
    [2, 4, 2],
    [1, 2, 1],
], dtype=np.float64)
BLUR_KERNEL_SUM = 16

# Fraction of the strongest gradient a pixel must exceed to count as an edge
EDGE_THRESHOLD_RATIO = 0.2


def luma(pixels: np.ndarray) -> np.ndarray:
    """
    Perceptual brightness of every pixel as float64, alpha ignored.

    Args:
        pixels: (height, width, 4) RGBA buffer

    Returns:
        (height, width) float64 array of 0.299*R + 0.587*G + 0.114*B
    """
    channels = pixels.astype(np.float64)
    return 0.299 * channels[..., 0] + 0.587 * channels[..., 1] + 0.114 * channels[..., 2]


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """
    Convert an RGBA buffer to a grayscale intensity map.

    Each value is floor(0.299*R + 0.587*G + 0.114*B).

    Args:
        pixels: (height, width, 4) RGBA buffer

    Returns:
        (height, width) uint8 intensity map
    """
    check_pixel_buffer(pixels)
    return np.floor(luma(pixels)).astype(np.uint8)


def _interior(shape: tuple) -> bool:
    """True when the image has at least one pixel with a full 3x3 neighbourhood."""
    return shape[0] >= 3 and shape[1] >= 3


def gaussian_blur(gray: np.ndarray) -> np.ndarray:
    """
    Apply a 3x3 weighted blur (1-2-1 kernel, divided by 16, floored).

    Border rows and columns keep their original value.

    Args:
        gray: uint8 intensity map

    Returns:
        New blurred intensity map of the same shape
    """
    check_intensity_map(gray)
    blurred = gray.copy()
    if not _interior(gray.shape):
        return blurred

    sums = cv2.filter2D(gray.astype(np.float64), cv2.CV_64F, BLUR_KERNEL)
    blurred[1:-1, 1:-1] = np.floor(sums[1:-1, 1:-1] / BLUR_KERNEL_SUM).astype(np.uint8)
    return blurred


def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
    """
    Sobel gradient magnitude at every interior pixel.

    Border pixels have magnitude 0.

    Returns:
        (height, width) float64 array
    """
    check_intensity_map(gray)
    magnitude = np.zeros(gray.shape, dtype=np.float64)
    if not _interior(gray.shape):
        return magnitude

    source = gray.astype(np.float64)
    gx = cv2.Sobel(source, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(source, cv2.CV_64F, 0, 1, ksize=3)
    magnitude[1:-1, 1:-1] = np.sqrt(gx[1:-1, 1:-1] ** 2 + gy[1:-1, 1:-1] ** 2)
    return magnitude


def detect_edges(gray: np.ndarray) -> np.ndarray:
    """
    Binary edge map from Sobel gradients.

    The threshold adapts to the image: a pixel is an edge when its gradient
    magnitude is strictly above 20% of the largest magnitude in the image.
    A uniform image therefore has no edges.

    Args:
        gray: uint8 intensity map (usually blurred)

    Returns:
        uint8 map containing only 0 and 255
    """
    magnitude = gradient_magnitude(gray)
    threshold = float(magnitude.max()) * EDGE_THRESHOLD_RATIO
    return np.where(magnitude > threshold, 255, 0).astype(np.uint8)


def edge_map(pixels: np.ndarray) -> tuple:
    """
    Run grayscale -> blur -> edges.

    Returns:
        Tuple of (gray, edges) intensity maps
    """
    gray = to_grayscale(pixels)
    edges = detect_edges(gaussian_blur(gray))
    return gray, edges
