"""
Pixel buffer helpers.

This module handles:
- Loading photos into RGBA pixel buffers
- Validating buffer shapes at the package boundary
- Cropping and resampling regions of a buffer
"""

from pathlib import Path
from typing import Union

import cv2
import numpy as np


WHITE = (255, 255, 255, 255)


class ImageLoadError(ValueError):
    """Raised when an image source cannot be decoded."""
    pass


def check_pixel_buffer(pixels: np.ndarray) -> np.ndarray:
    """
    Validate an RGBA pixel buffer.

    Args:
        pixels: Array expected to be (height, width, 4) uint8

    Returns:
        The same array, for chaining

    Raises:
        ValueError: If the array is not a (height, width, 4) uint8 buffer
    """
    if not isinstance(pixels, np.ndarray):
        raise ValueError(f"Pixel buffer must be a numpy array, got {type(pixels).__name__}")
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Pixel buffer must have shape (height, width, 4), got {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Pixel buffer must be uint8, got {pixels.dtype}")
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ValueError("Pixel buffer is empty")
    return pixels


def check_intensity_map(gray: np.ndarray) -> np.ndarray:
    """Validate a single-channel uint8 intensity map."""
    if not isinstance(gray, np.ndarray):
        raise ValueError(f"Intensity map must be a numpy array, got {type(gray).__name__}")
    if gray.ndim != 2:
        raise ValueError(f"Intensity map must have shape (height, width), got {gray.shape}")
    if gray.dtype != np.uint8:
        raise ValueError(f"Intensity map must be uint8, got {gray.dtype}")
    return gray


def from_bgr(image: np.ndarray) -> np.ndarray:
    """
    Convert an OpenCV image (BGR, BGRA or grayscale) to an RGBA buffer.

    Args:
        image: Image as returned by cv2.imread / cv2.imdecode

    Returns:
        (height, width, 4) uint8 RGBA buffer
    """
    if image is None or image.size == 0:
        raise ImageLoadError("Input image is empty or invalid")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)


def to_bgr(pixels: np.ndarray) -> np.ndarray:
    """Convert an RGBA buffer to BGR for cv2.imwrite."""
    check_pixel_buffer(pixels)
    return cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGR)


def load_image(source: Union[str, Path, bytes]) -> np.ndarray:
    """
    Load a photo into an RGBA pixel buffer.

    Args:
        source: File path or encoded image bytes (PNG, JPEG, ...)

    Returns:
        (height, width, 4) uint8 RGBA buffer

    Raises:
        ImageLoadError: If the source cannot be read or decoded
    """
    if isinstance(source, (bytes, bytearray)):
        encoded = np.frombuffer(bytes(source), dtype=np.uint8)
        image = cv2.imdecode(encoded, cv2.IMREAD_COLOR) if encoded.size else None
        if image is None:
            raise ImageLoadError("Could not decode image bytes")
    else:
        path = Path(source)
        if not path.exists():
            raise ImageLoadError(f"Input file '{path}' not found")
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise ImageLoadError(f"Could not load image '{path}'")

    return from_bgr(image)


def crop(pixels: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
    """
    Copy an integer-aligned region out of a buffer.

    Parts of the region that fall outside the buffer are white.
    """
    check_pixel_buffer(pixels)
    if width <= 0 or height <= 0:
        raise ValueError(f"Crop size must be positive, got {width}x{height}")

    out = np.empty((height, width, 4), dtype=np.uint8)
    out[:] = WHITE

    h, w = pixels.shape[:2]
    x1, y1 = max(0, x), max(0, y)
    x2, y2 = min(w, x + width), min(h, y + height)
    if x1 < x2 and y1 < y2:
        out[y1 - y:y2 - y, x1 - x:x2 - x] = pixels[y1:y2, x1:x2]
    return out


def resample_region(
    pixels: np.ndarray,
    source_x: float,
    source_y: float,
    source_width: float,
    source_height: float,
    out_width: int,
    out_height: int,
) -> np.ndarray:
    """
    Draw a real-valued source rectangle onto a white out_width x out_height surface.

    Bilinear sampling; samples falling outside the source read as white.
    The center of output pixel i samples source_x + (i + 0.5) / scale, the
    same mapping as a browser canvas drawImage.
    """
    check_pixel_buffer(pixels)
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source region must be positive, got {source_width}x{source_height}")
    if out_width <= 0 or out_height <= 0:
        raise ValueError(f"Output size must be positive, got {out_width}x{out_height}")

    scale_x = out_width / source_width
    scale_y = out_height / source_height

    # OpenCV puts pixel centers on integer coordinates; shift by half a pixel
    # on both sides of the mapping so centers line up
    offset_x = source_x + 0.5 / scale_x - 0.5
    offset_y = source_y + 0.5 / scale_y - 0.5
    matrix = np.array([
        [scale_x, 0.0, -offset_x * scale_x],
        [0.0, scale_y, -offset_y * scale_y],
    ], dtype=np.float64)

    return cv2.warpAffine(
        pixels,
        matrix,
        (out_width, out_height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=WHITE,
    )
