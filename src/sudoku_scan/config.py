"""
Pipeline configuration.

Defaults match the values the board and cell stages were tuned with.
"""

from dataclasses import dataclass, replace

from .cells import DEFAULT_CELL_MARGIN, DEFAULT_TARGET_CELL_SIZE


DEFAULT_MIN_CONFIDENCE = 1.0
DEFAULT_BINARIZE_THRESHOLD = 160
DEFAULT_CONTRAST_FACTOR = 1.5
DEFAULT_CELL_PADDING = 20


@dataclass(frozen=True)
class OCRConfig:
    """
    Settings for extracting a puzzle from a photo.

    Attributes:
        cell_margin: Fraction of each cell trimmed per side before recognition (0 to <0.5)
        min_confidence: Recognizer confidence (0-100) below which a digit is discarded
        binarize_threshold: Luma below which a conditioned pixel becomes black
        contrast_factor: How far channel values are pushed from the mean luma
        cell_padding: White border in pixels added around a cell before recognition
        target_cell_size: Minimum short side in pixels of a resampled cell
        preprocess: Stretch board contrast before splitting into cells
        skip_board_detection: Treat the whole image as the board
    """
    cell_margin: float = DEFAULT_CELL_MARGIN
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    binarize_threshold: int = DEFAULT_BINARIZE_THRESHOLD
    contrast_factor: float = DEFAULT_CONTRAST_FACTOR
    cell_padding: int = DEFAULT_CELL_PADDING
    target_cell_size: int = DEFAULT_TARGET_CELL_SIZE
    preprocess: bool = True
    skip_board_detection: bool = False

    def __post_init__(self):
        if not 0 <= self.cell_margin < 0.5:
            raise ValueError(f"cell_margin must be in [0, 0.5), got {self.cell_margin}")
        if not 0 <= self.min_confidence <= 100:
            raise ValueError(f"min_confidence must be in [0, 100], got {self.min_confidence}")
        if not 0 <= self.binarize_threshold <= 255:
            raise ValueError(f"binarize_threshold must be in [0, 255], got {self.binarize_threshold}")
        if self.contrast_factor <= 0:
            raise ValueError(f"contrast_factor must be positive, got {self.contrast_factor}")
        if self.cell_padding < 0:
            raise ValueError(f"cell_padding must not be negative, got {self.cell_padding}")
        if self.target_cell_size < 1:
            raise ValueError(f"target_cell_size must be at least 1, got {self.target_cell_size}")

    def with_overrides(self, **overrides) -> "OCRConfig":
        """Return a validated copy with the given fields replaced; None values are ignored."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})
