"""
Data types for the Enhancement module.

Provides the image containers that flow through region normalization and the
pixel enhancement stages.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import cv2
import numpy as np


class PreprocessError(ValueError):
    """Raised when a crop rectangle degenerates to an empty region."""


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in source-pixel coordinates."""

    x: int
    y: int
    w: int
    h: int

    @classmethod
    def from_string(cls, value: str) -> "CropRect":
        """
        Parse a comma-separated ``x,y,w,h`` string.

        Raises:
            ValueError: If the string does not hold exactly 4 integers.
        """
        parts = [p.strip() for p in value.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected 'x,y,w,h', got '{value}'")
        x, y, w, h = (int(float(p)) for p in parts)
        return cls(x=x, y=y, w=w, h=h)


def to_uint8(pixels: np.ndarray) -> np.ndarray:
    """
    Convert a decoded buffer to 8 bits per channel.

    16-bit buffers keep their high byte; any other depth is clipped to
    [0, 255]. The result never aliases the input.
    """
    pixels = np.asarray(pixels)
    if pixels.dtype == np.uint8:
        return pixels.copy()
    if pixels.dtype == np.uint16:
        return (pixels >> 8).astype(np.uint8)
    if pixels.dtype == np.bool_:
        return pixels.astype(np.uint8) * 255
    return np.clip(pixels, 0, 255).astype(np.uint8)


def _decode(decode, source) -> Optional[np.ndarray]:
    # IMREAD_COLOR applies EXIF orientation and scales 16-bit input to 8 bits;
    # the unchanged decode is only kept when it carries an alpha channel.
    pixels = decode(source, cv2.IMREAD_UNCHANGED)
    if pixels is None:
        return None
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return pixels
    return decode(source, cv2.IMREAD_COLOR)


@dataclass(frozen=True)
class SourceImage:
    """
    Captured image, immutable once constructed.

    Attributes:
        pixels: Read-only copy of the decoded buffer. Shape (H, W) for
            grayscale, (H, W, 3) for BGR or (H, W, 4) for BGRA, dtype uint8.
            Deeper buffers are scaled down to 8 bits.
    """

    pixels: np.ndarray

    def __post_init__(self):
        pixels = to_uint8(self.pixels)
        if pixels.ndim not in (2, 3) or pixels.size == 0:
            raise ValueError(f"Invalid image shape: {pixels.shape}")
        if pixels.ndim == 3 and pixels.shape[2] not in (1, 3, 4):
            raise ValueError(f"Unsupported channel count: {pixels.shape[2]}")
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SourceImage":
        """Decode an image file upright (EXIF orientation applied), keeping alpha if present."""
        pixels = _decode(cv2.imread, str(path))
        if pixels is None:
            raise ValueError(f"Could not decode image: {path}")
        return cls(pixels=pixels)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SourceImage":
        """Decode an encoded image buffer (PNG, JPEG, ...)."""
        pixels = _decode(cv2.imdecode, np.frombuffer(data, dtype=np.uint8))
        if pixels is None:
            raise ValueError("Could not decode image buffer")
        return cls(pixels=pixels)

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def has_alpha(self) -> bool:
        return self.pixels.ndim == 3 and self.pixels.shape[2] == 4

    def to_gray(self) -> np.ndarray:
        """Return a new grayscale copy (luma 0.299/0.587/0.114)."""
        if self.pixels.ndim == 2:
            return self.pixels.copy()
        channels = self.pixels.shape[2]
        if channels == 1:
            return self.pixels[:, :, 0].copy()
        if channels == 4:
            return cv2.cvtColor(self.pixels, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(self.pixels, cv2.COLOR_BGR2GRAY)

    def alpha(self) -> Optional[np.ndarray]:
        """Return a copy of the alpha channel, or None."""
        if not self.has_alpha:
            return None
        return self.pixels[:, :, 3].copy()


@dataclass
class EnhancedImage:
    """
    Working buffer owned by one pipeline invocation.

    Attributes:
        pixels: Grayscale buffer (H, W), uint8.
        alpha: Optional alpha channel matching ``pixels``.
        crop: Effective (clamped) crop in source coordinates.
        scale: Resampling factor applied after cropping (<= 1.0).
        skew_angle: Detected skew in degrees (0.0 if none).
        stages: Names of the stages applied, in order.
    """

    pixels: np.ndarray
    crop: CropRect
    scale: float = 1.0
    alpha: Optional[np.ndarray] = None
    skew_angle: float = 0.0
    stages: List[str] = field(default_factory=list)

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    def to_array(self) -> np.ndarray:
        """Return the buffer handed to a recognizer (gray, or BGRA if alpha)."""
        if self.alpha is None:
            return self.pixels
        bgr = cv2.cvtColor(self.pixels, cv2.COLOR_GRAY2BGR)
        return np.dstack([bgr, self.alpha])
