"""
Region normalization: crop a captured image and bound its working resolution.

Mobile captures are routinely 3000+ px on a side and recognition runs several
times per image, so the cropped region is downscaled (never upscaled) until its
larger side fits ``max_dimension``.
"""

import logging
from typing import Optional, Tuple

import cv2

from .config_loader import RegionConfig
from .types import CropRect, EnhancedImage, PreprocessError, SourceImage

logger = logging.getLogger(__name__)

INTERPOLATION_FLAGS = {
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}


def clamp_crop(crop: CropRect, width: int, height: int) -> CropRect:
    """
    Clamp a crop rectangle to the image bounds.

    The origin is moved into the image and the size is capped so the
    rectangle ends at the image edge; an origin past the left or top edge
    keeps its requested width and height.

    Args:
        crop: Requested rectangle (may extend past the image or be negative).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Rectangle fully contained in the image.

    Raises:
        PreprocessError: If the requested width or height is below 1.

    Example:
        >>> clamp_crop(CropRect(-10, 5, 50, 500), 100, 100)
        CropRect(x=0, y=5, w=50, h=95)
    """
    if crop.w < 1 or crop.h < 1:
        raise PreprocessError(f"Degenerate crop {crop} for {width}x{height} image")

    x = min(max(crop.x, 0), width - 1)
    y = min(max(crop.y, 0), height - 1)
    return CropRect(x=x, y=y, w=min(crop.w, width - x), h=min(crop.h, height - y))


def compute_output_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    Compute resampled dimensions, preserving aspect ratio.

    Regions already within ``max_dimension`` pass through unscaled.

    Example:
        >>> compute_output_size(4000, 3000, 1600)
        (1600, 1200)
        >>> compute_output_size(800, 600, 1600)
        (800, 600)
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height

    if width > height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


def normalize_region(
    image: SourceImage,
    crop: Optional[CropRect],
    config: Optional[RegionConfig] = None,
) -> EnhancedImage:
    """
    Crop, convert to grayscale and resample a source image.

    Args:
        image: Captured image.
        crop: Region of interest; None selects the full image.
        config: Region settings (defaults if None).

    Returns:
        EnhancedImage seeded with the resampled grayscale pixels. The alpha
        channel, when present, is carried along with the same geometry.

    Raises:
        PreprocessError: If the crop has zero width or height.
    """
    config = config or RegionConfig()

    if crop is None:
        rect = CropRect(x=0, y=0, w=image.width, h=image.height)
    else:
        rect = clamp_crop(crop, image.width, image.height)

    gray = image.to_gray()[rect.y : rect.y + rect.h, rect.x : rect.x + rect.w]
    alpha = image.alpha()
    if alpha is not None:
        alpha = alpha[rect.y : rect.y + rect.h, rect.x : rect.x + rect.w]

    out_w, out_h = compute_output_size(rect.w, rect.h, config.max_dimension)
    scale = out_w / rect.w

    if (out_w, out_h) != (rect.w, rect.h):
        flag = INTERPOLATION_FLAGS[config.interpolation]
        gray = cv2.resize(gray, (out_w, out_h), interpolation=flag)
        if alpha is not None:
            alpha = cv2.resize(alpha, (out_w, out_h), interpolation=flag)
        logger.info(
            f"Resized region from {rect.w}x{rect.h} to {out_w}x{out_h} "
            f"(max_dimension={config.max_dimension}, interpolation={config.interpolation})"
        )
    else:
        gray = gray.copy()
        if alpha is not None:
            alpha = alpha.copy()

    return EnhancedImage(pixels=gray, crop=rect, scale=scale, alpha=alpha)
