"""
Pixel enhancement stages.

Each stage takes a 2-D uint8 grayscale array and returns a new array of the
same shape; inputs are never modified in place. The stages are:

    1. detect_skew_angle / deskew
    2. reduce_noise (bilateral or gaussian)
    3. equalize_tiles (contrast-limited per-tile histogram equalization)
    4. sharpen
    5. binarize_adaptive / binarize_otsu
    6. morphological_cleanup

Tile equalization deliberately maps each tile with its own CDF and does not
interpolate between neighbouring tiles, unlike ``cv2.createCLAHE``.
"""

import logging
from typing import Iterator, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def _iter_tiles(height: int, width: int, tile_size: int) -> Iterator[Tuple[slice, slice]]:
    """Yield (row_slice, col_slice) for a grid of tiles; edge tiles may be smaller."""
    for y in range(0, height, tile_size):
        for x in range(0, width, tile_size):
            yield slice(y, min(y + tile_size, height)), slice(x, min(x + tile_size, width))


def detect_skew_angle(
    gray: np.ndarray,
    candidate_angles: Sequence[float],
    sample_step: int = 5,
    edge_threshold: int = 50,
) -> float:
    """
    Estimate text skew by scoring edge strength on a rotated sampling grid.

    For each candidate angle the sparse grid (x, y) and its right neighbour
    (x + 1, y) are rotated; the score is the number of in-bounds sample pairs
    whose intensity differs by more than ``edge_threshold``.

    Args:
        gray: Grayscale image.
        candidate_angles: Angles in degrees to evaluate.
        sample_step: Grid step in pixels.
        edge_threshold: Minimum absolute delta counted as an edge.

    Returns:
        Angle with the highest score; ties go to the smaller magnitude and a
        featureless image yields 0.0.
    """
    height, width = gray.shape[:2]
    if width < 2 or height < 1:
        return 0.0

    ys, xs = np.mgrid[0:height:sample_step, 0 : width - 1 : sample_step]
    xs = xs.astype(np.float64)
    ys = ys.astype(np.float64)
    intensities = gray.astype(np.int16)

    best_angle = 0.0
    max_score = 0
    for angle in sorted(candidate_angles, key=abs):
        radians = np.deg2rad(angle)
        cos, sin = np.cos(radians), np.sin(radians)

        x1 = np.rint(xs * cos - ys * sin).astype(np.int64)
        y1 = np.rint(xs * sin + ys * cos).astype(np.int64)
        x2 = np.rint((xs + 1) * cos - ys * sin).astype(np.int64)
        y2 = np.rint((xs + 1) * sin + ys * cos).astype(np.int64)

        valid = (
            (x1 >= 0) & (x1 < width) & (y1 >= 0) & (y1 < height)
            & (x2 >= 0) & (x2 < width) & (y2 >= 0) & (y2 < height)
        )
        if not valid.any():
            continue

        diff = np.abs(intensities[y1[valid], x1[valid]] - intensities[y2[valid], x2[valid]])
        score = int(np.count_nonzero(diff > edge_threshold))

        if score > max_score:
            max_score = score
            best_angle = float(angle)

    logger.debug(f"Skew detection: angle={best_angle} score={max_score}")
    return best_angle


def deskew(image: np.ndarray, angle: float, fill_value: int = 255) -> np.ndarray:
    """
    Rotate an image about its centre to undo a detected skew.

    The detector's rotation is clockwise for positive angles (image y axis
    points down), so the correction is an OpenCV rotation by ``+angle``
    (counter-clockwise). Uncovered corners are filled with ``fill_value``.
    """
    height, width = image.shape[:2]
    center = (width / 2.0, height / 2.0)
    matrix = cv2.getRotationMatrix2D(center, angle, 1.0)
    return cv2.warpAffine(
        image,
        matrix,
        (width, height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=fill_value,
    )


def reduce_noise(
    gray: np.ndarray,
    method: str = "bilateral",
    kernel_radius: int = 2,
    sigma_space: float = 50.0,
    sigma_color: float = 50.0,
) -> np.ndarray:
    """
    Smooth sensor noise.

    ``bilateral`` weights each neighbour by a spatial Gaussian times a range
    Gaussian over the intensity difference, keeping thin stamped strokes
    intact. ``gaussian`` is a plain blur of the same kernel size.
    """
    ksize = 2 * kernel_radius + 1
    if method == "bilateral":
        return cv2.bilateralFilter(gray, ksize, sigma_color, sigma_space)
    if method == "gaussian":
        return cv2.GaussianBlur(gray, (ksize, ksize), 0)
    raise ValueError(f"Unknown noise reduction method: {method}")


def equalize_tiles(gray: np.ndarray, clip_limit: float = 3.0, tile_size: int = 8) -> np.ndarray:
    """
    Contrast-limited histogram equalization applied independently per tile.

    Per tile: build a 256-bin histogram, clip bins at
    ``clip_limit * pixel_count / 256``, spread the clipped excess uniformly
    over all bins, then remap pixels through the normalized CDF.

    Args:
        gray: Grayscale image.
        clip_limit: Clip factor.
        tile_size: Tile edge in pixels.

    Returns:
        Equalized image.
    """
    out = gray.copy()
    height, width = gray.shape[:2]

    for rows, cols in _iter_tiles(height, width, tile_size):
        tile = gray[rows, cols]
        count = tile.size

        hist = np.bincount(tile.ravel(), minlength=256).astype(np.float64)
        clip_value = clip_limit * count / 256.0
        excess = float(np.clip(hist - clip_value, 0.0, None).sum())
        hist = np.minimum(hist, clip_value) + excess / 256.0

        cdf = np.cumsum(hist)
        positive = cdf[cdf > 0]
        cdf_min = positive[0] if positive.size else 0.0
        cdf_max = cdf[-1]
        if cdf_max - cdf_min <= 0:
            continue

        lut = np.clip(np.rint((cdf - cdf_min) / (cdf_max - cdf_min) * 255.0), 0, 255)
        out[rows, cols] = lut.astype(np.uint8)[tile]

    return out


def sharpen(gray: np.ndarray, strength: float = 0.4) -> np.ndarray:
    """Apply the 3x3 cross sharpening kernel, clamping to [0, 255]."""
    s = float(strength)
    kernel = np.array(
        [
            [0.0, -s, 0.0],
            [-s, 1.0 + 4.0 * s, -s],
            [0.0, -s, 0.0],
        ],
        dtype=np.float32,
    )
    filtered = cv2.filter2D(gray.astype(np.float32), -1, kernel, borderType=cv2.BORDER_REPLICATE)
    return np.clip(np.rint(filtered), 0, 255).astype(np.uint8)


def binarize_adaptive(
    gray: np.ndarray,
    tile_size: int = 16,
    mean_factor: float = 0.85,
    soft_band: float = 10.0,
) -> np.ndarray:
    """
    Tile-based adaptive binarization with a soft transition band.

    Per tile, threshold = mean x ``mean_factor``. Pixels above
    threshold + band become white, pixels below threshold - band become black
    and pixels inside the band are blended linearly. The lower band edge is
    clamped at 0, so pure black and pure white pixels are fixed points and the
    stage is idempotent on binary images.

    Args:
        gray: Grayscale image.
        tile_size: Tile edge in pixels.
        mean_factor: Multiplier applied to the local mean.
        soft_band: Half width of the blend band.

    Returns:
        Binarized image.
    """
    out = np.empty_like(gray)
    height, width = gray.shape[:2]

    for rows, cols in _iter_tiles(height, width, tile_size):
        tile = gray[rows, cols].astype(np.float64)
        threshold = tile.mean() * mean_factor
        lower = max(threshold - soft_band, 0.0)
        upper = threshold + soft_band

        blended = np.rint((tile - lower) / (upper - lower) * 255.0)
        values = np.where(tile <= lower, 0.0, np.where(tile >= upper, 255.0, blended))
        out[rows, cols] = values.astype(np.uint8)

    return out


def binarize_otsu(gray: np.ndarray) -> np.ndarray:
    """Global binarization at the Otsu threshold."""
    threshold, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    logger.debug(f"Otsu threshold: {threshold}")
    return binary


def morphological_cleanup(
    binary: np.ndarray,
    min_white_neighbors: int = 3,
    max_white_neighbors: int = 6,
    white_threshold: int = 127,
) -> np.ndarray:
    """
    Remove isolated specks and fill pinholes.

    For each interior pixel the white pixels in its 3x3 window (centre
    included) are counted: fewer than ``min_white_neighbors`` forces black,
    more than ``max_white_neighbors`` forces white. Border pixels are kept.
    """
    out = binary.copy()
    height, width = binary.shape[:2]
    if height < 3 or width < 3:
        return out

    white = (binary > white_threshold).astype(np.float32)
    counts = cv2.boxFilter(white, -1, (3, 3), normalize=False, borderType=cv2.BORDER_CONSTANT)
    counts = np.rint(counts).astype(np.int32)

    interior = np.zeros(binary.shape[:2], dtype=bool)
    interior[1:-1, 1:-1] = True

    out[interior & (counts < min_white_neighbors)] = 0
    out[interior & (counts > max_white_neighbors)] = 255
    return out
