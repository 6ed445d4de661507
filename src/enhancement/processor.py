"""
Main processor for the Enhancement module.

Orchestrates the complete pipeline:
1. Region normalization (crop + bounded resample)
2. Skew detection and deskew
3. Noise reduction
4. Tile contrast equalization
5. Sharpening
6. Binarization
7. Morphological cleanup

A degenerate crop is recovered by falling back to the full image; the
stages themselves are deterministic and configured by EnhancementParams.
"""

import logging
from pathlib import Path
from typing import Optional

from . import filters
from .config_loader import EnhancementParams, get_default_params, load_params
from .region import normalize_region
from .types import CropRect, EnhancedImage, PreprocessError, SourceImage

logger = logging.getLogger(__name__)


class EnhancementPipeline:
    """
    Converts a captured image into an OCR-friendly binary image.

    Example:
        >>> pipeline = EnhancementPipeline()
        >>> image = SourceImage.from_file("stamp.jpg")
        >>> enhanced = pipeline.enhance(image, CropRect(100, 200, 800, 300))
        >>> enhanced.stages
        ['normalize', 'deskew', 'denoise', 'equalize', 'sharpen', 'binarize', 'cleanup']
    """

    def __init__(
        self,
        params: Optional[EnhancementParams] = None,
        params_path: Optional[Path] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            params: Pre-loaded parameters (takes precedence).
            params_path: YAML file to load if params is None.
        """
        if params is not None:
            self.params = params
        elif params_path is not None:
            self.params = load_params(params_path)
        else:
            self.params = get_default_params()

        logger.info(f"EnhancementPipeline initialized with profile '{self.params.profile}'")

    def enhance(self, image: SourceImage, crop: Optional[CropRect] = None) -> EnhancedImage:
        """
        Run every enabled stage on a copy of the source pixels.

        Args:
            image: Captured image (never modified).
            crop: Optional region of interest in source pixels.

        Returns:
            EnhancedImage with the binarized buffer and stage metadata.
        """
        params = self.params

        try:
            result = normalize_region(image, crop, params.region)
        except PreprocessError as e:
            logger.warning(f"{e}; falling back to full image")
            result = normalize_region(image, None, params.region)
        result.stages.append("normalize")

        pixels = result.pixels

        if params.skew.enabled:
            angle = filters.detect_skew_angle(
                pixels,
                params.skew.candidate_angles,
                sample_step=params.skew.sample_step,
                edge_threshold=params.skew.edge_threshold,
            )
            if abs(angle) >= params.skew.min_angle:
                pixels = filters.deskew(pixels, angle, fill_value=params.skew.fill_value)
                if result.alpha is not None:
                    result.alpha = filters.deskew(result.alpha, angle, fill_value=255)
                result.skew_angle = angle
                result.stages.append("deskew")
                logger.info(f"Corrected skew of {angle:.1f} degrees")

        if params.denoise.enabled:
            pixels = filters.reduce_noise(
                pixels,
                method=params.denoise.method,
                kernel_radius=params.denoise.kernel_radius,
                sigma_space=params.denoise.sigma_space,
                sigma_color=params.denoise.sigma_color,
            )
            result.stages.append("denoise")
            logger.info(
                f"Applied {params.denoise.method} noise reduction "
                f"(radius={params.denoise.kernel_radius})"
            )

        if params.contrast.enabled:
            pixels = filters.equalize_tiles(
                pixels,
                clip_limit=params.contrast.clip_limit,
                tile_size=params.contrast.tile_size,
            )
            result.stages.append("equalize")
            logger.info(
                f"Applied tile equalization "
                f"(clip_limit={params.contrast.clip_limit}, tile_size={params.contrast.tile_size})"
            )

        if params.sharpen.enabled:
            pixels = filters.sharpen(pixels, strength=params.sharpen.strength)
            result.stages.append("sharpen")
            logger.info(f"Applied sharpening (strength={params.sharpen.strength})")

        if params.binarization.enabled:
            if params.binarization.method == "otsu":
                pixels = filters.binarize_otsu(pixels)
            else:
                pixels = filters.binarize_adaptive(
                    pixels,
                    tile_size=params.binarization.tile_size,
                    mean_factor=params.binarization.mean_factor,
                    soft_band=params.binarization.soft_band,
                )
            result.stages.append("binarize")
            logger.info(f"Applied {params.binarization.method} binarization")

        if params.morphology.enabled:
            pixels = filters.morphological_cleanup(
                pixels,
                min_white_neighbors=params.morphology.min_white_neighbors,
                max_white_neighbors=params.morphology.max_white_neighbors,
                white_threshold=params.morphology.white_threshold,
            )
            result.stages.append("cleanup")

        result.pixels = pixels
        return result


def enhance(
    image: SourceImage,
    crop: Optional[CropRect] = None,
    params: Optional[EnhancementParams] = None,
) -> EnhancedImage:
    """
    Convenience function for one-off enhancement.

    Args:
        image: Captured image.
        crop: Optional region of interest.
        params: Enhancement parameters (bundled defaults if None).

    Returns:
        Enhanced, binarized image.
    """
    return EnhancementPipeline(params=params).enhance(image, crop)
