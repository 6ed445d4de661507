"""
Stage 1: Region Normalization & Pixel Enhancement

Turns noisy, skewed, low-light mobile captures of expiry stamps into
OCR-friendly binary images.

Pipeline stages:
1. Region normalization (crop, bounded resample)
2. Deskew
3. Edge-preserving noise reduction
4. Tile contrast equalization
5. Sharpening
6. Adaptive binarization
7. Morphological cleanup
"""

from .config_loader import (
    EnhancementParams,
    get_default_params,
    get_profile,
    load_params,
)
from .processor import EnhancementPipeline, enhance
from .region import clamp_crop, compute_output_size, normalize_region
from .types import CropRect, EnhancedImage, PreprocessError, SourceImage

__all__ = [
    "EnhancementPipeline",
    "enhance",
    "EnhancementParams",
    "get_default_params",
    "get_profile",
    "load_params",
    "clamp_crop",
    "compute_output_size",
    "normalize_region",
    "CropRect",
    "EnhancedImage",
    "PreprocessError",
    "SourceImage",
]
