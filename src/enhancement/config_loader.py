"""Configuration loader with Pydantic validation for the Enhancement module.

Every tunable constant of region normalization and of the pixel stages lives
here. Two named profiles capture the two preprocessing philosophies that have
been used on the production line:

    - ``macro``: deskew + bilateral denoise + tile equalization + sharpen +
      adaptive tile binarization + morphological cleanup (default).
    - ``global_otsu``: gaussian blur + sharpen + global Otsu threshold.
"""

from pathlib import Path
from typing import Dict, List, Literal

from pydantic import BaseModel, Field, model_validator

from src.utils.io import load_yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


class RegionConfig(BaseModel):
    """Crop and resample settings.

    Attributes:
        max_dimension: Larger side bound after resampling (pixels)
        interpolation: Resampling filter used when downscaling
    """

    max_dimension: int = Field(default=1600, gt=0)
    interpolation: Literal["linear", "cubic", "area", "lanczos"] = "cubic"


class SkewConfig(BaseModel):
    """Skew detection and deskew settings.

    Attributes:
        enabled: Run skew detection and deskew
        candidate_angles: Angles (degrees) scored by the detector
        sample_step: Sampling grid step (pixels)
        edge_threshold: Intensity delta counted as an edge
        min_angle: Angles below this magnitude are treated as no skew
        fill_value: Background intensity for uncovered areas
    """

    enabled: bool = True
    candidate_angles: List[float] = [-15, -10, -5, -2, -1, 0, 1, 2, 5, 10, 15]
    sample_step: int = Field(default=5, ge=1)
    edge_threshold: int = Field(default=50, ge=0, le=255)
    min_angle: float = Field(default=0.5, ge=0.0)
    fill_value: int = Field(default=255, ge=0, le=255)


class DenoiseConfig(BaseModel):
    """Noise reduction settings.

    Attributes:
        enabled: Run noise reduction
        method: "bilateral" (edge preserving) or "gaussian"
        kernel_radius: Neighborhood radius (kernel size = 2r + 1)
        sigma_space: Spatial Gaussian sigma
        sigma_color: Intensity (range) Gaussian sigma
    """

    enabled: bool = True
    method: Literal["bilateral", "gaussian"] = "bilateral"
    kernel_radius: int = Field(default=2, ge=1)
    sigma_space: float = Field(default=50.0, gt=0.0)
    sigma_color: float = Field(default=50.0, gt=0.0)


class ContrastConfig(BaseModel):
    """Tile-based contrast equalization settings.

    Attributes:
        enabled: Run tile equalization
        clip_limit: Histogram clip factor (x pixelCount / 256)
        tile_size: Tile edge (pixels)
    """

    enabled: bool = True
    clip_limit: float = Field(default=3.0, gt=0.0)
    tile_size: int = Field(default=8, ge=1)


class SharpenConfig(BaseModel):
    """Sharpen kernel settings.

    Attributes:
        enabled: Run sharpening
        strength: Kernel strength s in [[0,-s,0],[-s,1+4s,-s],[0,-s,0]]
    """

    enabled: bool = True
    strength: float = Field(default=0.4, ge=0.0)


class BinarizationConfig(BaseModel):
    """Binarization settings.

    Attributes:
        enabled: Run binarization
        method: "adaptive" (tile mean) or "otsu" (global)
        tile_size: Tile edge for the adaptive method (pixels)
        mean_factor: Threshold = local mean x mean_factor
        soft_band: Half width of the linear blend band around the threshold
    """

    enabled: bool = True
    method: Literal["adaptive", "otsu"] = "adaptive"
    tile_size: int = Field(default=16, ge=1)
    mean_factor: float = Field(default=0.85, gt=0.0)
    soft_band: float = Field(default=10.0, gt=0.0)


class MorphologyConfig(BaseModel):
    """Morphological cleanup settings.

    Attributes:
        enabled: Run cleanup
        min_white_neighbors: Below this count (3x3 window) force black
        max_white_neighbors: Above this count force white
        white_threshold: Intensity above which a pixel counts as white
    """

    enabled: bool = True
    min_white_neighbors: int = Field(default=3, ge=0, le=9)
    max_white_neighbors: int = Field(default=6, ge=0, le=9)
    white_threshold: int = Field(default=127, ge=0, le=255)

    @model_validator(mode="after")
    def _check_bounds(self) -> "MorphologyConfig":
        if self.min_white_neighbors > self.max_white_neighbors:
            raise ValueError(
                f"min_white_neighbors ({self.min_white_neighbors}) must not exceed "
                f"max_white_neighbors ({self.max_white_neighbors})"
            )
        return self


class EnhancementParams(BaseModel):
    """Complete enhancement configuration.

    Attributes:
        profile: Name of the profile these parameters came from
        region: Crop and resample settings
        skew: Skew detection / deskew
        denoise: Noise reduction
        contrast: Tile equalization
        sharpen: Sharpen kernel
        binarization: Binarization
        morphology: Morphological cleanup
    """

    profile: str = "macro"
    region: RegionConfig = RegionConfig()
    skew: SkewConfig = SkewConfig()
    denoise: DenoiseConfig = DenoiseConfig()
    contrast: ContrastConfig = ContrastConfig()
    sharpen: SharpenConfig = SharpenConfig()
    binarization: BinarizationConfig = BinarizationConfig()
    morphology: MorphologyConfig = MorphologyConfig()


PROFILES: Dict[str, EnhancementParams] = {
    "macro": EnhancementParams(),
    "global_otsu": EnhancementParams(
        profile="global_otsu",
        skew=SkewConfig(enabled=False),
        denoise=DenoiseConfig(method="gaussian", kernel_radius=1),
        contrast=ContrastConfig(enabled=False),
        sharpen=SharpenConfig(strength=0.5),
        binarization=BinarizationConfig(method="otsu"),
        morphology=MorphologyConfig(enabled=False),
    ),
}


def get_profile(name: str) -> EnhancementParams:
    """Return a copy of a named enhancement profile.

    Raises:
        KeyError: If the profile is unknown.
    """
    if name not in PROFILES:
        raise KeyError(f"Unknown enhancement profile '{name}'. Available: {sorted(PROFILES)}")
    return PROFILES[name].model_copy(deep=True)


def load_params(config_path: Path) -> EnhancementParams:
    """Load and validate enhancement parameters from a YAML file.

    A ``profile`` key selects the base profile; any other section overrides
    that profile's values.

    Raises:
        FileNotFoundError: If config file does not exist
        KeyError: If the named profile is unknown
        pydantic.ValidationError: If configuration validation fails
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    return params_from_dict(load_yaml(config_path))


def params_from_dict(raw: Dict) -> EnhancementParams:
    """Build parameters from a (possibly partial) dictionary."""
    base = get_profile(raw.get("profile", "macro"))
    merged = base.model_dump()
    for section, values in raw.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return EnhancementParams(**merged)


def get_default_params() -> EnhancementParams:
    """Get default parameters from the bundled config.yaml file."""
    if DEFAULT_CONFIG_PATH.exists():
        return load_params(DEFAULT_CONFIG_PATH)
    return EnhancementParams()
