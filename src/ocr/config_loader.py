"""Configuration loader with Pydantic validation for OCR module.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.utils.io import load_yaml

from .types import RecognitionAttempt, SegmentationMode, SourceVariant

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

FULL_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789./-: "
DIGITS_WHITELIST = "0123456789./-: "


class OCREngineConfig(BaseModel):
    """OCR engine configuration.

    Attributes:
        type: Engine type ("tesseract" or "rapidocr")
        tesseract_cmd: Path to the tesseract binary (None = found on PATH)
        timeout: Seconds before a Tesseract call is aborted (0 = no limit)
        use_angle_cls: RapidOCR angle classification for rotated text
        text_score: RapidOCR minimum text confidence (0.0-1.0)
    """

    type: str = "tesseract"
    tesseract_cmd: Optional[str] = None
    timeout: float = Field(default=0.0, ge=0.0)
    use_angle_cls: bool = True
    text_score: float = Field(default=0.5, ge=0.0, le=1.0)


class AttemptConfig(BaseModel):
    """One recognition attempt as written in YAML.

    Attributes:
        source: Image buffer ("enhanced" or "original")
        segmentation_mode: Tesseract PSM value
        whitelist: Characters the engine may emit (None = unrestricted)
        preserve_interword_spaces: Keep runs of spaces between words
    """

    source: Literal["enhanced", "original"] = "enhanced"
    segmentation_mode: int = 6
    whitelist: Optional[str] = None
    preserve_interword_spaces: bool = False

    @field_validator("segmentation_mode")
    @classmethod
    def _known_mode(cls, value: int) -> int:
        SegmentationMode(value)
        return value

    def to_attempt(self, languages: List[str]) -> RecognitionAttempt:
        return RecognitionAttempt(
            source_variant=SourceVariant(self.source),
            segmentation_mode=SegmentationMode(self.segmentation_mode),
            char_whitelist=self.whitelist,
            languages=tuple(languages),
            preserve_interword_spaces=self.preserve_interword_spaces,
        )


def _default_attempts() -> List[AttemptConfig]:
    return [
        AttemptConfig(
            source="enhanced",
            segmentation_mode=8,
            whitelist=FULL_WHITELIST,
            preserve_interword_spaces=True,
        ),
        AttemptConfig(source="enhanced", segmentation_mode=6, whitelist=FULL_WHITELIST),
        AttemptConfig(source="original", segmentation_mode=11, whitelist=DIGITS_WHITELIST),
        AttemptConfig(source="original", segmentation_mode=13, whitelist=FULL_WHITELIST),
    ]


class CorrectionConfig(BaseModel):
    """Character correction configuration.

    Attributes:
        enabled: Enable confusion correction before field extraction
        substitutions: Character map applied outside ``LS`` tokens
    """

    enabled: bool = True
    substitutions: Dict[str, str] = {
        "O": "0",
        "o": "0",
        "Q": "0",
        "I": "1",
        "l": "1",
        "|": "1",
        "S": "5",
        "$": "5",
        "Z": "2",
        "B": "8",
        "G": "6",
        "T": "7",
        "A": "4",
        "E": "3",
        "g": "9",
    }

    @field_validator("substitutions")
    @classmethod
    def _single_characters(cls, value: Dict[str, str]) -> Dict[str, str]:
        for old, new in value.items():
            if len(old) != 1 or len(new) != 1:
                raise ValueError(f"Substitutions must map single characters: {old!r} -> {new!r}")
        return value


class ExtractionProfileConfig(BaseModel):
    """Rules for turning corrected text into fields.

    Attributes:
        min_year: Earliest accepted expiry year
        max_year: Latest accepted expiry year
        two_digit_pivot: Two-digit years below this map to 20YY, others to
            19YY (None = always 20YY)
        whitespace_separators: Accept spaces between day, month and year
        loose_fallback: Try a last-resort pattern with any separators
        require_lot_code: A missing lot code makes the reading invalid
    """

    # No profile skips the calendar check (e.g. 29/02 in a non-leap year):
    # ExpiryDate must always hold a real date so it can be compared to today.
    min_year: int = Field(default=2000, ge=1900)
    max_year: int = Field(default=2099, le=2999)
    two_digit_pivot: Optional[int] = Field(default=None, ge=0, le=100)
    whitespace_separators: bool = False
    loose_fallback: bool = False
    require_lot_code: bool = False

    @model_validator(mode="after")
    def _check_year_range(self) -> "ExtractionProfileConfig":
        if self.min_year > self.max_year:
            raise ValueError(f"min_year ({self.min_year}) must not exceed max_year ({self.max_year})")
        return self


EXTRACTION_PROFILES: Dict[str, ExtractionProfileConfig] = {
    "standard": ExtractionProfileConfig(),
    "strict": ExtractionProfileConfig(require_lot_code=True),
    "permissive": ExtractionProfileConfig(
        min_year=1900,
        two_digit_pivot=50,
        whitespace_separators=True,
        loose_fallback=True,
    ),
}


class ExtractionConfig(BaseModel):
    """Field extraction configuration.

    Attributes:
        profile: Name of the active profile
        profiles: Available profiles (defaults merged with YAML entries)
        keywords: Words that may precede the expiry date
    """

    profile: str = "standard"
    profiles: Dict[str, ExtractionProfileConfig] = Field(
        default_factory=lambda: {k: v.model_copy() for k, v in EXTRACTION_PROFILES.items()}
    )
    keywords: List[str] = ["VALIDADE", "VENCT", "VENCE", "VENC", "VAL", "EXP", "DATA"]

    @model_validator(mode="after")
    def _check_profile(self) -> "ExtractionConfig":
        for name, profile in EXTRACTION_PROFILES.items():
            self.profiles.setdefault(name, profile.model_copy())
        if self.profile not in self.profiles:
            raise ValueError(
                f"Unknown extraction profile '{self.profile}'. Available: {sorted(self.profiles)}"
            )
        return self

    @property
    def active(self) -> ExtractionProfileConfig:
        return self.profiles[self.profile]


class OCRModuleConfig(BaseModel):
    """Complete OCR module configuration.

    Attributes:
        engine: OCR engine configuration
        languages: Language models passed to the engine
        attempts: Ordered recognition attempts
        correction: Character correction configuration
        extraction: Field extraction configuration
    """

    engine: OCREngineConfig = OCREngineConfig()
    languages: List[str] = ["por", "eng"]
    attempts: List[AttemptConfig] = Field(default_factory=_default_attempts, min_length=1)
    correction: CorrectionConfig = CorrectionConfig()
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)

    def build_attempts(self) -> List[RecognitionAttempt]:
        """Convert the configured attempts into RecognitionAttempt objects."""
        return [attempt.to_attempt(self.languages) for attempt in self.attempts]


def load_config(config_path: Path) -> OCRModuleConfig:
    """Load and validate OCR configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated OCRModuleConfig

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("src/ocr/config.yaml"))
        >>> print(config.extraction.profile)
        standard
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    return OCRModuleConfig(**load_yaml(config_path))


def get_default_config() -> OCRModuleConfig:
    """Get default configuration from bundled config.yaml file.

    Falls back to the model defaults if the file is missing.
    """
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return OCRModuleConfig()
