"""Configuration loader with Pydantic validation for the validation module.

Also defines the root :class:`Config` that aggregates the enhancement, OCR
and validation sections of a single YAML file.
"""

from datetime import date
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from src.enhancement.config_loader import EnhancementParams, get_default_params, params_from_dict
from src.ocr.config_loader import OCRModuleConfig
from src.ocr.config_loader import get_default_config as get_default_ocr_config
from src.utils.io import load_yaml

from .types import ScheduleAnchor

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


class ScheduleConfig(BaseModel):
    """Weekly expiry schedule.

    Attributes:
        anchor_monday: Production week of the base expiry
        base_expiry_monday: Expiry printed during the anchor week (a Monday)
    """

    anchor_monday: date = date(2025, 8, 11)
    base_expiry_monday: date = date(2026, 1, 26)

    @field_validator("base_expiry_monday")
    @classmethod
    def _must_be_monday(cls, value: date) -> date:
        if value.weekday() != 0:
            raise ValueError(f"base_expiry_monday must be a Monday, got {value.isoformat()}")
        return value

    def to_anchor(self) -> ScheduleAnchor:
        return ScheduleAnchor(
            anchor_monday=self.anchor_monday,
            base_expiry_monday=self.base_expiry_monday,
        )


class ClassificationConfig(BaseModel):
    """Classification rules.

    Attributes:
        expired_precedence: Check "expired" before "matches target"
    """

    expired_precedence: bool = True


class SessionConfig(BaseModel):
    """Concurrent validation session.

    Attributes:
        max_concurrency: Images processed at the same time
        max_images: Images a session accepts (0 = unlimited)
    """

    max_concurrency: int = Field(default=2, ge=1)
    max_images: int = Field(default=8, ge=0)


class ValidationModuleConfig(BaseModel):
    """Complete validation module configuration."""

    schedule: ScheduleConfig = ScheduleConfig()
    classification: ClassificationConfig = ClassificationConfig()
    session: SessionConfig = SessionConfig()


class Config(BaseModel):
    """Root configuration container.

    Attributes:
        enhancement: Enhancement pipeline parameters
        ocr: OCR module configuration
        validation: Validation module configuration
    """

    enhancement: EnhancementParams = Field(default_factory=get_default_params)
    ocr: OCRModuleConfig = Field(default_factory=get_default_ocr_config)
    validation: ValidationModuleConfig = ValidationModuleConfig()

    @field_validator("enhancement", mode="before")
    @classmethod
    def _merge_enhancement_profile(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return params_from_dict(value)
        return value


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build the root config; missing sections use the bundled defaults."""
    return Config(**raw)


def load_config(config_path: Path) -> Config:
    """Load and validate the root configuration from YAML file.

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    return config_from_dict(load_yaml(config_path))


def get_default_config() -> Config:
    """Get default configuration from bundled config.yaml file."""
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return Config()
