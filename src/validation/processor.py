"""
Main processor for expiry stamp validation.

Orchestrates the complete pipeline for one captured image:
1. Build the image variants (enhanced + original grayscale) on a copy
2. Run the recognition attempts and extract fields
3. Compute the target expiry date for the reference date
4. Classify and fill a ValidationResult

The core never reads the clock: the reference date and "now" are supplied by
the caller.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import cv2
import numpy as np

from src.enhancement.processor import EnhancementPipeline
from src.enhancement.region import normalize_region
from src.enhancement.types import CropRect, EnhancedImage, PreprocessError, SourceImage
from src.ocr.corrector import CharacterCorrector
from src.ocr.engine import Recognizer, create_recognizer
from src.ocr.extractor import FieldExtractor
from src.ocr.processor import RecognitionOrchestrator, build_variants
from src.ocr.types import RecognitionOutcome, SourceVariant

from .classifier import classify
from .config_loader import Config, get_default_config, load_config
from .schedule import compute_target, expected_lot_code
from .types import ValidationResult, ValidationStatus

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


class ExpiryValidator:
    """
    Validates expiry stamps against the weekly schedule.

    Example:
        >>> validator = ExpiryValidator()
        >>> image = SourceImage.from_file("stamp.jpg")
        >>> result = validator.validate(image, None, date(2025, 9, 1), date(2025, 9, 1))
        >>> result.status, result.target_iso
        (<ValidationStatus.DIVERGENT: 'divergent'>, '2026-02-16')
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        config_path: Optional[Path] = None,
        recognizer: Optional[Recognizer] = None,
        profile: Optional[str] = None,
        debug_dir: Optional[Path] = None,
    ):
        """
        Initialize the validator.

        Args:
            config: Pre-loaded configuration (takes precedence).
            config_path: YAML file to load if config is None.
            recognizer: OCR engine wrapper (built from config if None).
            profile: Extraction profile overriding the configured one.
            debug_dir: If set, enhanced images are written here.
        """
        if config is not None:
            self.config = config
        elif config_path is not None:
            self.config = load_config(config_path)
        else:
            self.config = get_default_config()

        ocr_config = self.config.ocr
        self.pipeline = EnhancementPipeline(params=self.config.enhancement)
        self.extractor = FieldExtractor(
            config=ocr_config.extraction,
            corrector=CharacterCorrector(ocr_config.correction),
            profile=profile,
        )
        self.orchestrator = RecognitionOrchestrator(
            recognizer or create_recognizer(ocr_config.engine),
            attempts=ocr_config.build_attempts(),
            extractor=self.extractor,
        )
        self.anchor = self.config.validation.schedule.to_anchor()
        self.debug_dir = debug_dir

        logger.info(
            f"ExpiryValidator initialized: profile={self.extractor.profile_name}, "
            f"anchor={self.anchor.anchor_monday.isoformat()}, "
            f"base_expiry={self.anchor.base_expiry_monday.isoformat()}"
        )

    @property
    def require_lot_code(self) -> bool:
        return self.extractor.profile.require_lot_code

    def prepare_variants(
        self,
        image: SourceImage,
        crop: Optional[CropRect] = None,
    ) -> Tuple[EnhancedImage, Dict[SourceVariant, np.ndarray]]:
        """Build the enhanced and original variants of one capture."""
        enhanced = self.pipeline.enhance(image, crop)
        try:
            original = normalize_region(image, crop, self.config.enhancement.region)
        except PreprocessError:
            original = normalize_region(image, None, self.config.enhancement.region)
        return enhanced, build_variants(enhanced.pixels, original.pixels)

    def validate(
        self,
        image: SourceImage,
        crop: Optional[CropRect],
        reference_date: date,
        now: DateLike,
        image_id: Optional[str] = None,
        result: Optional[ValidationResult] = None,
    ) -> ValidationResult:
        """
        Validate one image synchronously.

        Args:
            image: Captured image.
            crop: Optional region of interest.
            reference_date: Date whose production week sets the target.
            now: Current date used for the expiry check.
            image_id: Identifier for the result (random if None).
            result: Pending result to fill instead of creating one.

        Returns:
            ValidationResult in a terminal status. Any exception raised while
            enhancing, recognizing or classifying gives an ERROR result.
        """
        result = self._begin(result, image_id, reference_date)
        try:
            enhanced, variants = self.prepare_variants(image, crop)
            self._save_debug(result.image_id, enhanced)
            outcome = self.orchestrator.run(variants)
            return self._complete(result, outcome, now)
        except Exception as e:
            return self._fail(result, e)

    async def validate_async(
        self,
        image: SourceImage,
        crop: Optional[CropRect],
        reference_date: date,
        now: DateLike,
        image_id: Optional[str] = None,
        result: Optional[ValidationResult] = None,
    ) -> ValidationResult:
        """Validate one image, offloading enhancement and recognition to threads."""
        result = self._begin(result, image_id, reference_date)
        try:
            enhanced, variants = await asyncio.to_thread(self.prepare_variants, image, crop)
            self._save_debug(result.image_id, enhanced)
            outcome = await self.orchestrator.run_async(variants)
            return self._complete(result, outcome, now)
        except Exception as e:
            return self._fail(result, e)

    def _begin(
        self,
        result: Optional[ValidationResult],
        image_id: Optional[str],
        reference_date: date,
    ) -> ValidationResult:
        if result is None:
            result = ValidationResult(image_id=image_id or uuid.uuid4().hex)
        result.target_iso = compute_target(reference_date, self.anchor)
        result.expected_lot_code = expected_lot_code(reference_date)
        result.transition(ValidationStatus.PROCESSING)
        logger.info(
            f"Validating image {result.image_id}: reference={reference_date.isoformat()}, "
            f"target={result.target_iso}"
        )
        return result

    def _complete(
        self,
        result: ValidationResult,
        outcome: RecognitionOutcome,
        now: DateLike,
    ) -> ValidationResult:
        status, message = classify(
            outcome,
            result.target_iso,
            now,
            config=self.config.validation.classification,
            require_lot_code=self.require_lot_code,
        )
        result.fields = outcome.fields
        result.raw_text = outcome.raw_text
        result.transition(status, message)
        logger.info(f"Image {result.image_id}: {status.value} - {message}")
        return result

    def _fail(self, result: ValidationResult, error: Exception) -> ValidationResult:
        logger.error(f"Validation of image {result.image_id} failed: {error}", exc_info=True)
        if result.status is ValidationStatus.PROCESSING:
            result.transition(ValidationStatus.ERROR, f"Validation failed: {error}")
        return result

    def _save_debug(self, image_id: str, enhanced: EnhancedImage) -> None:
        if self.debug_dir is None:
            return
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        debug_path = self.debug_dir / f"enhanced_{image_id}.png"
        cv2.imwrite(str(debug_path), enhanced.to_array())
        logger.debug(f"Saved enhanced image to {debug_path}")
