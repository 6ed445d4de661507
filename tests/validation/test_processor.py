"""End-to-end tests for ExpiryValidator with a scripted recognizer."""

import asyncio
from datetime import date

import numpy as np
import pytest

from src.enhancement.types import CropRect
from src.ocr.types import RecognitionError, SourceVariant
from src.validation.config_loader import Config
from src.validation.processor import ExpiryValidator
from src.validation.types import ValidationStatus

ANCHOR_DAY = date(2025, 8, 11)


@pytest.fixture
def make_validator(fake_recognizer):
    """Build a validator around a scripted recognizer."""

    def _make(script, **kwargs):
        recognizer = fake_recognizer(script)
        return ExpiryValidator(config=Config(), recognizer=recognizer, **kwargs), recognizer

    return _make


class TestValidate:
    """Test synchronous validation."""

    def test_matching_stamp_is_valid(self, make_validator, source_image):
        validator, _ = make_validator(["VAL 26/01/26 LS223 14:05"])
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert result.status == ValidationStatus.VALID
        assert result.target_iso == "2026-01-26"
        assert result.expected_lot_code == "LS223"
        assert result.fields.formatted() == "26/01/2026 LS223 14:05"
        assert result.raw_text == "VAL 26/01/26 LS223 14:05"

    def test_later_week_is_divergent(self, make_validator, source_image):
        validator, _ = make_validator(["VAL 26/01/26 LS223"])
        result = validator.validate(source_image, None, date(2025, 9, 1), date(2025, 9, 1))

        assert result.status == ValidationStatus.DIVERGENT
        assert result.target_iso == "2026-02-16"
        assert "16/02/2026" in result.message

    def test_unreadable_stamp_is_invalid(self, make_validator, source_image):
        validator, _ = make_validator([""])
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert result.status == ValidationStatus.INVALID

    def test_engine_failure_is_error(self, make_validator, source_image):
        validator, _ = make_validator([RecognitionError("tesseract missing")])
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert result.status == ValidationStatus.ERROR

    def test_strict_profile_requires_lot_code(self, make_validator, source_image):
        validator, _ = make_validator(["VAL 26/01/26"], profile="strict")
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert result.status == ValidationStatus.INVALID

    def test_variants_passed_to_recognizer(self, make_validator, source_image):
        validator, recognizer = make_validator([""])
        validator.validate(source_image, CropRect(0, 0, 320, 120), ANCHOR_DAY, ANCHOR_DAY)

        enhanced = recognizer.calls[0]["image"]
        original = recognizer.calls[2]["image"]
        assert enhanced.shape == original.shape == (120, 320)
        assert not np.array_equal(enhanced, original)

    def test_prepare_variants(self, make_validator, source_image):
        validator, _ = make_validator([""])
        enhanced, variants = validator.prepare_variants(source_image)

        assert variants[SourceVariant.ENHANCED] is enhanced.pixels
        assert variants[SourceVariant.ORIGINAL].shape == enhanced.pixels.shape

    def test_source_not_modified(self, make_validator, source_image):
        validator, _ = make_validator(["VAL 26/01/26 LS223"])
        before = source_image.pixels.copy()
        validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert np.array_equal(source_image.pixels, before)

    def test_image_id_used(self, make_validator, source_image):
        validator, _ = make_validator([""])
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY, image_id="cam-1")

        assert result.image_id == "cam-1"

    def test_debug_images_saved(self, make_validator, source_image, tmp_path):
        validator, _ = make_validator(["VAL 26/01/26 LS223"], debug_dir=tmp_path / "debug")
        validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY, image_id="cam-1")

        assert (tmp_path / "debug" / "enhanced_cam-1.png").exists()

    def test_match_first_configuration(self, fake_recognizer, source_image):
        config = Config()
        config.validation.classification.expired_precedence = False
        validator = ExpiryValidator(config=config, recognizer=fake_recognizer(["VAL 26/01/26 LS223"]))

        result = validator.validate(source_image, None, ANCHOR_DAY, date(2026, 2, 1))
        assert result.status == ValidationStatus.VALID

    def test_recognizer_timeout_falls_through_to_next_attempt(self, make_validator, source_image):
        validator, recognizer = make_validator([TimeoutError("svc"), "VAL 26/01/26 LS223"])
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert result.status == ValidationStatus.VALID
        assert len(recognizer.calls) == 2

    def test_pipeline_exception_gives_error(self, make_validator, source_image):
        validator, _ = make_validator(["VAL 26/01/26 LS223"])

        def broken_prepare(image, crop=None):
            raise RuntimeError("decoder exploded")

        validator.prepare_variants = broken_prepare
        result = validator.validate(source_image, None, ANCHOR_DAY, ANCHOR_DAY)

        assert result.status == ValidationStatus.ERROR
        assert "decoder exploded" in result.message


class TestValidateAsync:
    """Test asynchronous validation."""

    def test_async_matches_sync(self, make_validator, source_image):
        validator, _ = make_validator(["VAL 26/01/26 LS223 14:05"])
        result = asyncio.run(validator.validate_async(source_image, None, ANCHOR_DAY, ANCHOR_DAY))

        assert result.status == ValidationStatus.VALID
        assert result.fields.lot_code == "LS223"
