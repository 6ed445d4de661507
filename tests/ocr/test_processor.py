"""Unit tests for the recognition orchestrator."""

import asyncio

import numpy as np
import pytest

from src.ocr.config_loader import DIGITS_WHITELIST, FULL_WHITELIST, OCRModuleConfig
from src.ocr.processor import RecognitionOrchestrator, build_variants
from src.ocr.types import (
    RecognitionAttempt,
    RecognitionError,
    SegmentationMode,
    SourceVariant,
)


@pytest.fixture
def variants():
    """Distinct enhanced and original buffers."""
    enhanced = np.full((20, 60), 255, dtype=np.uint8)
    original = np.full((20, 60), 128, dtype=np.uint8)
    return build_variants(enhanced, original)


@pytest.fixture
def make_orchestrator(fake_recognizer):
    """Build an orchestrator around a scripted recognizer."""

    def _make(script):
        recognizer = fake_recognizer(script)
        return RecognitionOrchestrator(recognizer, config=OCRModuleConfig()), recognizer

    return _make


class TestAttemptList:
    """Test the default attempt list."""

    def test_default_attempts(self, make_orchestrator):
        orchestrator, _ = make_orchestrator([""])
        attempts = orchestrator.attempts

        assert [a.source_variant for a in attempts] == [
            SourceVariant.ENHANCED,
            SourceVariant.ENHANCED,
            SourceVariant.ORIGINAL,
            SourceVariant.ORIGINAL,
        ]
        assert [a.segmentation_mode.value for a in attempts] == [8, 6, 11, 13]
        assert attempts[0].preserve_interword_spaces is True
        assert attempts[2].char_whitelist == DIGITS_WHITELIST
        assert all(a.languages == ("por", "eng") for a in attempts)

    def test_options_and_images_passed(self, make_orchestrator, variants):
        orchestrator, recognizer = make_orchestrator([""])
        orchestrator.run(variants)

        first, third = recognizer.calls[0], recognizer.calls[2]
        assert first["options"].segmentation_mode == SegmentationMode.SINGLE_WORD
        assert first["options"].char_whitelist == FULL_WHITELIST
        assert first["languages"] == ("por", "eng")
        assert first["image"] is variants[SourceVariant.ENHANCED]
        assert third["image"] is variants[SourceVariant.ORIGINAL]


class TestRun:
    """Test synchronous orchestration."""

    def test_stops_when_lot_and_date_found(self, make_orchestrator, variants):
        orchestrator, recognizer = make_orchestrator(["VAL 26/01/26 LS223 14:05"])
        outcome = orchestrator.run(variants)

        assert len(recognizer.calls) == 1
        assert outcome.attempts_run == 1
        assert outcome.fields.lot_code == "LS223"
        assert outcome.fields.expiry_date.iso == "2026-01-26"
        assert outcome.fields.time_of_day == "14:05"

    def test_fields_merged_across_attempts(self, make_orchestrator, variants):
        orchestrator, recognizer = make_orchestrator(["LS223", "VAL 26/01/26", "never"])
        outcome = orchestrator.run(variants)

        assert len(recognizer.calls) == 2
        assert outcome.fields.lot_code == "LS223"
        assert outcome.fields.expiry_date.iso == "2026-01-26"

    def test_first_value_wins(self, make_orchestrator, variants):
        orchestrator, _ = make_orchestrator(["LS223", "LS999 26/01/26"])
        outcome = orchestrator.run(variants)

        assert outcome.fields.lot_code == "LS223"

    def test_longest_text_kept(self, make_orchestrator, variants):
        orchestrator, _ = make_orchestrator(["A", "LONGER TEXT", "B", "C"])
        outcome = orchestrator.run(variants)

        assert outcome.attempts_run == 4
        assert outcome.raw_text == "LONGER TEXT"
        assert [r.attempt_index for r in outcome.recognitions] == [0, 1, 2, 3]

    def test_failed_attempt_does_not_stop_processing(self, make_orchestrator, variants):
        orchestrator, recognizer = make_orchestrator(
            [RecognitionError("engine crashed"), "VAL 26/01/26 LS223"]
        )
        outcome = orchestrator.run(variants)

        assert len(recognizer.calls) == 2
        assert outcome.failed_attempts == 1
        assert len(outcome.errors) == 1
        assert not outcome.all_failed
        assert outcome.fields.is_complete()

    def test_all_attempts_failed(self, make_orchestrator, variants, engine_failure):
        orchestrator, _ = make_orchestrator([engine_failure])
        outcome = orchestrator.run(variants)

        assert outcome.attempts_run == 4
        assert outcome.failed_attempts == 4
        assert outcome.all_failed
        assert outcome.fields.expiry_date is None

    def test_empty_text_is_not_a_failure(self, make_orchestrator, variants):
        orchestrator, _ = make_orchestrator([""])
        outcome = orchestrator.run(variants)

        assert outcome.failed_attempts == 0
        assert not outcome.all_failed
        assert outcome.raw_text == ""

    def test_missing_variant_counts_as_failure(self, make_orchestrator, variants):
        orchestrator, recognizer = make_orchestrator([""])
        enhanced_only = {SourceVariant.ENHANCED: variants[SourceVariant.ENHANCED]}
        outcome = orchestrator.run(enhanced_only)

        assert len(recognizer.calls) == 2
        assert outcome.failed_attempts == 2
        assert not outcome.all_failed

    def test_any_recognizer_exception_moves_to_next_attempt(self, make_orchestrator, variants):
        orchestrator, recognizer = make_orchestrator([TimeoutError("service timed out"), "VAL 26/01/26 LS223"])
        outcome = orchestrator.run(variants)

        assert len(recognizer.calls) == 2
        assert outcome.failed_attempts == 1
        assert "TimeoutError" in outcome.errors[0]
        assert outcome.fields.lot_code == "LS223"
        assert outcome.fields.expiry_date.iso == "2026-01-26"

    def test_any_recognizer_exception_moves_to_next_attempt_async(self, make_orchestrator, variants):
        orchestrator, _ = make_orchestrator([TypeError("bad payload"), "VAL 26/01/26 LS223"])
        outcome = asyncio.run(orchestrator.run_async(variants))

        assert outcome.failed_attempts == 1
        assert outcome.fields.is_complete()

    def test_custom_attempts(self, fake_recognizer, variants):
        recognizer = fake_recognizer(["LS223"])
        attempts = [
            RecognitionAttempt(
                source_variant=SourceVariant.ORIGINAL,
                segmentation_mode=SegmentationMode.SINGLE_LINE,
                languages=("eng",),
            )
        ]
        orchestrator = RecognitionOrchestrator(recognizer, attempts=attempts)
        outcome = orchestrator.run(variants)

        assert outcome.attempts_run == 1
        assert recognizer.calls[0]["languages"] == ("eng",)
        assert recognizer.calls[0]["options"].char_whitelist is None


class TestRunAsync:
    """Test asynchronous orchestration."""

    def test_same_outcome_as_sync(self, make_orchestrator, variants):
        script = [RecognitionError("engine crashed"), "LS223", "VAL 26/01/26"]
        sync_outcome = make_orchestrator(script)[0].run(variants)
        async_outcome = asyncio.run(make_orchestrator(script)[0].run_async(variants))

        assert async_outcome.fields == sync_outcome.fields
        assert async_outcome.attempts_run == sync_outcome.attempts_run == 3
        assert async_outcome.failed_attempts == 1

    def test_all_failed_async(self, make_orchestrator, variants, engine_failure):
        orchestrator, _ = make_orchestrator([engine_failure])
        outcome = asyncio.run(orchestrator.run_async(variants))

        assert outcome.all_failed
