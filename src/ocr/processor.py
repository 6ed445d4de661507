"""Recognition orchestrator: multi-attempt OCR with early stop.

Runs an ordered list of recognition attempts against the image variants of
one capture (enhanced and original), extracting fields after each attempt:

1. A failed attempt (any exception from the recognizer, or a missing variant)
   is logged and counted; the remaining attempts still run.
2. Fields are merged across attempts; the first value found for a field wins.
3. The longest recognized text is kept as the raw text.
4. Processing stops as soon as both the lot code and expiry date are known.

Example:
    >>> orchestrator = RecognitionOrchestrator(recognizer)
    >>> outcome = orchestrator.run({SourceVariant.ENHANCED: enhanced, SourceVariant.ORIGINAL: gray})
    >>> outcome.fields.lot_code
    'LS223'
"""

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .config_loader import OCRModuleConfig, get_default_config
from .corrector import CharacterCorrector
from .engine import Recognizer
from .extractor import FieldExtractor
from .types import (
    RawRecognition,
    RecognitionAttempt,
    RecognitionError,
    RecognitionOutcome,
    SourceVariant,
)

logger = logging.getLogger(__name__)

ImageVariants = Mapping[SourceVariant, np.ndarray]


class RecognitionOrchestrator:
    """Runs recognition attempts in order and merges their fields.

    Args:
        recognizer: Engine wrapper implementing ``recognize``.
        attempts: Ordered attempts (configured defaults if None).
        extractor: Field extractor (configured defaults if None).
        config: OCR configuration used for any default above.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        attempts: Optional[Sequence[RecognitionAttempt]] = None,
        extractor: Optional[FieldExtractor] = None,
        config: Optional[OCRModuleConfig] = None,
    ):
        if config is None and (attempts is None or extractor is None):
            config = get_default_config()

        self.recognizer = recognizer
        self.attempts: List[RecognitionAttempt] = (
            list(attempts) if attempts is not None else config.build_attempts()
        )
        self.extractor = extractor or FieldExtractor(
            config=config.extraction,
            corrector=CharacterCorrector(config.correction),
        )

        logger.info(
            f"RecognitionOrchestrator initialized with {len(self.attempts)} attempts: "
            f"{[a.describe() for a in self.attempts]}"
        )

    def run(self, variants: ImageVariants) -> RecognitionOutcome:
        """Run the attempt list synchronously."""
        outcome = RecognitionOutcome()
        for index, attempt in enumerate(self.attempts):
            outcome.attempts_run += 1
            image = variants.get(attempt.source_variant)
            if image is None:
                self._record_failure(outcome, index, attempt, "image variant not available")
                continue
            try:
                text = self.recognizer.recognize(image, attempt.languages, attempt.options())
            except RecognitionError as e:
                self._record_failure(outcome, index, attempt, str(e))
                continue
            except Exception as e:
                logger.error(f"Recognizer raised on attempt {index}: {e}", exc_info=True)
                self._record_failure(outcome, index, attempt, f"{type(e).__name__}: {e}")
                continue
            if self._record_text(outcome, index, attempt, text):
                break
        return self._finish(outcome)

    async def run_async(self, variants: ImageVariants) -> RecognitionOutcome:
        """Run the attempt list, offloading each recognizer call to a thread."""
        outcome = RecognitionOutcome()
        for index, attempt in enumerate(self.attempts):
            outcome.attempts_run += 1
            image = variants.get(attempt.source_variant)
            if image is None:
                self._record_failure(outcome, index, attempt, "image variant not available")
                continue
            try:
                text = await asyncio.to_thread(
                    self.recognizer.recognize, image, attempt.languages, attempt.options()
                )
            except RecognitionError as e:
                self._record_failure(outcome, index, attempt, str(e))
                continue
            except Exception as e:
                logger.error(f"Recognizer raised on attempt {index}: {e}", exc_info=True)
                self._record_failure(outcome, index, attempt, f"{type(e).__name__}: {e}")
                continue
            if self._record_text(outcome, index, attempt, text):
                break
        return self._finish(outcome)

    def _record_failure(
        self,
        outcome: RecognitionOutcome,
        index: int,
        attempt: RecognitionAttempt,
        reason: str,
    ) -> None:
        outcome.failed_attempts += 1
        outcome.errors.append(f"attempt {index} ({attempt.describe()}): {reason}")
        logger.warning(f"OCR attempt {index} ({attempt.describe()}) failed: {reason}")

    def _record_text(
        self,
        outcome: RecognitionOutcome,
        index: int,
        attempt: RecognitionAttempt,
        text: str,
    ) -> bool:
        """Store one attempt's text; True when both key fields are known."""
        text = text or ""
        outcome.recognitions.append(RawRecognition(text=text, attempt_index=index))
        if len(text) > len(outcome.raw_text):
            outcome.raw_text = text

        outcome.fields.merge(self.extractor.extract(text))
        logger.debug(f"Attempt {index} ({attempt.describe()}) text: '{text}'")

        if outcome.fields.is_complete():
            logger.info(f"Lot code and expiry date found on attempt {index}, stopping")
            return True
        return False

    def _finish(self, outcome: RecognitionOutcome) -> RecognitionOutcome:
        if outcome.all_failed:
            logger.error(f"All {outcome.attempts_run} OCR attempts failed")
        else:
            logger.info(
                f"OCR finished after {outcome.attempts_run} attempts: "
                f"lot_code={outcome.fields.lot_code}, "
                f"expiry={outcome.fields.expiry_date.iso if outcome.fields.expiry_date else None}"
            )
        return outcome


def build_variants(enhanced: np.ndarray, original: np.ndarray) -> Dict[SourceVariant, np.ndarray]:
    """Pair the enhanced and original buffers by variant."""
    return {SourceVariant.ENHANCED: enhanced, SourceVariant.ORIGINAL: original}
