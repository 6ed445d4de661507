"""Recognizer interface and engine factory.

A recognizer turns one grayscale image into text. Implementations wrap an
external OCR engine and must:

- return the recognized text (an empty string is a valid result)
- raise :class:`RecognitionError` when the engine itself fails

Example:
    >>> from src.ocr import create_recognizer, OCREngineConfig
    >>> recognizer = create_recognizer(OCREngineConfig(type="tesseract"))
    >>> recognizer.recognize(image, ("por", "eng"), RecognizerOptions())
    'VAL 26/01/26 LS223'
"""

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from .config_loader import OCREngineConfig
from .types import RecognizerOptions

logger = logging.getLogger(__name__)


@runtime_checkable
class Recognizer(Protocol):
    """Text recognizer used by the orchestrator."""

    def recognize(
        self,
        image: np.ndarray,
        languages: Sequence[str],
        options: RecognizerOptions,
    ) -> str:
        ...


def create_recognizer(config: Optional[OCREngineConfig] = None) -> Recognizer:
    """Build the recognizer selected by ``config.type``.

    Unknown engine types fall back to Tesseract with a warning.
    """
    config = config or OCREngineConfig()
    engine_type = config.type.lower()

    if engine_type == "rapidocr":
        from src.ocr.engine_rapidocr import RapidOCRRecognizer

        logger.info("Initialized with RapidOCR engine")
        return RapidOCRRecognizer(config)

    if engine_type != "tesseract":
        logger.warning(f"Unknown engine type '{engine_type}', defaulting to Tesseract")

    from src.ocr.engine_tesseract import TesseractRecognizer

    logger.info("Initialized with Tesseract OCR engine")
    return TesseractRecognizer(config)
