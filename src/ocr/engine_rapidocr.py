"""RapidOCR engine wrapper for expiry stamp recognition.

RapidOCR (PaddleOCR ONNX backend) detects text lines by itself, so the
segmentation mode is ignored; the character whitelist is applied as a
post-filter on the recognized text.

Example:
    >>> from src.ocr import RapidOCRRecognizer, OCREngineConfig
    >>> recognizer = RapidOCRRecognizer(OCREngineConfig(type="rapidocr"))
    >>> recognizer.recognize(image, ("por", "eng"), RecognizerOptions())
    'VAL 26/01/26 LS223'
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .config_loader import OCREngineConfig
from .types import RecognitionError, RecognizerOptions

logger = logging.getLogger(__name__)


def apply_whitelist(text: str, whitelist: Optional[str]) -> str:
    """Uppercase text and drop characters outside the whitelist."""
    if not whitelist:
        return text
    allowed = set(whitelist)
    return "".join(c for c in text.upper() if c in allowed)


class RapidOCRRecognizer:
    """Recognizer backed by RapidOCR.

    Args:
        config: OCR engine configuration.

    Attributes:
        config: Engine configuration instance.
        engine: RapidOCR engine instance (lazy-loaded).
    """

    def __init__(self, config: Optional[OCREngineConfig] = None):
        """Initialize the wrapper.

        Note:
            The actual RapidOCR engine is lazy-loaded on first use to
            avoid initialization overhead if not needed.
        """
        self.config = config or OCREngineConfig(type="rapidocr")
        self._engine: Optional[object] = None  # Lazy-loaded

        logger.info(
            f"RapidOCRRecognizer initialized with config: "
            f"use_angle_cls={self.config.use_angle_cls}, text_score={self.config.text_score}"
        )

    @property
    def engine(self):
        """Lazy-load RapidOCR engine on first access.

        Raises:
            RecognitionError: If rapidocr_onnxruntime cannot be imported or initialized.
        """
        if self._engine is None:
            try:
                from rapidocr_onnxruntime import RapidOCR

                self._engine = RapidOCR(
                    use_angle_cls=self.config.use_angle_cls,
                    text_score=self.config.text_score,
                    use_space_char=True,
                )
                logger.info(f"RapidOCR engine loaded (text_score={self.config.text_score})")

            except ImportError as e:
                logger.error(
                    "Failed to import rapidocr_onnxruntime. "
                    "Install with: pip install rapidocr-onnxruntime"
                )
                raise RecognitionError("rapidocr-onnxruntime not installed") from e

            except Exception as e:
                logger.error(f"Failed to initialize RapidOCR engine: {e}")
                raise RecognitionError(f"RapidOCR initialization failed: {e}") from e

        return self._engine

    def recognize(
        self,
        image: np.ndarray,
        languages: Sequence[str],
        options: RecognizerOptions,
    ) -> str:
        """Run RapidOCR on one image.

        Detected lines are joined with spaces in reading order (top to bottom,
        then left to right). ``languages`` is unused: the loaded model decides.

        Raises:
            RecognitionError: If the image is empty or inference fails.
        """
        if image is None or image.size == 0:
            raise RecognitionError("Invalid image: empty or None")

        if image.ndim == 2:
            image = image[:, :, np.newaxis]

        engine = self.engine
        try:
            # RapidOCR returns (results_list, timing_info); results_list is None when
            # nothing is detected, otherwise a list of [bbox, text, confidence]
            result = engine(image)
        except Exception as e:
            logger.error(f"RapidOCR extraction failed: {e}", exc_info=True)
            raise RecognitionError(f"RapidOCR extraction failed: {e}") from e

        detections = result[0] if isinstance(result, tuple) and result else None
        if not detections:
            logger.debug("RapidOCR returned no text detections")
            return ""

        # bbox format: [[x1,y1], [x2,y2], [x3,y3], [x4,y4]]
        ordered = sorted(
            detections,
            key=lambda item: (
                min(point[1] for point in item[0]),
                min(point[0] for point in item[0]),
            ),
        )
        texts: List[str] = [str(item[1]) for item in ordered]
        text = apply_whitelist(" ".join(texts), options.char_whitelist).strip()

        logger.debug(f"RapidOCR text: '{text}' from {len(texts)} regions")
        return text
