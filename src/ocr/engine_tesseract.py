"""Tesseract OCR engine wrapper for expiry stamp recognition.

Maps :class:`RecognizerOptions` onto Tesseract's command line:

- ``segmentation_mode`` -> ``--psm N``
- ``char_whitelist`` -> ``-c tessedit_char_whitelist=...``
- ``preserve_interword_spaces`` -> ``-c preserve_interword_spaces=1``
- languages -> ``lang="por+eng"``

Example:
    >>> from src.ocr import TesseractRecognizer, OCREngineConfig
    >>> recognizer = TesseractRecognizer(OCREngineConfig(type="tesseract"))
    >>> options = RecognizerOptions(segmentation_mode=SegmentationMode.SINGLE_BLOCK)
    >>> recognizer.recognize(image, ("por", "eng"), options)
    'VAL 26/01/26 LS223 14:05'
"""

import logging
import shlex
from typing import Optional, Sequence

import cv2
import numpy as np
import pytesseract

from .config_loader import OCREngineConfig
from .types import RecognitionError, RecognizerOptions

logger = logging.getLogger(__name__)


def build_tesseract_config(options: RecognizerOptions) -> str:
    """Build the Tesseract config string for one call.

    Example:
        >>> build_tesseract_config(RecognizerOptions(SegmentationMode.SINGLE_WORD, "0123 "))
        "--psm 8 -c 'tessedit_char_whitelist=0123 '"
    """
    parts = [f"--psm {options.segmentation_mode.value}"]
    if options.char_whitelist:
        parts.append("-c " + shlex.quote(f"tessedit_char_whitelist={options.char_whitelist}"))
    if options.preserve_interword_spaces:
        parts.append("-c preserve_interword_spaces=1")
    return " ".join(parts)


class TesseractRecognizer:
    """Recognizer backed by the Tesseract binary via pytesseract.

    Args:
        config: OCR engine configuration.
    """

    def __init__(self, config: Optional[OCREngineConfig] = None):
        self.config = config or OCREngineConfig(type="tesseract")

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

        logger.info(
            f"TesseractRecognizer initialized: "
            f"cmd={pytesseract.pytesseract.tesseract_cmd}, timeout={self.config.timeout}"
        )

    def recognize(
        self,
        image: np.ndarray,
        languages: Sequence[str],
        options: RecognizerOptions,
    ) -> str:
        """Run Tesseract on one image.

        Args:
            image: Grayscale image (H, W); color input is converted.
            languages: Language models, joined with ``+``.
            options: Segmentation mode, whitelist and spacing options.

        Returns:
            Recognized text with surrounding whitespace stripped (may be empty).

        Raises:
            RecognitionError: If the image is empty or Tesseract fails.
        """
        if image is None or image.size == 0:
            raise RecognitionError("Invalid image: empty or None")

        if image.ndim == 3:
            if image.shape[2] == 4:
                image = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
            elif image.shape[2] == 3:
                image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            else:
                image = image[:, :, 0]

        tesseract_config = build_tesseract_config(options)
        lang = "+".join(languages)
        logger.debug(f"Running Tesseract lang={lang} config: {tesseract_config}")

        try:
            text = pytesseract.image_to_string(
                image,
                lang=lang,
                config=tesseract_config,
                timeout=self.config.timeout,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionError(
                "Tesseract not available. Please install Tesseract OCR.\n"
                "Linux: sudo apt-get install tesseract-ocr tesseract-ocr-por\n"
                "MacOS: brew install tesseract tesseract-lang"
            ) from e
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise RecognitionError(f"Tesseract extraction failed: {e}") from e

        text = text.strip()
        logger.debug(f"Tesseract text: '{text}'")
        return text

    def is_available(self) -> bool:
        """Check if the Tesseract binary can be found."""
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError:
            return False
        logger.info(f"Tesseract version {version}")
        return True
