"""
Stage 2: Multi-Attempt Recognition & Field Extraction

Runs a pluggable OCR engine several times per capture (different image
variants, segmentation modes and whitelists), corrects common OCR
confusions and extracts the lot code, expiry date and time of day.

Pipeline stages:
1. Recognition attempts (Tesseract or RapidOCR)
2. Confusion correction (LS prefix collapse + letter/digit substitution)
3. Field extraction (lot code, tiered date search, time of day)
4. Merge across attempts with early stop
"""

from .config_loader import (
    AttemptConfig,
    CorrectionConfig,
    ExtractionConfig,
    ExtractionProfileConfig,
    OCREngineConfig,
    OCRModuleConfig,
    get_default_config,
    load_config,
)
from .corrector import CharacterCorrector, CorrectionResult
from .engine import Recognizer, create_recognizer
from .engine_rapidocr import RapidOCRRecognizer
from .engine_tesseract import TesseractRecognizer
from .extractor import FieldExtractor
from .processor import RecognitionOrchestrator, build_variants
from .types import (
    ExpiryDate,
    ExtractedFields,
    RawRecognition,
    RecognitionAttempt,
    RecognitionError,
    RecognitionOutcome,
    RecognizerOptions,
    SegmentationMode,
    SourceVariant,
)

__all__ = [
    "AttemptConfig",
    "CorrectionConfig",
    "ExtractionConfig",
    "ExtractionProfileConfig",
    "OCREngineConfig",
    "OCRModuleConfig",
    "get_default_config",
    "load_config",
    "CharacterCorrector",
    "CorrectionResult",
    "Recognizer",
    "create_recognizer",
    "RapidOCRRecognizer",
    "TesseractRecognizer",
    "FieldExtractor",
    "RecognitionOrchestrator",
    "build_variants",
    "ExpiryDate",
    "ExtractedFields",
    "RawRecognition",
    "RecognitionAttempt",
    "RecognitionError",
    "RecognitionOutcome",
    "RecognizerOptions",
    "SegmentationMode",
    "SourceVariant",
]
