"""Type definitions for OCR module.

This module defines the data structures used by the recognition orchestrator
and the field extractor: attempt configurations, recognizer options, raw
recognitions and the structured fields pulled out of a stamp.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple


class RecognitionError(RuntimeError):
    """Raised when the OCR engine fails on an attempt."""


class SourceVariant(Enum):
    """Which image buffer an attempt is run against."""

    ENHANCED = "enhanced"  # Output of the enhancement pipeline
    ORIGINAL = "original"  # Cropped/resampled grayscale, no enhancement


class SegmentationMode(Enum):
    """Page segmentation modes (Tesseract PSM values)."""

    AUTO = 3  # Fully automatic page segmentation
    SINGLE_COLUMN = 4  # Single column of variable-size text
    SINGLE_BLOCK = 6  # Uniform block of text
    SINGLE_LINE = 7  # Single text line
    SINGLE_WORD = 8  # Single word
    SPARSE_TEXT = 11  # As much text as possible, no order
    RAW_LINE = 13  # Single line, bypassing Tesseract-specific hacks


@dataclass(frozen=True)
class RecognizerOptions:
    """Options passed to a recognizer for one call.

    Attributes:
        segmentation_mode: Assumed text layout
        char_whitelist: Characters the engine may emit (None = unrestricted)
        preserve_interword_spaces: Keep runs of spaces between words
    """

    segmentation_mode: SegmentationMode = SegmentationMode.SINGLE_BLOCK
    char_whitelist: Optional[str] = None
    preserve_interword_spaces: bool = False


@dataclass(frozen=True)
class RecognitionAttempt:
    """One entry of the ordered attempt list.

    Attributes:
        source_variant: Image buffer to recognize
        char_whitelist: Characters the engine may emit
        segmentation_mode: Assumed text layout
        languages: Language models to load (e.g. ("por", "eng"))
        preserve_interword_spaces: Keep runs of spaces between words
    """

    source_variant: SourceVariant
    segmentation_mode: SegmentationMode
    char_whitelist: Optional[str] = None
    languages: Tuple[str, ...] = ("por", "eng")
    preserve_interword_spaces: bool = False

    def options(self) -> RecognizerOptions:
        """Build the recognizer options for this attempt."""
        return RecognizerOptions(
            segmentation_mode=self.segmentation_mode,
            char_whitelist=self.char_whitelist,
            preserve_interword_spaces=self.preserve_interword_spaces,
        )

    def describe(self) -> str:
        return f"{self.source_variant.value}/psm{self.segmentation_mode.value}"


@dataclass
class RawRecognition:
    """Text produced by one attempt."""

    text: str
    attempt_index: int


@dataclass(frozen=True)
class ExpiryDate:
    """Expiry date found in recognized text.

    Attributes:
        iso: Normalized ``YYYY-MM-DD``
        raw: Substring the date was parsed from (after correction)
    """

    iso: str
    raw: str

    @property
    def date(self) -> date:
        return date.fromisoformat(self.iso)

    @property
    def display(self) -> str:
        """Date as ``DD/MM/YYYY``."""
        return self.date.strftime("%d/%m/%Y")


@dataclass
class ExtractedFields:
    """Structured fields pulled from recognized text.

    Absence of a field is represented by None and is not an error.

    Attributes:
        lot_code: ``LS`` followed by 3-6 digits
        expiry_date: Parsed expiry date
        time_of_day: ``HH:MM``
    """

    lot_code: Optional[str] = None
    expiry_date: Optional[ExpiryDate] = None
    time_of_day: Optional[str] = None

    def is_complete(self) -> bool:
        """Lot code and expiry date both present."""
        return self.lot_code is not None and self.expiry_date is not None

    def merge(self, other: "ExtractedFields") -> None:
        """Fill fields that are still missing from another extraction."""
        if self.lot_code is None:
            self.lot_code = other.lot_code
        if self.expiry_date is None:
            self.expiry_date = other.expiry_date
        if self.time_of_day is None:
            self.time_of_day = other.time_of_day

    def formatted(self) -> str:
        """Standard report line ``DD/MM/YYYY LS000 HH:MM`` (present parts only)."""
        parts = []
        if self.expiry_date is not None:
            parts.append(self.expiry_date.display)
        if self.lot_code:
            parts.append(self.lot_code)
        if self.time_of_day:
            parts.append(self.time_of_day)
        return " ".join(parts)

    def reference_text(self) -> str:
        """Short reference ``DD/MM/YY LSxxx`` shown next to a capture."""
        parts = []
        if self.expiry_date is not None:
            parts.append(self.expiry_date.date.strftime("%d/%m/%y"))
        if self.lot_code:
            parts.append(self.lot_code.upper())
        return " ".join(parts)


@dataclass
class RecognitionOutcome:
    """Result of running the attempt list against one image.

    Attributes:
        fields: Fields merged across attempts (first value found wins)
        raw_text: Longest text seen across attempts
        recognitions: Text of every attempt that completed
        attempts_run: Attempts started (early stop leaves the rest unrun)
        failed_attempts: Attempts whose recognizer call failed
        errors: Failure messages, one per failed attempt
    """

    fields: ExtractedFields = field(default_factory=ExtractedFields)
    raw_text: str = ""
    recognitions: List[RawRecognition] = field(default_factory=list)
    attempts_run: int = 0
    failed_attempts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """Every attempt that ran raised (and at least one ran)."""
        return self.attempts_run > 0 and self.failed_attempts == self.attempts_run
