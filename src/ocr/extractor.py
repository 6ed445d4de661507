"""Field extraction from recognized stamp text.

Pulls the lot code, expiry date and time of day out of free OCR text. Every
operation corrects the text first (see :mod:`src.ocr.corrector`) and returns
None when nothing matches; extraction never raises on bad input.

Expiry dates are searched in tiers, first hit wins:

1. ``DD/MM/YYYY`` or ``DD/MM/YY`` with ``/``, ``.`` or ``-`` separators
2. compact ``DDMMYY[YY]`` right after a keyword (VAL, VENC, EXP, ...)
3. a bare compact ``DDMMYY[YY]`` token
4. (permissive profile only) any three digit groups split by non-digits

Example:
    >>> extractor = FieldExtractor()
    >>> fields = extractor.extract("VAL 26/01/26 LS223 14:05")
    >>> fields.lot_code, fields.expiry_date.iso, fields.time_of_day
    ('LS223', '2026-01-26', '14:05')
"""

import logging
import re
from datetime import date
from typing import Iterable, List, Optional, Pattern

from .config_loader import ExtractionConfig, ExtractionProfileConfig
from .corrector import CharacterCorrector
from .types import ExpiryDate, ExtractedFields

logger = logging.getLogger(__name__)

LOT_CODE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"(?<![A-Za-z])LS[\s\-_]*(\d{3,6})(?!\d)", re.IGNORECASE),
    re.compile(r"(?<![A-Za-z])L5[\s\-_]*(\d{3,6})(?!\d)", re.IGNORECASE),
    re.compile(r"(?<![A-Za-z])L[S5][\s\-_]*(\d{3,6})(?!\d)", re.IGNORECASE),
    re.compile(r"(?<![A-Za-z0-9])(?:L1S|1S|[L1I][S5])[\s\-_]*(\d{3,6})(?!\d)", re.IGNORECASE),
]

TIME_PATTERNS: List[Pattern[str]] = [
    re.compile(r"(?<![\w:])([0-2]?\d):([0-5]\d)(?![\w:])"),
    re.compile(r"(?<![\w/.:\-])(\d{2})\s+(\d{2})(?![\w/.:\-])"),
    re.compile(r"(?<![\w/.:\-])(\d{2})(\d{2})(?![\w/.:\-])"),
]

_BARE_COMPACT_DATE = re.compile(r"\b(\d{2})(\d{2})(\d{4}|\d{2})\b")
_LOOSE_DATE = re.compile(r"(?<!\d)(\d{1,2})\D+(\d{1,2})\D+(\d{2,4})(?!\d)")
_WHITESPACE = re.compile(r"\s+")


class FieldExtractor:
    """Extracts lot code, expiry date and time of day from OCR text.

    Args:
        config: Extraction configuration (defaults if None).
        corrector: Confusion corrector (default map if None).
        profile: Profile name overriding ``config.profile``.
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        corrector: Optional[CharacterCorrector] = None,
        profile: Optional[str] = None,
    ):
        self.config = config or ExtractionConfig()
        self.corrector = corrector or CharacterCorrector()

        name = profile or self.config.profile
        if name not in self.config.profiles:
            raise KeyError(
                f"Unknown extraction profile '{name}'. Available: {sorted(self.config.profiles)}"
            )
        self.profile_name = name
        self.profile: ExtractionProfileConfig = self.config.profiles[name]

        self._separated_date = self._build_separated_pattern(self.profile.whitespace_separators)
        self._keyword_date = self._build_keyword_pattern(
            self.corrector.corrected_keywords(self.config.keywords)
        )

    @staticmethod
    def _build_separated_pattern(whitespace_separators: bool) -> Pattern[str]:
        sep = r"(?:\s*[/.\-]\s*|\s+)" if whitespace_separators else r"[/.\-]"
        return re.compile(rf"(?<!\d)(\d{{1,2}}){sep}(\d{{1,2}}){sep}(\d{{2,4}})(?!\d)")

    @staticmethod
    def _build_keyword_pattern(keywords: Iterable[str]) -> Pattern[str]:
        ordered = sorted(set(keywords), key=len, reverse=True)
        alternation = "|".join(re.escape(k) for k in ordered)
        return re.compile(
            rf"(?:{alternation})[^0-9]{{0,6}}(\d{{2}})(\d{{2}})(\d{{4}}|\d{{2}})(?!\d)",
            re.IGNORECASE,
        )

    def extract(self, text: str) -> ExtractedFields:
        """Extract every field from one recognized text."""
        corrected = self.corrector.correct(text or "").corrected_text
        fields = ExtractedFields(
            lot_code=self._find_lot_code(corrected),
            expiry_date=self._find_expiry_date(corrected),
            time_of_day=self._find_time(corrected),
        )
        logger.debug(f"Extracted {fields} from corrected text '{corrected}'")
        return fields

    def extract_lot_code(self, text: str) -> Optional[str]:
        """Find a lot code, normalized to ``LS`` + 3-6 digits."""
        return self._find_lot_code(self.corrector.correct(text or "").corrected_text)

    def extract_expiry_date(self, text: str) -> Optional[ExpiryDate]:
        """Find the first valid calendar date in the profile's year range."""
        return self._find_expiry_date(self.corrector.correct(text or "").corrected_text)

    def extract_time(self, text: str) -> Optional[str]:
        """Find a time of day, formatted ``HH:MM``."""
        return self._find_time(self.corrector.correct(text or "").corrected_text)

    def _find_lot_code(self, corrected: str) -> Optional[str]:
        for pattern in LOT_CODE_PATTERNS:
            match = pattern.search(corrected)
            if match:
                return f"LS{match.group(1)}"
        return None

    def _find_expiry_date(self, corrected: str) -> Optional[ExpiryDate]:
        for match in self._separated_date.finditer(corrected):
            found = self._build_date(*match.groups(), raw=match.group(0))
            if found:
                return found

        stripped = _WHITESPACE.sub("", corrected)
        for match in self._keyword_date.finditer(stripped):
            found = self._build_date(*match.groups(), raw="".join(match.groups()))
            if found:
                return found

        for match in _BARE_COMPACT_DATE.finditer(corrected):
            found = self._build_date(*match.groups(), raw=match.group(0))
            if found:
                return found

        if self.profile.loose_fallback:
            for match in _LOOSE_DATE.finditer(corrected):
                found = self._build_date(*match.groups(), raw=match.group(0))
                if found:
                    return found

        return None

    def _build_date(self, day: str, month: str, year: str, raw: str) -> Optional[ExpiryDate]:
        year_num = self._expand_year(year)
        if year_num is None:
            return None
        if not self.profile.min_year <= year_num <= self.profile.max_year:
            return None
        try:
            parsed = date(year_num, int(month), int(day))
        except ValueError:
            return None
        return ExpiryDate(iso=parsed.isoformat(), raw=raw.strip())

    def _expand_year(self, year: str) -> Optional[int]:
        if len(year) == 4:
            return int(year)
        if len(year) != 2:
            return None
        value = int(year)
        pivot = self.profile.two_digit_pivot
        if pivot is None or value < pivot:
            return 2000 + value
        return 1900 + value

    def _find_time(self, corrected: str) -> Optional[str]:
        for pattern in TIME_PATTERNS:
            for match in pattern.finditer(corrected):
                hour, minute = int(match.group(1)), int(match.group(2))
                if hour <= 23 and minute <= 59:
                    return f"{hour:02d}:{minute:02d}"
        return None
