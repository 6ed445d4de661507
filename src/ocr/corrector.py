"""OCR confusion correction for expiry stamps.

Dot-matrix and inkjet stamps are routinely misread: the lot prefix ``LS``
comes back as ``L5``, ``L1S``, ``ls`` or ``|S`` and letters creep into the
digit groups (``2O26``, ``I4:O5``). Correction runs in two steps:

1. **Lot prefix collapse**: every known variant of ``LS`` becomes ``LS``.
2. **Substitution**: outside ``LS`` tokens, letters that look like digits are
   mapped to those digits (O→0, I→1, S→5, B→8, ...).

Keywords such as ``VAL`` are therefore only recognisable in their corrected
form (``V4L``); :func:`corrected_keywords` computes those forms.

Example:
    >>> corrector = CharacterCorrector()
    >>> corrector.correct("VAL 26/O1/2O26 L5 223").corrected_text
    'V4L 26/01/2026 LS 223'
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .config_loader import CorrectionConfig

# 'L' followed by an optional '1' and an S look-alike
_LS_AFTER_L = re.compile(r"L1?[Ss5$]")
# Lowercase l, 1, I or pipe directly before S at the start of a token
_LS_LOOKALIKE = re.compile(r"(?<![A-Za-z0-9])[l1I|][Ss]")
_LS_TOKEN = re.compile(r"LS")


@dataclass
class CorrectionResult:
    """Result of character correction operation.

    Attributes:
        corrected_text: Text after applying corrections.
        correction_applied: Whether any corrections were made.
        corrections: List of (position, old_char, new_char) tuples, positions
            in the collapsed text.
        original_text: Original text before correction.
    """

    corrected_text: str
    correction_applied: bool
    corrections: List[Tuple[int, str, str]]  # (position, old_char, new_char)
    original_text: str


class CharacterCorrector:
    """Corrects common OCR confusions in stamped dates and lot codes.

    Args:
        config: Correction configuration (defaults if None).
    """

    def __init__(self, config: Optional[CorrectionConfig] = None):
        self.config = config or CorrectionConfig()
        self._table = str.maketrans(self.config.substitutions)

    def collapse_lot_prefix(self, text: str) -> str:
        """Replace every known ``LS`` variant with ``LS``."""
        text = _LS_AFTER_L.sub("LS", text)
        return _LS_LOOKALIKE.sub("LS", text)

    def correct(self, text: str) -> CorrectionResult:
        """Apply prefix collapse and character substitution.

        Args:
            text: Raw OCR text.

        Returns:
            CorrectionResult with corrected text and change log.

        Example:
            >>> result = corrector.correct("1S2O")
            >>> result.corrected_text
            'LS20'
            >>> result.corrections
            [(3, 'O', '0')]
        """
        if not self.config.enabled:
            return CorrectionResult(
                corrected_text=text,
                correction_applied=False,
                corrections=[],
                original_text=text,
            )

        collapsed = self.collapse_lot_prefix(text)

        protected = set()
        for match in _LS_TOKEN.finditer(collapsed):
            protected.update(range(match.start(), match.end()))

        chars = list(collapsed)
        corrections: List[Tuple[int, str, str]] = []
        for i, char in enumerate(chars):
            if i in protected:
                continue
            new_char = char.translate(self._table)
            if new_char != char:
                corrections.append((i, char, new_char))
                chars[i] = new_char

        corrected_text = "".join(chars)

        return CorrectionResult(
            corrected_text=corrected_text,
            correction_applied=corrected_text != text,
            corrections=corrections,
            original_text=text,
        )

    def corrected_keywords(self, keywords: Iterable[str]) -> List[str]:
        """Keywords as they appear after correction (``VAL`` -> ``V4L``)."""
        return [self.correct(keyword.upper()).corrected_text for keyword in keywords]
