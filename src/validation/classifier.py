"""
Validation classifier.

Maps a recognition outcome, the target expiry date and today's date to a
terminal status and a message. Order of checks:

1. every recognition attempt failed   -> ERROR
2. no expiry date (strict: no lot code) -> INVALID
3. date on or before today            -> EXPIRED
4. date equal to target               -> VALID
5. otherwise                          -> DIVERGENT

With ``expired_precedence`` disabled, steps 3 and 4 swap so that a date equal
to the target is VALID even when it is already past.
"""

import logging
from datetime import date, datetime
from typing import Optional, Tuple, Union

from src.ocr.types import RecognitionOutcome

from .config_loader import ClassificationConfig
from .types import ValidationStatus

logger = logging.getLogger(__name__)


def _display(iso: str) -> str:
    return date.fromisoformat(iso).strftime("%d/%m/%Y")


def classify(
    outcome: RecognitionOutcome,
    target_iso: str,
    today: Union[date, datetime],
    config: Optional[ClassificationConfig] = None,
    require_lot_code: bool = False,
) -> Tuple[ValidationStatus, str]:
    """
    Classify one recognition outcome.

    Args:
        outcome: Merged result of the recognition attempts.
        target_iso: Expected expiry date (``YYYY-MM-DD``).
        today: Current date (a datetime is reduced to its date).
        config: Classification settings (defaults if None).
        require_lot_code: Treat a missing lot code as INVALID.

    Returns:
        (status, message); the message cites the extracted date and target.
    """
    config = config or ClassificationConfig()
    if isinstance(today, datetime):
        today = today.date()
    target_display = _display(target_iso)

    if outcome.all_failed:
        return (
            ValidationStatus.ERROR,
            f"Recognition failed on all {outcome.attempts_run} attempts "
            f"(target {target_display})",
        )

    fields = outcome.fields
    if fields.expiry_date is None:
        return (
            ValidationStatus.INVALID,
            f"No expiry date could be read (target {target_display})",
        )
    if require_lot_code and fields.lot_code is None:
        return (
            ValidationStatus.INVALID,
            f"No lot code could be read next to expiry {fields.expiry_date.display} "
            f"(target {target_display})",
        )

    extracted = fields.expiry_date
    expired = extracted.date <= today
    matches = extracted.iso == target_iso

    if expired and (config.expired_precedence or not matches):
        status = ValidationStatus.EXPIRED
        message = (
            f"Expiry {extracted.display} is on or before today "
            f"{today.strftime('%d/%m/%Y')} (target {target_display})"
        )
    elif matches:
        status = ValidationStatus.VALID
        message = f"Expiry {extracted.display} matches target {target_display}"
    else:
        status = ValidationStatus.DIVERGENT
        message = f"Expiry {extracted.display} differs from target {target_display}"

    logger.debug(f"Classified {extracted.iso} against {target_iso}: {status.value}")
    return status, message
