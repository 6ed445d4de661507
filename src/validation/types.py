"""Type definitions for the validation module.

Defines the schedule anchor, validation statuses and the per-image
validation result with its status lifecycle.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from src.ocr.types import ExtractedFields


class InvalidTransitionError(ValueError):
    """Raised on an illegal ValidationResult status change."""


class ValidationStatus(str, Enum):
    """Lifecycle and outcome of one image's validation."""

    PENDING = "pending"  # Queued, not started
    PROCESSING = "processing"  # Enhancement/recognition running
    VALID = "valid"  # Extracted date equals target
    DIVERGENT = "divergent"  # Extracted date differs from target
    EXPIRED = "expired"  # Extracted date on or before today
    INVALID = "invalid"  # Required field could not be extracted
    ERROR = "error"  # Every recognition attempt failed

    @property
    def is_terminal(self) -> bool:
        return self not in (ValidationStatus.PENDING, ValidationStatus.PROCESSING)


_ALLOWED_TRANSITIONS = {
    ValidationStatus.PENDING: {ValidationStatus.PROCESSING},
    ValidationStatus.PROCESSING: {
        ValidationStatus.VALID,
        ValidationStatus.DIVERGENT,
        ValidationStatus.EXPIRED,
        ValidationStatus.INVALID,
        ValidationStatus.ERROR,
    },
}


@dataclass(frozen=True)
class ScheduleAnchor:
    """Reference pair for the weekly expiry schedule.

    Attributes:
        anchor_monday: Production week the base expiry belongs to
        base_expiry_monday: Expiry date printed during the anchor week
    """

    anchor_monday: date
    base_expiry_monday: date

    def __post_init__(self):
        if self.base_expiry_monday.weekday() != 0:
            raise ValueError(
                f"base_expiry_monday must be a Monday, got {self.base_expiry_monday.isoformat()} "
                f"({self.base_expiry_monday.strftime('%A')})"
            )


@dataclass
class ValidationResult:
    """Outcome of validating one captured image.

    Attributes:
        image_id: Stable identifier of the image
        status: Current status (pending -> processing -> terminal)
        message: Human-readable explanation
        target_iso: Expected expiry date (``YYYY-MM-DD``)
        fields: Extracted fields, once recognition has run
        raw_text: Longest text recognized
        expected_lot_code: Lot code implied by the reference date
    """

    image_id: str
    status: ValidationStatus = ValidationStatus.PENDING
    message: str = ""
    target_iso: Optional[str] = None
    fields: ExtractedFields = field(default_factory=ExtractedFields)
    raw_text: str = ""
    expected_lot_code: Optional[str] = None

    def transition(self, status: ValidationStatus, message: str = "") -> None:
        """Move to a new status.

        Raises:
            InvalidTransitionError: If the move skips or reverses a step.
        """
        if status not in _ALLOWED_TRANSITIONS.get(self.status, set()):
            raise InvalidTransitionError(
                f"Cannot move image {self.image_id} from {self.status.value} to {status.value}"
            )
        self.status = status
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        expiry = self.fields.expiry_date
        return {
            "image_id": self.image_id,
            "status": self.status.value,
            "message": self.message,
            "target_iso": self.target_iso,
            "expected_lot_code": self.expected_lot_code,
            "lot_code": self.fields.lot_code,
            "expiry_iso": expiry.iso if expiry else None,
            "expiry_raw": expiry.raw if expiry else None,
            "time_of_day": self.fields.time_of_day,
            "formatted": self.fields.formatted(),
            "reference_text": self.fields.reference_text(),
            "raw_text": self.raw_text,
        }
