"""
Stage 3: Schedule Computation & Validation

Computes the expected expiry date for the production week of a reference
date and classifies each capture's extracted date against it.

Pipeline stages:
1. Target computation (weekly schedule, Sunday rolls to next week)
2. Classification (error / invalid / expired / valid / divergent)
3. Concurrent session over a batch of captures
"""

from .classifier import classify
from .config_loader import (
    ClassificationConfig,
    Config,
    ScheduleConfig,
    SessionConfig,
    ValidationModuleConfig,
    get_default_config,
    load_config,
)
from .processor import ExpiryValidator
from .schedule import (
    DEFAULT_ANCHOR,
    compute_target,
    compute_target_date,
    effective_monday,
    expected_lot_code,
    week_start,
    weeks_passed,
)
from .session import ValidationSession
from .types import (
    InvalidTransitionError,
    ScheduleAnchor,
    ValidationResult,
    ValidationStatus,
)

__all__ = [
    "classify",
    "ClassificationConfig",
    "Config",
    "ScheduleConfig",
    "SessionConfig",
    "ValidationModuleConfig",
    "get_default_config",
    "load_config",
    "ExpiryValidator",
    "DEFAULT_ANCHOR",
    "compute_target",
    "compute_target_date",
    "effective_monday",
    "expected_lot_code",
    "week_start",
    "weeks_passed",
    "ValidationSession",
    "InvalidTransitionError",
    "ScheduleAnchor",
    "ValidationResult",
    "ValidationStatus",
]
