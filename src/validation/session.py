"""
Concurrent validation of a batch of captures.

A session holds up to ``max_images`` captures keyed by a stable id. Pending
captures are validated concurrently (bounded by a semaphore); each capture's
result is stored under its id, and a result that arrives after its capture was
removed or replaced is discarded.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from src.enhancement.types import CropRect, SourceImage

from .processor import DateLike, ExpiryValidator
from .types import ValidationResult, ValidationStatus

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Entry:
    image: SourceImage
    crop: Optional[CropRect]
    result: ValidationResult


class ValidationSession:
    """
    Batch of captures validated against one reference date.

    Example:
        >>> session = ValidationSession(validator, date(2025, 9, 1), date(2025, 9, 1))
        >>> image_id = session.add_image(SourceImage.from_file("stamp.jpg"))
        >>> results = asyncio.run(session.process_pending())
        >>> results[image_id].status
        <ValidationStatus.VALID: 'valid'>
    """

    def __init__(
        self,
        validator: ExpiryValidator,
        reference_date: date,
        now: DateLike,
        max_concurrency: Optional[int] = None,
        max_images: Optional[int] = None,
    ):
        session_config = validator.config.validation.session
        self.validator = validator
        self.reference_date = reference_date
        self.now = now
        self.max_concurrency = max_concurrency or session_config.max_concurrency
        self.max_images = session_config.max_images if max_images is None else max_images
        self._entries: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add_image(self, image: SourceImage, crop: Optional[CropRect] = None) -> str:
        """
        Queue a capture for validation.

        Returns:
            Stable id of the capture.

        Raises:
            ValueError: If the session already holds ``max_images`` captures.
        """
        if self.max_images and len(self._entries) >= self.max_images:
            raise ValueError(f"Session is full ({self.max_images} images)")
        image_id = uuid.uuid4().hex
        self._entries[image_id] = _Entry(image, crop, ValidationResult(image_id=image_id))
        logger.debug(f"Added image {image_id}")
        return image_id

    def replace_image(
        self,
        image_id: str,
        image: SourceImage,
        crop: Optional[CropRect] = None,
    ) -> None:
        """Swap in a new capture under the same id; its result starts over."""
        if image_id not in self._entries:
            raise KeyError(f"Unknown image id: {image_id}")
        self._entries[image_id] = _Entry(image, crop, ValidationResult(image_id=image_id))
        logger.debug(f"Replaced image {image_id}")

    def remove_image(self, image_id: str) -> None:
        if self._entries.pop(image_id, None) is None:
            raise KeyError(f"Unknown image id: {image_id}")
        logger.debug(f"Removed image {image_id}")

    def result(self, image_id: str) -> ValidationResult:
        return self._entries[image_id].result

    def results(self) -> Dict[str, ValidationResult]:
        """Current result of every capture, in insertion order."""
        return {image_id: entry.result for image_id, entry in self._entries.items()}

    def image_ids(self) -> List[str]:
        return list(self._entries)

    async def process_pending(self) -> Dict[str, ValidationResult]:
        """
        Validate every pending capture concurrently.

        Returns:
            Results of the captures processed in this call that are still in
            the session.
        """
        pending = [
            (image_id, entry)
            for image_id, entry in self._entries.items()
            if entry.result.status is ValidationStatus.PENDING
        ]
        if not pending:
            return {}

        logger.info(
            f"Processing {len(pending)} pending images "
            f"(max_concurrency={self.max_concurrency})"
        )
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def process_with_semaphore(image_id: str, entry: _Entry) -> Optional[ValidationResult]:
            async with semaphore:
                if self._entries.get(image_id) is not entry:
                    logger.debug(f"Image {image_id} left the session before processing")
                    return None
                await self._validate_entry(image_id, entry)
            if self._entries.get(image_id) is not entry:
                logger.info(f"Discarding stale result for image {image_id}")
                return None
            return entry.result

        results = await asyncio.gather(
            *(process_with_semaphore(image_id, entry) for image_id, entry in pending)
        )
        return {
            image_id: result
            for (image_id, _), result in zip(pending, results)
            if result is not None
        }

    async def _validate_entry(self, image_id: str, entry: _Entry) -> None:
        try:
            await self.validator.validate_async(
                entry.image,
                entry.crop,
                self.reference_date,
                self.now,
                result=entry.result,
            )
        except Exception as e:
            logger.error(f"Validation of image {image_id} failed: {e}", exc_info=True)
            if entry.result.status is ValidationStatus.PENDING:
                entry.result.transition(ValidationStatus.PROCESSING)
            if entry.result.status is ValidationStatus.PROCESSING:
                entry.result.transition(ValidationStatus.ERROR, f"Validation failed: {e}")

    def all_valid(self) -> bool:
        """True when the session holds captures and every one is valid."""
        return bool(self._entries) and all(
            entry.result.status is ValidationStatus.VALID for entry in self._entries.values()
        )
